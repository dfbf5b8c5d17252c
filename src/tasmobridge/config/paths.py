from __future__ import annotations

import os
from pathlib import Path

import platformdirs

APP_NAME = "tasmobridge"
CONFIG_FILENAME = "config.toml"


def default_config_path() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILENAME


def default_data_dir() -> Path:
    return Path(platformdirs.user_data_dir(APP_NAME))


def expand_path(value: str) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(value)))
