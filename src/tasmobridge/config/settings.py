from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "TASMOBRIDGE_CONFIG"

SECONDS_PER_HOUR = 3600


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class BridgeConfig(BaseModel):
    """Accessory lifecycle options."""

    model_config = {"frozen": True, "extra": "forbid"}

    # hours of silence before an accessory is removed
    cleanup: float = Field(default=24, gt=0)
    debug: bool = False

    @property
    def cleanup_seconds(self) -> float:
        return self.cleanup * SECONDS_PER_HOUR


class MqttConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    host: str = "localhost"
    port: int = Field(default=1883, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    discovery_prefix: str = "homeassistant"
    reconnect_delay: float = Field(default=5.0, gt=0)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    mqtt: MqttConfig = Field(default_factory=MqttConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def _toml_string(value: str) -> str:
    return json.dumps(value)


def render_settings_toml(settings: Settings) -> str:
    mqtt = settings.mqtt
    lines = [
        "# tasmobridge configuration",
        "",
        "[database]",
        f"path = {_toml_string(settings.database.path)}",
        "",
        "[bridge]",
        f"cleanup = {settings.bridge.cleanup}",
        f"debug = {'true' if settings.bridge.debug else 'false'}",
        "",
        "[mqtt]",
        f"host = {_toml_string(mqtt.host)}",
        f"port = {mqtt.port}",
    ]
    # TOML has no null, unset credentials are left out
    if mqtt.username is not None:
        lines.append(f"username = {_toml_string(mqtt.username)}")
    if mqtt.password is not None:
        lines.append(f"password = {_toml_string(mqtt.password)}")
    lines += [
        f"discovery_prefix = {_toml_string(mqtt.discovery_prefix)}",
        f"reconnect_delay = {mqtt.reconnect_delay}",
        "",
    ]
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
