from __future__ import annotations

from typing import Annotated

import typer

from tasmobridge.utils.logging import setup_logging

from . import config as config_cmd
from .accessories import register as register_accessories
from .info import register as register_info
from .normalize import register as register_normalize
from .run import register as register_run

app = typer.Typer(
    help="tasmobridge - Tasmota MQTT discovery bridge", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config")

register_run(app)
register_accessories(app)
register_normalize(app)
register_info(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """tasmobridge CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"tasmobridge version {get_version('tasmobridge')}")
        raise typer.Exit()
