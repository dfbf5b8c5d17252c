from __future__ import annotations

from typing import Annotated

import typer

from tasmobridge.config import (
    MqttConfig,
    Settings,
    render_settings_toml,
    write_settings,
)

from .common import load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(no_args_is_help=True)

SECRET_MASK = "********"


@app.command("show")
def show_config(
    show_secrets: Annotated[
        bool,
        typer.Option("--show-secrets", help="Print the MQTT password as stored"),
    ] = False,
) -> None:
    """Print the effective configuration."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    if settings.mqtt.password is not None and not show_secrets:
        mqtt = settings.mqtt.model_copy(update={"password": SECRET_MASK})
        settings = settings.model_copy(update={"mqtt": mqtt})

    typer.echo(f"Config source: {path if exists else 'defaults'}")
    typer.echo(render_settings_toml(settings))


@app.command("init")
def init_config(
    host: Annotated[str, typer.Option("--host", help="MQTT broker host")] = "localhost",
    port: Annotated[
        int, typer.Option("--port", help="MQTT broker port", min=1, max=65535)
    ] = 1883,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Write a config file for the given broker."""
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    if exists and not force:
        typer.echo(f"Config already exists at {path}")
        return

    write_settings(Settings(mqtt=MqttConfig(host=host, port=port)), path)
    typer.echo(f"Wrote config for broker {host}:{port} to {path}")
