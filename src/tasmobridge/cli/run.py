from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from tasmobridge.bridge import Bridge
from tasmobridge.utils.logging import setup_logging

from .common import build_store, load_settings_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def run() -> None:
        """Bridge MQTT discovery to the accessory cache until interrupted."""
        console = Console()

        settings = load_settings_or_exit()
        if settings.bridge.debug:
            setup_logging(debug=True)

        store = build_store(settings)
        bridge = Bridge(settings, store)

        console.print(
            f"Listening for discovery on {settings.mqtt.host}:{settings.mqtt.port} "
            f"({settings.mqtt.discovery_prefix}/#)"
        )
        try:
            asyncio.run(bridge.run())
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            raise typer.Exit(1) from exc
        except KeyboardInterrupt:
            console.print("\n[green]Bridge stopped.[/green]")
