from __future__ import annotations

import typer
from rich.console import Console

from .common import (
    build_store,
    load_accessories_or_exit,
    load_settings_or_exit,
    resolve_config_path_or_exit,
)


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show data directory, configuration and cache stats."""
        settings = load_settings_or_exit()
        store = build_store(settings)
        cached = load_accessories_or_exit(store)

        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console = Console()

        console.print("[bold]tasmobridge Info[/bold]\n")
        console.print(f"Data directory: {store.data_dir}")
        console.print(f"Accessory cache: {store.accessories_path}")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        console.print("\n[bold]Configuration[/bold]")
        console.print(f"MQTT broker: {settings.mqtt.host}:{settings.mqtt.port}")
        console.print(f"Discovery prefix: {settings.mqtt.discovery_prefix}")
        console.print(f"Cleanup after: {settings.bridge.cleanup}h")
        console.print(f"Debug: {settings.bridge.debug}")

        console.print("\n[bold]Statistics[/bold]")
        console.print(f"Cached accessories: {len(cached)}")
        console.print(
            f"Sub-devices: {sum(len(accessory.devices) for accessory in cached)}"
        )
