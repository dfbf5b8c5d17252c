from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from tasmobridge.models import DeviceInfo
from tasmobridge.utils.redaction import Redactor

from .common import build_store, load_accessories_or_exit, load_settings_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def accessories(
        redact: bool = typer.Option(
            False,
            "--redact",
            help="Redact device identifiers in output",
        ),
    ) -> None:
        """List cached accessories and their sub-devices."""
        console = Console()

        settings = load_settings_or_exit()
        store = build_store(settings)
        cached = load_accessories_or_exit(store)

        if not cached:
            console.print("No accessories cached yet.")
            console.print(f"Run 'tasmobridge run' to populate {store.accessories_path}")
            return

        redactor = Redactor(enabled=redact)
        table = Table()
        table.add_column("Accessory", style="cyan")
        table.add_column("Identifier", style="green")
        table.add_column("Sub-device", style="yellow")
        table.add_column("Type")
        table.add_column("Model")
        table.add_column("Firmware")

        for accessory in sorted(cached, key=lambda a: a.display_name):
            for unique_id, message in sorted(accessory.devices.items()):
                device = message.device or DeviceInfo()
                identifier = device.identifiers[0] if device.identifiers else ""
                table.add_row(
                    accessory.display_name,
                    redactor.redact_identifier(identifier),
                    redactor.redact_unique_id(unique_id),
                    message.device_type or "",
                    device.model or "",
                    device.sw_version or "",
                )

        console.print(table)
        console.print(f"\n[green]{len(cached)} accessory(ies) cached[/green]")
