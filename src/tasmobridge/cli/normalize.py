from __future__ import annotations

import json
from pathlib import Path

import typer

from tasmobridge.core import normalize_message


def register(app: typer.Typer) -> None:
    @app.command()
    def normalize(
        path: Path = typer.Argument(..., help="JSON file with a discovery payload"),
    ) -> None:
        """Print the normalized form of a discovery payload."""
        try:
            raw = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            typer.echo(f"Cannot read discovery payload {path}: {exc}", err=True)
            raise typer.Exit(1) from exc

        if not isinstance(raw, dict):
            typer.echo("Discovery payload must be a JSON object", err=True)
            raise typer.Exit(1)

        typer.echo(json.dumps(normalize_message(raw), indent=2, sort_keys=True))
