from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import typer
from rich import print
from rich.markup import escape

from ..errors import ValidationError
from ..transfer import export_filename, load_import_file
from .common import ClientOptions, open_dashboard, run_or_exit


def export_cmd(*, options: ClientOptions, output: str | None) -> None:
    """Export groups, sites and configs to a JSON backup."""

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            now = dt.datetime.now(dt.UTC)
            export_data = dash.export_document(now=now)
            output_json = json.dumps(export_data, ensure_ascii=False, indent=2)
            if output == "-":
                typer.echo(output_json)
                return
            output_path = Path(output or export_filename(now)).expanduser()
            output_path.write_text(output_json, encoding="utf-8")
            print(f"[green]✓ Exported to {escape(str(output_path))}[/green]")
            print(f"  Groups: {len(export_data['groups'])}")
            print(f"  Sites: {len(export_data['sites'])}")
            print(f"  Configs: {len(export_data['configs'])}")

    run_or_exit(_run())


def import_cmd(*, options: ClientOptions, input_file: str) -> None:
    """Merge a JSON backup into the dashboard."""

    # Validate before connecting so a bad file never reaches the store.
    try:
        document = load_import_file(input_file)
    except ValidationError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            result = await dash.import_data(document)
            if not result.success:
                print(f"[red]{escape(result.summary_lines()[0])}[/red]")
                raise typer.Exit(code=1)
            first, *rest = result.summary_lines()
            print(f"[green]✓ {first}[/green]")
            for line in rest:
                print(f"  {line}")

    run_or_exit(_run())