from __future__ import annotations

from rich import print
from rich.markup import escape

from .common import ClientOptions, open_dashboard, run_or_exit


def config_show_cmd(*, options: ClientOptions, key: str | None) -> None:
    """Show dashboard settings, including defaults for unset keys."""

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            configs = dash.replica.configs
            if key is not None:
                if key not in configs:
                    print(f"[yellow]{escape(key)} is not set[/yellow]")
                    return
                print(escape(configs[key]))
                return
            for name in sorted(configs):
                print(f"{escape(name)} = {escape(configs[name])}")

    run_or_exit(_run())


def config_set_cmd(*, options: ClientOptions, key: str, value: str) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            changed = await dash.save_configs({key: value})
            if changed:
                print(f"[green]✓ Saved {escape(key)}[/green]")
            else:
                print(f"[yellow]{escape(key)} unchanged[/yellow]")

    run_or_exit(_run())
