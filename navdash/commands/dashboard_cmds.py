from __future__ import annotations

from dataclasses import replace

from rich import print
from rich.markup import escape

from ..errors import NotFoundError
from ..models import Site
from ..sites import icon_url
from .common import ClientOptions, open_dashboard, parse_move, run_or_exit


def list_cmd(*, options: ClientOptions, query: str | None, show_icons: bool) -> None:
    """Print groups and their sites in display order."""

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            groups = dash.filtered_groups(query) if query else list(dash.replica.groups)
            if not groups:
                print("[yellow]No groups found[/yellow]")
                return
            icon_api = dash.replica.configs.get("site.iconApi")
            for group in groups:
                print(f"[bold]{escape(group.name)}[/bold] (id={group.id})")
                for site in group.sites:
                    line = f"  {site.order_num}. {escape(site.name)} <{escape(site.url)}> (id={site.id})"
                    if show_icons:
                        line += f" icon={escape(icon_url(site, icon_api))}"
                    print(line)

    run_or_exit(_run())


def group_add_cmd(*, options: ClientOptions, name: str) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            template = dash.new_group_template()
            await dash.create_group(replace(template, name=name))
            print(f"[green]✓ Created group {escape(name)}[/green]")

    run_or_exit(_run())


def group_rename_cmd(*, options: ClientOptions, group_id: int, name: str) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            if not await dash.rename_group(group_id, name):
                raise NotFoundError("group", group_id)
            print(f"[green]✓ Renamed group {group_id}[/green]")

    run_or_exit(_run())


def group_delete_cmd(*, options: ClientOptions, group_id: int) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            if not await dash.delete_group(group_id):
                raise NotFoundError("group", group_id)
            print(f"[green]✓ Deleted group {group_id}[/green]")

    run_or_exit(_run())


def site_add_cmd(
    *,
    options: ClientOptions,
    group_id: int,
    name: str,
    url: str,
    icon: str,
    description: str,
    notes: str,
) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            template = dash.new_site_template(group_id)
            site = replace(
                template, name=name, url=url, icon=icon, description=description, notes=notes
            )
            await dash.create_site(site)
            print(f"[green]✓ Added {escape(name)} to group {group_id}[/green]")

    run_or_exit(_run())


def site_update_cmd(
    *,
    options: ClientOptions,
    site_id: int,
    name: str | None,
    url: str | None,
    icon: str | None,
    description: str | None,
    notes: str | None,
) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            current = dash.replica.find_site(site_id)
            if current is None:
                raise NotFoundError("site", site_id)
            changes = {
                "name": name,
                "url": url,
                "icon": icon,
                "description": description,
                "notes": notes,
            }
            updated: Site = replace(
                current, **{key: value for key, value in changes.items() if value is not None}
            )
            if updated == current:
                print("[yellow]Nothing to update[/yellow]")
                return
            await dash.update_site(updated)
            print(f"[green]✓ Updated site {site_id}[/green]")

    run_or_exit(_run())


def site_delete_cmd(*, options: ClientOptions, site_id: int) -> None:
    async def _run() -> None:
        async with open_dashboard(options) as dash:
            if not await dash.delete_site(site_id):
                raise NotFoundError("site", site_id)
            print(f"[green]✓ Deleted site {site_id}[/green]")

    run_or_exit(_run())


def sort_groups_cmd(*, options: ClientOptions, moves: list[str]) -> None:
    """Apply index moves to the group order and save it."""

    parsed = [parse_move(move) for move in moves]

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            dash.start_group_sort()
            for source, target in parsed:
                if not dash.move_group(source, target):
                    print(f"[yellow]Ignored move {source}:{target}[/yellow]")
            await dash.save_group_order()
            names = ", ".join(escape(g.name) for g in dash.replica.groups)
            print(f"[green]✓ Saved group order:[/green] {names}")

    run_or_exit(_run())


def sort_sites_cmd(*, options: ClientOptions, group_id: int, moves: list[str]) -> None:
    parsed = [parse_move(move) for move in moves]

    async def _run() -> None:
        async with open_dashboard(options) as dash:
            if not dash.start_site_sort(group_id):
                raise NotFoundError("group", group_id)
            for source, target in parsed:
                if not dash.move_site(source, target):
                    print(f"[yellow]Ignored move {source}:{target}[/yellow]")
            await dash.save_site_order()
            group = dash.replica.find_group(group_id)
            names = ", ".join(escape(s.name) for s in group.sites) if group else ""
            print(f"[green]✓ Saved site order:[/green] {names}")

    run_or_exit(_run())