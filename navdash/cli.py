from __future__ import annotations

import typer
from rich import print

from . import __version__, db
from .commands.common import ClientOptions, configure_logging
from .commands.config_cmds import config_set_cmd, config_show_cmd
from .commands.dashboard_cmds import (
    group_add_cmd,
    group_delete_cmd,
    group_rename_cmd,
    list_cmd,
    site_add_cmd,
    site_delete_cmd,
    site_update_cmd,
    sort_groups_cmd,
    sort_sites_cmd,
)
from .commands.import_export_cmds import export_cmd, import_cmd
from .config import load_config
from .store import NavigationStore

app = typer.Typer(help="navdash: personal bookmark dashboard")
group_app = typer.Typer(help="Manage groups")
site_app = typer.Typer(help="Manage sites")
sort_app = typer.Typer(help="Reorder groups or the sites of a group")
config_app = typer.Typer(help="Dashboard settings")
app.add_typer(group_app, name="group")
app.add_typer(site_app, name="site")
app.add_typer(sort_app, name="sort")
app.add_typer(config_app, name="config")

DB_PATH_HELP = "Path to SQLite database"
API_URL_HELP = "Dashboard API base URL (uses the remote API instead of SQLite)"


def _options(
    db_path: str | None,
    api_url: str | None,
    username: str | None,
    password: str | None,
) -> ClientOptions:
    return ClientOptions.resolve(
        db_path=db_path, api_url=api_url, username=username, password=password
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    cfg = load_config()
    configure_logging("DEBUG" if verbose else cfg.log_level)


@app.command()
def version() -> None:
    """Print the navdash version."""

    print(__version__)


@app.command()
def init_db(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Create the SQLite schema."""

    path = db_path or load_config().db_path or db.DEFAULT_DB_PATH
    store = NavigationStore(path)
    try:
        print(f"[green]✓ Database ready at {store.db_path}[/green]")
    finally:
        store.close()


@app.command("list")
def list_groups(
    query: str = typer.Option(None, help="Only show sites matching this text"),
    icons: bool = typer.Option(False, help="Show resolved icon URLs"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """List groups and sites."""

    list_cmd(
        options=_options(db_path, api_url, username, password), query=query, show_icons=icons
    )


@group_app.command("add")
def group_add(
    name: str,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Create a group at the end of the list."""

    group_add_cmd(options=_options(db_path, api_url, username, password), name=name)


@group_app.command("rename")
def group_rename(
    group_id: int,
    name: str,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Rename a group."""

    group_rename_cmd(
        options=_options(db_path, api_url, username, password), group_id=group_id, name=name
    )


@group_app.command("delete")
def group_delete(
    group_id: int,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Delete a group and its sites."""

    group_delete_cmd(options=_options(db_path, api_url, username, password), group_id=group_id)


@site_app.command("add")
def site_add(
    group_id: int,
    name: str,
    url: str,
    icon: str = typer.Option("", help="Icon URL (defaults to the icon API)"),
    description: str = typer.Option("", help="Short description"),
    notes: str = typer.Option("", help="Free-form notes"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Add a site at the end of a group."""

    site_add_cmd(
        options=_options(db_path, api_url, username, password),
        group_id=group_id,
        name=name,
        url=url,
        icon=icon,
        description=description,
        notes=notes,
    )


@site_app.command("update")
def site_update(
    site_id: int,
    name: str = typer.Option(None, help="New name"),
    url: str = typer.Option(None, help="New URL"),
    icon: str = typer.Option(None, help="New icon URL"),
    description: str = typer.Option(None, help="New description"),
    notes: str = typer.Option(None, help="New notes"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Edit fields of a site."""

    site_update_cmd(
        options=_options(db_path, api_url, username, password),
        site_id=site_id,
        name=name,
        url=url,
        icon=icon,
        description=description,
        notes=notes,
    )


@site_app.command("delete")
def site_delete(
    site_id: int,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Delete a site."""

    site_delete_cmd(options=_options(db_path, api_url, username, password), site_id=site_id)


@sort_app.command("groups")
def sort_groups(
    move: list[str] = typer.Option(..., help="SOURCE:TARGET index move, repeatable"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Move groups by index and save the new order."""

    sort_groups_cmd(options=_options(db_path, api_url, username, password), moves=move)


@sort_app.command("sites")
def sort_sites(
    group_id: int,
    move: list[str] = typer.Option(..., help="SOURCE:TARGET index move, repeatable"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Move sites of one group by index and save the new order."""

    sort_sites_cmd(
        options=_options(db_path, api_url, username, password), group_id=group_id, moves=move
    )


@app.command("export")
def export_data(
    output: str = typer.Option(None, help="Output file ('-' for stdout)"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Export groups, sites and settings to JSON."""

    export_cmd(options=_options(db_path, api_url, username, password), output=output)


@app.command("import")
def import_data(
    input_file: str = typer.Argument(..., help="Backup JSON produced by export"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Merge a JSON backup without creating duplicates."""

    import_cmd(options=_options(db_path, api_url, username, password), input_file=input_file)


@config_app.command("show")
def config_show(
    key: str = typer.Argument(None, help="Single key to show"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Show dashboard settings."""

    config_show_cmd(options=_options(db_path, api_url, username, password), key=key)


@config_app.command("set")
def config_set(
    key: str,
    value: str,
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
    api_url: str = typer.Option(None, help=API_URL_HELP),
    username: str = typer.Option(None, help="Login username"),
    password: str = typer.Option(None, help="Login password"),
) -> None:
    """Set a dashboard setting."""

    config_set_cmd(options=_options(db_path, api_url, username, password), key=key, value=value)


if __name__ == "__main__":
    app()
