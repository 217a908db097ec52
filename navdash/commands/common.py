from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import sys
from collections.abc import AsyncIterator, Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

import typer
from rich import print
from rich.markup import escape

from ..api_client import HttpNavigationClient
from ..client import LocalNavigationClient, NavigationClient
from ..config import NavdashConfig, load_config
from ..db import DEFAULT_DB_PATH
from ..errors import AuthorizationError, NavdashError
from ..sync import SyncController

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
HANDLER_NAME = "navdash-console"


def configure_logging(level: str | int) -> None:
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    root.setLevel(level)
    for handler in root.handlers:
        if handler.get_name() == HANDLER_NAME and isinstance(handler, logging.StreamHandler):
            handler.setStream(sys.stderr)
            return
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


@dataclass
class ClientOptions:
    db_path: str | None = None
    api_url: str | None = None
    api_token: str | None = None
    username: str | None = None
    password: str | None = None
    auth_username: str | None = None
    auth_password: str | None = None
    timeout_s: float = 10.0

    @classmethod
    def resolve(
        cls,
        *,
        db_path: str | None,
        api_url: str | None,
        username: str | None,
        password: str | None,
        cfg: NavdashConfig | None = None,
    ) -> ClientOptions:
        cfg = cfg or load_config()
        return cls(
            db_path=db_path or cfg.db_path,
            api_url=api_url or cfg.api_url,
            api_token=cfg.api_token,
            username=username,
            password=password,
            auth_username=cfg.auth_username,
            auth_password=cfg.auth_password,
            timeout_s=cfg.request_timeout_s,
        )


def build_client(options: ClientOptions) -> NavigationClient:
    if options.api_url:
        return HttpNavigationClient(
            options.api_url, token=options.api_token, timeout_s=options.timeout_s
        )
    return LocalNavigationClient.from_path(
        options.db_path or DEFAULT_DB_PATH,
        username=options.auth_username,
        password=options.auth_password,
    )


async def close_client(client: NavigationClient) -> None:
    close = getattr(client, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


@contextlib.asynccontextmanager
async def open_dashboard(options: ClientOptions) -> AsyncIterator[SyncController]:
    client = build_client(options)
    try:
        controller = SyncController(client)
        if options.username is not None and options.password is not None:
            if not await controller.login(options.username, options.password):
                raise AuthorizationError("invalid username or password")
        elif not await controller.check_auth():
            raise AuthorizationError("login required (pass --username and --password)")
        yield controller
    finally:
        await close_client(client)


def run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except NavdashError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def parse_move(value: str) -> tuple[int, int]:
    source, sep, target = value.partition(":")
    try:
        if not sep:
            raise ValueError(value)
        return int(source), int(target)
    except ValueError as exc:
        raise typer.BadParameter(f"expected SOURCE:TARGET, got {value!r}") from exc
