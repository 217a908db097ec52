from __future__ import annotations

import asyncio
import hmac
import logging
import sqlite3
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Protocol, TypeVar

from .errors import AuthorizationError, TransportError
from .models import Group, OrderEntry, Site
from .store import NavigationStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NavigationClient(Protocol):
    """Persistence capability consumed by the sync controller."""

    async def list_groups(self) -> list[Group]: ...

    async def list_sites(self, group_id: int) -> list[Site]: ...

    async def create_group(self, group: Group) -> Group: ...

    async def update_group(self, group_id: int, group: Group) -> None: ...

    async def delete_group(self, group_id: int) -> None: ...

    async def create_site(self, site: Site) -> Site: ...

    async def update_site(self, site_id: int, site: Site) -> None: ...

    async def delete_site(self, site_id: int) -> None: ...

    async def set_group_order(self, entries: Sequence[OrderEntry]) -> None: ...

    async def set_site_order(self, entries: Sequence[OrderEntry]) -> None: ...

    async def get_configs(self) -> dict[str, str]: ...

    async def set_config(self, key: str, value: str) -> None: ...

    async def is_authorized(self) -> bool: ...

    async def login(self, username: str, password: str) -> bool: ...

    def logout(self) -> None: ...


class LocalNavigationClient:
    """Runs a ``NavigationStore`` behind the async client interface.

    Store calls are serialized and executed in a worker thread, so the store
    must be opened with ``check_same_thread=False``.
    """

    def __init__(
        self,
        store: NavigationStore,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self.store = store
        self._username = username or None
        self._password = password or None
        self._logged_in = False
        self._lock = threading.Lock()

    @classmethod
    def from_path(
        cls,
        db_path: Path | str,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> LocalNavigationClient:
        store = NavigationStore(db_path, check_same_thread=False)
        return cls(store, username=username, password=password)

    @property
    def auth_required(self) -> bool:
        return bool(self._username and self._password)

    def close(self) -> None:
        self.store.close()

    async def is_authorized(self) -> bool:
        return not self.auth_required or self._logged_in

    async def login(self, username: str, password: str) -> bool:
        if not self.auth_required:
            self._logged_in = True
            return True
        ok = hmac.compare_digest(
            username.encode(), (self._username or "").encode()
        ) and hmac.compare_digest(password.encode(), (self._password or "").encode())
        self._logged_in = ok
        if not ok:
            logger.warning("login rejected for %s", username)
        return ok

    def logout(self) -> None:
        self._logged_in = False

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        if not await self.is_authorized():
            raise AuthorizationError()
        try:
            return await asyncio.to_thread(self._run_locked, fn, *args)
        except sqlite3.Error as exc:
            raise TransportError(f"database error: {exc}") from exc

    def _run_locked(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return fn(*args)

    async def list_groups(self) -> list[Group]:
        return await self._call(self.store.list_groups)

    async def list_sites(self, group_id: int) -> list[Site]:
        return await self._call(self.store.list_sites, group_id)

    async def create_group(self, group: Group) -> Group:
        return await self._call(self.store.create_group, group)

    async def update_group(self, group_id: int, group: Group) -> None:
        await self._call(self.store.update_group, group_id, group)

    async def delete_group(self, group_id: int) -> None:
        await self._call(self.store.delete_group, group_id)

    async def create_site(self, site: Site) -> Site:
        return await self._call(self.store.create_site, site)

    async def update_site(self, site_id: int, site: Site) -> None:
        await self._call(self.store.update_site, site_id, site)

    async def delete_site(self, site_id: int) -> None:
        await self._call(self.store.delete_site, site_id)

    async def set_group_order(self, entries: Sequence[OrderEntry]) -> None:
        await self._call(self.store.set_group_order, list(entries))

    async def set_site_order(self, entries: Sequence[OrderEntry]) -> None:
        await self._call(self.store.set_site_order, list(entries))

    async def get_configs(self) -> dict[str, str]:
        return await self._call(self.store.get_configs)

    async def set_config(self, key: str, value: str) -> None:
        await self._call(self.store.set_config, key, value)
