import asyncio
import sqlite3
from pathlib import Path

import pytest

from navdash.client import LocalNavigationClient
from navdash.errors import AuthorizationError, TransportError
from navdash.models import Group


def test_no_credentials_means_always_authorized(local_client: LocalNavigationClient) -> None:
    async def run() -> list[Group]:
        assert await local_client.is_authorized()
        await local_client.create_group(Group(id=None, name="Dev"))
        return await local_client.list_groups()

    groups = asyncio.run(run())
    assert [g.name for g in groups] == ["Dev"]


def test_requires_login_when_credentials_configured(tmp_path: Path) -> None:
    client = LocalNavigationClient.from_path(
        tmp_path / "nav.sqlite", username="admin", password="secret"
    )

    async def run() -> None:
        assert not await client.is_authorized()
        with pytest.raises(AuthorizationError):
            await client.list_groups()
        assert not await client.login("admin", "wrong")
        assert await client.login("admin", "secret")
        assert await client.list_groups() == []
        client.logout()
        with pytest.raises(AuthorizationError):
            await client.get_configs()

    try:
        asyncio.run(run())
    finally:
        client.close()


def test_sqlite_errors_become_transport_errors(local_client: LocalNavigationClient) -> None:
    def broken() -> None:
        raise sqlite3.OperationalError("database is locked")

    async def run() -> None:
        with pytest.raises(TransportError, match="database is locked"):
            await local_client._call(broken)

    asyncio.run(run())


def test_concurrent_reads_are_serialized(local_client: LocalNavigationClient) -> None:
    async def run() -> list[list]:
        group = await local_client.create_group(Group(id=None, name="Dev"))
        return await asyncio.gather(*(local_client.list_sites(group.id) for _ in range(10)))

    results = asyncio.run(run())
    assert results == [[] for _ in range(10)]
