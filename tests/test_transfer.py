import asyncio
import datetime as dt
import json
from pathlib import Path

import pytest

from navdash.client import LocalNavigationClient
from navdash.errors import ValidationError
from navdash.models import Group, GroupWithSites, Site
from navdash.sites import DEFAULT_CONFIGS
from navdash.transfer import (
    build_export_document,
    export_filename,
    format_export_date,
    import_data,
    load_import_file,
    parse_import_document,
)

FIXED_NOW = dt.datetime(2024, 5, 17, 8, 30, 15, 123456, tzinfo=dt.UTC)


def _counts(client: LocalNavigationClient) -> tuple[int, int, int]:
    conn = client.store.conn
    return (
        conn.execute("SELECT COUNT(*) FROM groups").fetchone()[0],
        conn.execute("SELECT COUNT(*) FROM sites").fetchone()[0],
        conn.execute("SELECT COUNT(*) FROM configs").fetchone()[0],
    )


def _dump(client: LocalNavigationClient) -> list[GroupWithSites]:
    store = client.store
    return [GroupWithSites.build(g, store.list_sites(g.id)) for g in store.list_groups()]


@pytest.mark.parametrize(
    "raw, message",
    [
        ([], "JSON object"),
        ({"sites": [], "configs": {}}, "'groups'"),
        ({"groups": [], "configs": {}}, "'sites'"),
        ({"groups": [], "sites": []}, "'configs'"),
        ({"groups": [{"name": ""}], "sites": [], "configs": {}}, "groups[0]"),
        ({"groups": [], "sites": [{"name": "x", "url": "u"}], "configs": {}}, "group_id"),
        (
            {"groups": [], "sites": [{"group_id": 1, "name": "x"}], "configs": {}},
            "'url'",
        ),
        ({"groups": [], "sites": [], "configs": {"k": {"nested": 1}}}, "must be a string"),
        ({"groups": [], "sites": [], "configs": {"site.title": True}}, "'site.title'"),
        ({"groups": [], "sites": [], "configs": {"site.backgroundOpacity": 0.5}}, "must be a string"),
        ({"groups": [], "sites": [], "configs": {"site.name": None}}, "must be a string"),
    ],
)
def test_parse_rejects_malformed_documents(raw, message: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_import_document(raw)
    assert message in str(excinfo.value)


def test_malformed_import_writes_nothing(local_client: LocalNavigationClient) -> None:
    raw = {
        "groups": [{"id": 1, "name": "Dev"}],
        "sites": [{"group_id": 1, "name": "ok", "url": "https://ok"}, {"group_id": 1}],
        "configs": {},
    }
    result = asyncio.run(import_data(local_client, raw))

    assert result.success is False
    assert result.error and "sites[1]" in result.error
    assert _counts(local_client) == (0, 0, 0)


def test_import_accepts_json_text(local_client: LocalNavigationClient) -> None:
    text = json.dumps({"groups": [{"id": 3, "name": "Dev"}], "sites": [], "configs": {}})
    result = asyncio.run(import_data(local_client, text))
    assert result.success
    assert result.stats is not None and result.stats.groups.created == 1

    bad = asyncio.run(import_data(local_client, "{not json"))
    assert bad.success is False
    assert "not valid JSON" in (bad.error or "")


def test_import_merges_groups_and_sites(local_client: LocalNavigationClient) -> None:
    store = local_client.store
    dev = store.create_group(Group(id=None, name="Dev", order_num=0))
    store.create_site(
        Site(id=None, group_id=dev.id, name="A", url="https://a.com", icon="x.png", order_num=0)
    )
    document = {
        "groups": [{"id": 7, "name": "Dev", "order_num": 0}, {"id": 8, "name": "News"}],
        "sites": [
            {"group_id": 7, "name": "A2", "url": "https://a.com", "icon": "x.png"},
            {"group_id": 7, "name": "B", "url": "https://b.com"},
            {"group_id": 8, "name": "HN", "url": "https://news.ycombinator.com"},
        ],
        "configs": {"site.title": "Mine"},
    }

    result = asyncio.run(import_data(local_client, document))

    assert result.success
    assert result.to_dict()["stats"] == {
        "groups": {"total": 2, "created": 1, "merged": 1},
        "sites": {"total": 3, "created": 2, "updated": 1, "skipped": 0},
    }
    groups = _dump(local_client)
    assert [g.name for g in groups] == ["Dev", "News"]
    assert [(s.name, s.url) for s in groups[0].sites] == [
        ("A2", "https://a.com"),
        ("B", "https://b.com"),
    ]
    assert groups[0].sites[1].order_num == 1
    assert groups[1].order_num == 1
    assert store.get_configs() == {"site.title": "Mine"}


def test_import_is_idempotent(local_client: LocalNavigationClient) -> None:
    document = {
        "groups": [{"id": 1, "name": "Dev"}, {"id": 2, "name": "Docs"}],
        "sites": [
            {"group_id": 1, "name": "a", "url": "https://a.com"},
            {"group_id": 2, "name": "py", "url": "https://docs.python.org", "notes": "3.12"},
        ],
        "configs": {"site.name": "Home"},
    }
    asyncio.run(import_data(local_client, document))
    before = _dump(local_client)

    second = asyncio.run(import_data(local_client, document))

    stats = second.stats
    assert stats is not None
    assert stats.groups.created == 0 and stats.groups.merged == 2
    assert stats.sites.created == 0 and stats.sites.updated == 0 and stats.sites.skipped == 2
    assert _dump(local_client) == before


def test_site_totals_add_up(local_client: LocalNavigationClient) -> None:
    document = {
        "groups": [{"id": 1, "name": "Dev"}],
        "sites": [
            {"group_id": 1, "name": "a", "url": "https://a.com"},
            {"group_id": 1, "name": "a", "url": "https://a.com"},
            {"group_id": 1, "name": "a again", "url": "https://a.com"},
            {"group_id": 99, "name": "orphan", "url": "https://orphan.com"},
        ],
        "configs": {},
    }
    result = asyncio.run(import_data(local_client, document))

    sites = result.stats.sites  # type: ignore[union-attr]
    assert (sites.created, sites.updated, sites.skipped) == (1, 1, 2)
    assert sites.created + sites.updated + sites.skipped == sites.total == 4
    stored = local_client.store.list_sites(local_client.store.list_groups()[0].id)
    assert [s.name for s in stored] == ["a again"]


def test_duplicate_group_names_in_document_merge(local_client: LocalNavigationClient) -> None:
    document = {
        "groups": [{"id": 1, "name": "Dev"}, {"id": 2, "name": "Dev"}],
        "sites": [
            {"group_id": 1, "name": "a", "url": "https://a.com"},
            {"group_id": 2, "name": "b", "url": "https://b.com"},
        ],
        "configs": {},
    }
    result = asyncio.run(import_data(local_client, document))

    assert result.stats is not None
    assert result.stats.groups.created == 1 and result.stats.groups.merged == 1
    groups = _dump(local_client)
    assert len(groups) == 1
    assert [s.name for s in groups[0].sites] == ["a", "b"]


def test_group_names_match_exactly(local_client: LocalNavigationClient) -> None:
    local_client.store.create_group(Group(id=None, name="dev"))
    document = {"groups": [{"id": 1, "name": "Dev"}], "sites": [], "configs": {}}
    result = asyncio.run(import_data(local_client, document))
    assert result.stats is not None and result.stats.groups.created == 1


def test_export_document_shape() -> None:
    group = GroupWithSites(
        id=1,
        name="Dev",
        order_num=0,
        sites=(Site(id=5, group_id=1, name="a", url="https://a.com"),),
    )
    document = build_export_document([group], DEFAULT_CONFIGS, now=FIXED_NOW)

    assert set(document) == {"groups", "sites", "configs", "version", "exportDate"}
    assert document["groups"] == [{"id": 1, "name": "Dev", "order_num": 0}]
    assert document["sites"][0]["group_id"] == 1
    assert document["version"] == "1.0"
    assert document["exportDate"] == "2024-05-17T08:30:15.123Z"


def test_format_export_date_assumes_utc_for_naive() -> None:
    naive = dt.datetime(2024, 1, 2, 3, 4, 5)
    assert format_export_date(naive) == "2024-01-02T03:04:05.000Z"


def test_export_filename_uses_date() -> None:
    assert export_filename(FIXED_NOW) == "navdash-backup_2024-05-17.json"


def test_export_then_import_changes_nothing(
    local_client: LocalNavigationClient, tmp_path: Path
) -> None:
    store = local_client.store
    dev = store.create_group(Group(id=None, name="Dev", order_num=0))
    docs = store.create_group(Group(id=None, name="Docs", order_num=1))
    store.create_site(Site(id=None, group_id=dev.id, name="a", url="https://a.com", notes="n"))
    store.create_site(Site(id=None, group_id=docs.id, name="py", url="https://docs.python.org"))
    store.set_config("site.title", "Home")
    before = _dump(local_client)
    configs_before = store.get_configs()

    exported = build_export_document(before, store.get_configs(), now=FIXED_NOW)
    backup = tmp_path / export_filename(FIXED_NOW)
    backup.write_text(json.dumps(exported), encoding="utf-8")

    result = asyncio.run(import_data(local_client, load_import_file(backup)))

    assert result.stats is not None
    assert result.stats.groups.created == 0
    assert result.stats.sites.created == 0 and result.stats.sites.updated == 0
    assert _dump(local_client) == before
    assert store.get_configs() == configs_before


def test_load_import_file_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValidationError, match="cannot read import file"):
        load_import_file(tmp_path / "missing.json")


def test_summary_lines() -> None:
    failed = asyncio.run(import_data(None, {"groups": "nope"}))  # type: ignore[arg-type]
    assert failed.summary_lines()[0].startswith("Import failed:")
