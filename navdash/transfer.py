from __future__ import annotations

import datetime as dt
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .client import NavigationClient
from .errors import TransportError, ValidationError
from .models import Group, GroupWithSites, Site
from .ordering import next_order_num

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
SITE_COMPARE_FIELDS = ("name", "icon", "description", "notes")


@dataclass(frozen=True)
class ImportGroup:
    ref: int | None
    name: str
    order_num: int


@dataclass(frozen=True)
class ImportSite:
    ref: int | None
    group_ref: int
    name: str
    url: str
    icon: str = ""
    description: str = ""
    notes: str = ""
    order_num: int = 0


@dataclass(frozen=True)
class ImportDocument:
    groups: tuple[ImportGroup, ...]
    sites: tuple[ImportSite, ...]
    configs: dict[str, str]
    version: str | None = None


@dataclass
class GroupStats:
    total: int = 0
    created: int = 0
    merged: int = 0


@dataclass
class SiteStats:
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


@dataclass
class ImportStats:
    groups: GroupStats = field(default_factory=GroupStats)
    sites: SiteStats = field(default_factory=SiteStats)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "groups": {
                "total": self.groups.total,
                "created": self.groups.created,
                "merged": self.groups.merged,
            },
            "sites": {
                "total": self.sites.total,
                "created": self.sites.created,
                "updated": self.sites.updated,
                "skipped": self.sites.skipped,
            },
        }


@dataclass
class ImportResult:
    success: bool
    error: str | None = None
    stats: ImportStats | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        if self.stats is not None:
            payload["stats"] = self.stats.to_dict()
        return payload

    def summary_lines(self) -> list[str]:
        if not self.success or self.stats is None:
            return [f"Import failed: {self.error or 'unknown error'}"]
        groups = self.stats.groups
        sites = self.stats.sites
        return [
            "Import succeeded",
            f"Groups: {groups.total} found, {groups.created} created, {groups.merged} merged",
            (
                f"Sites: {sites.total} found, {sites.created} created, "
                f"{sites.updated} updated, {sites.skipped} skipped"
            ),
        ]


# parsing


def _require_str(entry: Mapping[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{where}: '{key}' must be a non-empty string")
    return value


def _optional_str(entry: Mapping[str, Any], key: str, where: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{where}: '{key}' must be a string")
    return value


def _optional_int(entry: Mapping[str, Any], key: str, where: str) -> int | None:
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValidationError(f"{where}: '{key}' must be an integer")
    return int(value)


def _parse_group(entry: Any, index: int) -> ImportGroup:
    where = f"groups[{index}]"
    if not isinstance(entry, Mapping):
        raise ValidationError(f"{where}: must be an object")
    return ImportGroup(
        ref=_optional_int(entry, "id", where),
        name=_require_str(entry, "name", where),
        order_num=_optional_int(entry, "order_num", where) or 0,
    )


def _parse_site(entry: Any, index: int) -> ImportSite:
    where = f"sites[{index}]"
    if not isinstance(entry, Mapping):
        raise ValidationError(f"{where}: must be an object")
    group_ref = _optional_int(entry, "group_id", where)
    if group_ref is None:
        raise ValidationError(f"{where}: 'group_id' is required")
    return ImportSite(
        ref=_optional_int(entry, "id", where),
        group_ref=group_ref,
        name=_require_str(entry, "name", where),
        url=_require_str(entry, "url", where),
        icon=_optional_str(entry, "icon", where),
        description=_optional_str(entry, "description", where),
        notes=_optional_str(entry, "notes", where),
        order_num=_optional_int(entry, "order_num", where) or 0,
    )


def parse_import_document(raw: Any) -> ImportDocument:
    """Validate an untrusted import payload and convert it to plain records.

    Raises ``ValidationError`` on the first problem found; nothing is written
    before the whole document has been checked.
    """

    if not isinstance(raw, Mapping):
        raise ValidationError("import document must be a JSON object")
    groups = raw.get("groups")
    if not isinstance(groups, list):
        raise ValidationError("import document is missing the 'groups' list")
    sites = raw.get("sites")
    if not isinstance(sites, list):
        raise ValidationError("import document is missing the 'sites' list")
    configs = raw.get("configs")
    if not isinstance(configs, Mapping):
        raise ValidationError("import document is missing the 'configs' object")

    parsed_configs: dict[str, str] = {}
    for key, value in configs.items():
        if not isinstance(key, str) or not key:
            raise ValidationError("configs: keys must be non-empty strings")
        if not isinstance(value, str):
            raise ValidationError(f"configs: value for '{key}' must be a string")
        parsed_configs[key] = value

    version = raw.get("version")
    return ImportDocument(
        groups=tuple(_parse_group(entry, i) for i, entry in enumerate(groups)),
        sites=tuple(_parse_site(entry, i) for i, entry in enumerate(sites)),
        configs=parsed_configs,
        version=str(version) if version is not None else None,
    )


def loads_import_document(text: str | bytes) -> ImportDocument:
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(f"import file is not valid JSON: {exc}") from exc
    return parse_import_document(raw)


def load_import_file(path: str | Path) -> ImportDocument:
    try:
        text = Path(path).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"cannot read import file: {exc}") from exc
    return loads_import_document(text)


# reconciliation


def _site_differs(existing: Site, incoming: ImportSite) -> bool:
    return any(
        getattr(existing, name) != getattr(incoming, name) for name in SITE_COMPARE_FIELDS
    )


async def reconcile_import(client: NavigationClient, document: ImportDocument) -> ImportResult:
    """Merge ``document`` into the state behind ``client``.

    Groups match existing groups by exact name; sites match existing sites of
    the resolved group by exact url. Entries later in the document see the
    ones before them as existing.
    """

    stats = ImportStats()

    existing_groups = [g for g in await client.list_groups() if g.id is not None]
    group_by_name: dict[str, int] = {}
    for group in existing_groups:
        group_by_name.setdefault(group.name, int(group.id))  # type: ignore[arg-type]
    next_group_order = next_order_num(existing_groups)

    resolved_groups: dict[int, int] = {}
    for incoming in document.groups:
        stats.groups.total += 1
        group_id = group_by_name.get(incoming.name)
        if group_id is not None:
            stats.groups.merged += 1
        else:
            created = await client.create_group(
                Group(id=None, name=incoming.name, order_num=next_group_order)
            )
            if created.id is None:
                raise TransportError(f"group '{incoming.name}' was created without an id")
            next_group_order += 1
            group_id = int(created.id)
            group_by_name[incoming.name] = group_id
            stats.groups.created += 1
        if incoming.ref is not None:
            resolved_groups.setdefault(incoming.ref, group_id)

    sites_by_group: dict[int, list[Site]] = {}

    async def sites_for(group_id: int) -> list[Site]:
        if group_id not in sites_by_group:
            sites_by_group[group_id] = list(await client.list_sites(group_id))
        return sites_by_group[group_id]

    for incoming_site in document.sites:
        stats.sites.total += 1
        target = resolved_groups.get(incoming_site.group_ref)
        if target is None:
            logger.warning(
                "skipping site %s: unknown group reference %s",
                incoming_site.url,
                incoming_site.group_ref,
            )
            stats.sites.skipped += 1
            continue
        siblings = await sites_for(target)
        position, match = next(
            ((i, s) for i, s in enumerate(siblings) if s.url == incoming_site.url),
            (-1, None),
        )
        if match is None:
            created_site = await client.create_site(
                Site(
                    id=None,
                    group_id=target,
                    name=incoming_site.name,
                    url=incoming_site.url,
                    icon=incoming_site.icon,
                    description=incoming_site.description,
                    notes=incoming_site.notes,
                    order_num=next_order_num(siblings),
                )
            )
            siblings.append(created_site)
            stats.sites.created += 1
        elif match.id is not None and _site_differs(match, incoming_site):
            updated = replace(
                match,
                name=incoming_site.name,
                icon=incoming_site.icon,
                description=incoming_site.description,
                notes=incoming_site.notes,
            )
            await client.update_site(int(match.id), updated)
            siblings[position] = updated
            stats.sites.updated += 1
        else:
            stats.sites.skipped += 1

    for key, value in document.configs.items():
        await client.set_config(key, value)

    logger.info("import finished: %s", stats.to_dict())
    return ImportResult(success=True, stats=stats)


async def import_data(client: NavigationClient, raw: Any) -> ImportResult:
    """Validate then reconcile; a malformed document yields a failed result."""

    try:
        if isinstance(raw, ImportDocument):
            document = raw
        elif isinstance(raw, (str, bytes)):
            document = loads_import_document(raw)
        else:
            document = parse_import_document(raw)
    except ValidationError as exc:
        logger.warning("import rejected: %s", exc)
        return ImportResult(success=False, error=str(exc))
    return await reconcile_import(client, document)


# export


def format_export_date(now: dt.datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.UTC)
    now = now.astimezone(dt.UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def build_export_document(
    groups: Iterable[GroupWithSites],
    configs: Mapping[str, str],
    *,
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    group_list = list(groups)
    return {
        "groups": [group.group.to_dict() for group in group_list],
        "sites": [site.to_dict() for group in group_list for site in group.sites],
        "configs": dict(configs),
        "version": EXPORT_VERSION,
        "exportDate": format_export_date(now or dt.datetime.now(dt.UTC)),
    }


def export_filename(now: dt.datetime | None = None) -> str:
    stamp = (now or dt.datetime.now(dt.UTC)).date().isoformat()
    return f"navdash-backup_{stamp}.json"
