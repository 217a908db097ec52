from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, TypedDict


class OrderEntry(TypedDict):
    id: int
    order_num: int


@dataclass(frozen=True)
class Group:
    id: int | None
    name: str
    order_num: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "order_num": self.order_num}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Group:
        return cls(
            id=_optional_int(row.get("id")),
            name=str(row["name"]),
            order_num=int(row.get("order_num") or 0),
        )


@dataclass(frozen=True)
class Site:
    id: int | None
    group_id: int
    name: str
    url: str
    icon: str = ""
    description: str = ""
    notes: str = ""
    order_num: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Site:
        return cls(
            id=_optional_int(row.get("id")),
            group_id=int(row["group_id"]),
            name=str(row["name"]),
            url=str(row["url"]),
            icon=str(row.get("icon") or ""),
            description=str(row.get("description") or ""),
            notes=str(row.get("notes") or ""),
            order_num=int(row.get("order_num") or 0),
        )


@dataclass(frozen=True)
class GroupWithSites:
    id: int
    name: str
    order_num: int
    sites: tuple[Site, ...] = field(default_factory=tuple)

    @property
    def group(self) -> Group:
        return Group(id=self.id, name=self.name, order_num=self.order_num)

    @classmethod
    def build(cls, group: Group, sites: list[Site] | tuple[Site, ...]) -> GroupWithSites:
        if group.id is None:
            raise ValueError("group without id cannot hold sites")
        return cls(id=group.id, name=group.name, order_num=group.order_num, sites=tuple(sites))


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(value)
