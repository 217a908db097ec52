from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from pathlib import Path

from . import db
from .errors import NotFoundError, ValidationError
from .models import Group, OrderEntry, Site


class NavigationStore:
    """sqlite-backed groups, sites and configs."""

    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = True,
    ):
        self.db_path = Path(db_path).expanduser()
        self.conn = db.connect(self.db_path, check_same_thread=check_same_thread)
        db.initialize_schema(self.conn)

    @staticmethod
    def _now_iso() -> str:
        return dt.datetime.now(dt.UTC).isoformat()

    def close(self) -> None:
        self.conn.close()

    # groups

    def list_groups(self) -> list[Group]:
        rows = self.conn.execute(
            "SELECT id, name, order_num FROM groups ORDER BY order_num ASC, id ASC"
        ).fetchall()
        return [Group.from_row(dict(row)) for row in rows]

    def get_group(self, group_id: int) -> Group:
        row = self.conn.execute(
            "SELECT id, name, order_num FROM groups WHERE id = ?", (group_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("group", group_id)
        return Group.from_row(dict(row))

    def create_group(self, group: Group) -> Group:
        if not group.name:
            raise ValidationError("group name is required")
        now = self._now_iso()
        cur = self.conn.execute(
            "INSERT INTO groups(name, order_num, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (group.name, int(group.order_num), now, now),
        )
        self.conn.commit()
        lastrowid = cur.lastrowid
        if lastrowid is None:
            raise RuntimeError("Failed to create group")
        return Group(id=int(lastrowid), name=group.name, order_num=int(group.order_num))

    def update_group(self, group_id: int, group: Group) -> None:
        if not group.name:
            raise ValidationError("group name is required")
        cur = self.conn.execute(
            "UPDATE groups SET name = ?, order_num = ?, updated_at = ? WHERE id = ?",
            (group.name, int(group.order_num), self._now_iso(), group_id),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError("group", group_id)

    def delete_group(self, group_id: int) -> None:
        cur = self.conn.execute("DELETE FROM groups WHERE id = ?", (group_id,))
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError("group", group_id)

    # sites

    def list_sites(self, group_id: int) -> list[Site]:
        rows = self.conn.execute(
            """
            SELECT id, group_id, name, url, icon, description, notes, order_num
            FROM sites
            WHERE group_id = ?
            ORDER BY order_num ASC, id ASC
            """,
            (group_id,),
        ).fetchall()
        return [Site.from_row(dict(row)) for row in rows]

    def get_site(self, site_id: int) -> Site:
        row = self.conn.execute(
            """
            SELECT id, group_id, name, url, icon, description, notes, order_num
            FROM sites WHERE id = ?
            """,
            (site_id,),
        ).fetchone()
        if row is None:
            raise NotFoundError("site", site_id)
        return Site.from_row(dict(row))

    def create_site(self, site: Site) -> Site:
        if not site.name or not site.url:
            raise ValidationError("site name and url are required")
        self.get_group(site.group_id)
        now = self._now_iso()
        cur = self.conn.execute(
            """
            INSERT INTO sites(
                group_id, name, url, icon, description, notes, order_num, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                site.group_id,
                site.name,
                site.url,
                site.icon,
                site.description,
                site.notes,
                int(site.order_num),
                now,
                now,
            ),
        )
        self.conn.commit()
        lastrowid = cur.lastrowid
        if lastrowid is None:
            raise RuntimeError("Failed to create site")
        return self.get_site(int(lastrowid))

    def update_site(self, site_id: int, site: Site) -> None:
        if not site.name or not site.url:
            raise ValidationError("site name and url are required")
        cur = self.conn.execute(
            """
            UPDATE sites
            SET name = ?, url = ?, icon = ?, description = ?, notes = ?, order_num = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                site.name,
                site.url,
                site.icon,
                site.description,
                site.notes,
                int(site.order_num),
                self._now_iso(),
                site_id,
            ),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError("site", site_id)

    def delete_site(self, site_id: int) -> None:
        cur = self.conn.execute("DELETE FROM sites WHERE id = ?", (site_id,))
        self.conn.commit()
        if cur.rowcount == 0:
            raise NotFoundError("site", site_id)

    # ordering

    def set_group_order(self, entries: Sequence[OrderEntry]) -> None:
        self._set_order("groups", "group", entries)

    def set_site_order(self, entries: Sequence[OrderEntry]) -> None:
        self._set_order("sites", "site", entries)

    def _set_order(self, table: str, kind: str, entries: Sequence[OrderEntry]) -> None:
        now = self._now_iso()
        # All rows move together or not at all.
        with self.conn:
            for entry in entries:
                cur = self.conn.execute(
                    f"UPDATE {table} SET order_num = ?, updated_at = ? WHERE id = ?",
                    (int(entry["order_num"]), now, int(entry["id"])),
                )
                if cur.rowcount == 0:
                    raise NotFoundError(kind, entry["id"])

    # configs

    def get_configs(self) -> dict[str, str]:
        rows = self.conn.execute("SELECT key, value FROM configs ORDER BY key").fetchall()
        return {str(row["key"]): str(row["value"]) for row in rows}

    def set_config(self, key: str, value: str) -> None:
        if not key:
            raise ValidationError("config key is required")
        self.conn.execute(
            """
            INSERT INTO configs(key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, str(value)),
        )
        self.conn.commit()
