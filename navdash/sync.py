from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any, TypeVar

from . import transfer
from .client import NavigationClient
from .edit_mode import EditMode, EditState
from .errors import AuthorizationError, EditModeError, NavdashError, NotFoundError, ValidationError
from .models import Group, GroupWithSites, OrderEntry, Site
from .ordering import is_contiguous, move_by_id, move_item, next_order_num, order_entries
from .sites import filter_groups, with_defaults

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Replica:
    """Client-side copy of groups, sites and configs.

    Only ``replace`` and ``clear`` change it, and each swaps whole values.
    """

    def __init__(self) -> None:
        self._groups: tuple[GroupWithSites, ...] = ()
        self._configs: dict[str, str] = with_defaults({})
        self.loaded = False

    @property
    def groups(self) -> tuple[GroupWithSites, ...]:
        return self._groups

    @property
    def configs(self) -> dict[str, str]:
        return dict(self._configs)

    def replace(
        self,
        *,
        groups: tuple[GroupWithSites, ...] | None = None,
        configs: Mapping[str, str] | None = None,
    ) -> None:
        if groups is not None:
            self._groups = tuple(groups)
            self.loaded = True
        if configs is not None:
            self._configs = dict(configs)

    def clear(self) -> None:
        self._groups = ()
        self._configs = with_defaults({})
        self.loaded = False

    def snapshot(self) -> tuple[tuple[GroupWithSites, ...], tuple[tuple[str, str], ...]]:
        return self._groups, tuple(sorted(self._configs.items()))

    def find_group(self, group_id: int) -> GroupWithSites | None:
        for group in self._groups:
            if group.id == group_id:
                return group
        return None

    def find_site(self, site_id: int) -> Site | None:
        for group in self._groups:
            for site in group.sites:
                if site.id == site_id:
                    return site
        return None


class SyncController:
    """Runs every structural change as "mutate, then reload everything".

    Local state is never patched with a mutation's result. A failed mutation
    leaves the replica as it was; a failed reload after a committed mutation
    is reported without rolling the mutation back.
    """

    def __init__(
        self,
        client: NavigationClient,
        *,
        replica: Replica | None = None,
        edit_mode: EditMode | None = None,
    ) -> None:
        self.client = client
        self.replica = replica or Replica()
        self.edit_mode = edit_mode or EditMode()
        self.authenticated = False
        self.loading = False
        self.last_error: str | None = None
        self._draft_groups: list[GroupWithSites] | None = None
        self._draft_sites: list[Site] | None = None

    # session

    async def check_auth(self) -> bool:
        if not await self._run(self.client.is_authorized()):
            self._drop_session()
            return False
        self.authenticated = True
        await self.reload()
        await self.reload_configs()
        return True

    async def login(self, username: str, password: str) -> bool:
        if not await self._run(self.client.login(username, password)):
            self.authenticated = False
            self.last_error = "invalid username or password"
            return False
        self.authenticated = True
        await self.reload()
        await self.reload_configs()
        return True

    def logout(self) -> None:
        self.client.logout()
        self._drop_session()

    def _drop_session(self) -> None:
        self.authenticated = False
        self.replica.clear()
        self._leave_sort()

    async def _run(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except AuthorizationError:
            logger.warning("authorization rejected, discarding local state")
            self._drop_session()
            raise

    # reload

    async def reload(self) -> tuple[GroupWithSites, ...]:
        self.loading = True
        try:
            groups = [g for g in await self._run(self.client.list_groups()) if g.id is not None]

            async def fetch(group: Group) -> tuple[int, list[Site]]:
                group_id = int(group.id)  # type: ignore[arg-type]
                return group_id, await self.client.list_sites(group_id)

            fetched = await self._run(asyncio.gather(*(fetch(g) for g in groups)))
            sites_by_group = dict(fetched)
            combined = tuple(
                GroupWithSites.build(group, sites_by_group.get(int(group.id), []))  # type: ignore[arg-type]
                for group in groups
            )
        except NavdashError as exc:
            self.last_error = f"failed to load data: {exc}"
            logger.warning(self.last_error)
            raise
        finally:
            self.loading = False
        self.replica.replace(groups=combined)
        logger.debug("reloaded %d groups", len(combined))
        return combined

    async def reload_configs(self) -> dict[str, str]:
        configs = with_defaults(await self._run(self.client.get_configs()))
        self.replica.replace(configs=configs)
        return configs

    async def _mutate(self, action: str, call: Awaitable[T], *, finishing: bool = False) -> T | None:
        try:
            result = await self._run(call)
        except NotFoundError as exc:
            # The target vanished underneath us; resync instead of failing.
            logger.info("%s skipped: %s", action, exc)
            self._leave_sort()
            await self.reload()
            return None
        except NavdashError as exc:
            self.last_error = f"{action} failed: {exc}"
            logger.warning(self.last_error)
            raise
        logger.info("%s succeeded", action)
        if finishing:
            self.edit_mode.finish()
        self._leave_sort()
        await self.reload()
        return result

    # groups

    def new_group_template(self) -> Group:
        return Group(id=None, name="", order_num=next_order_num(self.replica.groups))

    async def create_group(self, group: Group) -> Group | None:
        if not group.name:
            raise ValidationError("group name is required")
        return await self._mutate("create group", self.client.create_group(group))

    async def update_group(self, group: Group) -> bool:
        if group.id is None or not self._known_group(group.id):
            return False
        if not group.name:
            raise ValidationError("group name is required")
        await self._mutate("update group", self.client.update_group(group.id, group))
        return True

    async def rename_group(self, group_id: int, name: str) -> bool:
        current = self.replica.find_group(group_id)
        if current is None:
            return False
        return await self.update_group(replace(current.group, name=name))

    async def delete_group(self, group_id: int) -> bool:
        if not self._known_group(group_id):
            return False
        remaining = [g for g in self.replica.groups if g.id != group_id]
        await self._mutate(
            "delete group",
            self._delete_and_compact(
                self.client.delete_group(group_id), self.client.set_group_order, remaining
            ),
        )
        return True

    def _known_group(self, group_id: int) -> bool:
        if self.replica.find_group(group_id) is not None:
            return True
        logger.info("group %s is not in the current replica", group_id)
        return False

    # sites

    def new_site_template(self, group_id: int) -> Site:
        group = self.replica.find_group(group_id)
        order_num = next_order_num(group.sites) if group is not None else 0
        return Site(id=None, group_id=group_id, name="", url="", order_num=order_num)

    async def create_site(self, site: Site) -> Site | None:
        if not site.name or not site.url:
            raise ValidationError("site name and url are required")
        if not self._known_group(site.group_id):
            raise NotFoundError("group", site.group_id)
        return await self._mutate("create site", self.client.create_site(site))

    async def update_site(self, site: Site) -> bool:
        if site.id is None or not self._known_site(site.id):
            return False
        if not site.name or not site.url:
            raise ValidationError("site name and url are required")
        await self._mutate("update site", self.client.update_site(site.id, site))
        return True

    async def delete_site(self, site_id: int) -> bool:
        site = self.replica.find_site(site_id)
        if site is None:
            logger.info("site %s is not in the current replica", site_id)
            return False
        group = self.replica.find_group(site.group_id)
        remaining = [s for s in (group.sites if group else ()) if s.id != site_id]
        await self._mutate(
            "delete site",
            self._delete_and_compact(
                self.client.delete_site(site_id), self.client.set_site_order, remaining
            ),
        )
        return True

    def _known_site(self, site_id: int) -> bool:
        if self.replica.find_site(site_id) is not None:
            return True
        logger.info("site %s is not in the current replica", site_id)
        return False

    async def _delete_and_compact(
        self,
        delete: Awaitable[None],
        set_order: Callable[[list[OrderEntry]], Awaitable[None]],
        remaining: Sequence[Any],
    ) -> None:
        # Close the gap left by the deleted row so order_num stays 0..n-1.
        await delete
        if remaining and not is_contiguous(remaining):
            await set_order(order_entries(remaining))

    # reordering

    @property
    def draft_groups(self) -> tuple[GroupWithSites, ...]:
        return tuple(self._draft_groups or ())

    @property
    def draft_sites(self) -> tuple[Site, ...]:
        return tuple(self._draft_sites or ())

    def start_group_sort(self) -> None:
        self.edit_mode.start_group_sort()
        if self._draft_groups is None:
            self._draft_groups = list(self.replica.groups)

    def start_site_sort(self, group_id: int) -> bool:
        group = self.replica.find_group(group_id)
        if group is None:
            return False
        already_active = self.edit_mode.accepts_drag(group_id)
        self.edit_mode.start_site_sort(group_id)
        if not already_active:
            self._draft_sites = list(group.sites)
        return True

    def cancel_sort(self) -> None:
        self.edit_mode.cancel()
        self._draft_groups = None
        self._draft_sites = None

    def _leave_sort(self) -> None:
        self.edit_mode.reset()
        self._draft_groups = None
        self._draft_sites = None

    def drag_groups(self, active_id: Any, over_id: Any) -> bool:
        if not self.edit_mode.accepts_drag() or self._draft_groups is None:
            return False
        moved = move_by_id(self._draft_groups, active_id, over_id)
        changed = moved != self._draft_groups
        self._draft_groups = moved
        return changed

    def drag_sites(self, active_id: Any, over_id: Any) -> bool:
        if not self._accepts_site_drag():
            return False
        moved = move_by_id(self._draft_sites or [], active_id, over_id)
        changed = moved != self._draft_sites
        self._draft_sites = moved
        return changed

    def move_group(self, source_index: int, target_index: int) -> bool:
        if not self.edit_mode.accepts_drag() or self._draft_groups is None:
            return False
        moved = move_item(self._draft_groups, source_index, target_index)
        changed = moved != self._draft_groups
        self._draft_groups = moved
        return changed

    def move_site(self, source_index: int, target_index: int) -> bool:
        if not self._accepts_site_drag():
            return False
        moved = move_item(self._draft_sites or [], source_index, target_index)
        changed = moved != self._draft_sites
        self._draft_sites = moved
        return changed

    def _accepts_site_drag(self) -> bool:
        return (
            self.edit_mode.state is EditState.REORDERING_SITES and self._draft_sites is not None
        )

    async def save_group_order(self) -> None:
        if self.edit_mode.state is not EditState.REORDERING_GROUPS:
            raise EditModeError("group sorting is not active")
        entries = order_entries(self.draft_groups)
        await self._mutate(
            "save group order", self.client.set_group_order(entries), finishing=True
        )

    async def save_site_order(self) -> None:
        if self.edit_mode.state is not EditState.REORDERING_SITES:
            raise EditModeError("site sorting is not active")
        entries = order_entries(self.draft_sites)
        await self._mutate("save site order", self.client.set_site_order(entries), finishing=True)

    # import / export / configs

    async def import_data(self, raw: Any) -> transfer.ImportResult:
        try:
            result = await self._run(transfer.import_data(self.client, raw))
        except NavdashError as exc:
            self.last_error = f"import failed: {exc}"
            logger.warning(self.last_error)
            raise
        if not result.success:
            self.last_error = f"import failed: {result.error}"
            return result
        self._leave_sort()
        await self.reload()
        await self.reload_configs()
        return result

    def export_document(self, *, now: dt.datetime | None = None) -> dict[str, Any]:
        return transfer.build_export_document(
            self.replica.groups, self.replica.configs, now=now
        )

    async def save_configs(self, values: Mapping[str, str]) -> list[str]:
        current = self.replica.configs
        changed = [key for key, value in values.items() if current.get(key) != value]
        for key in changed:
            await self._run(self.client.set_config(key, str(values[key])))
        if changed:
            await self.reload_configs()
        return changed

    def filtered_groups(self, keyword: str) -> list[GroupWithSites]:
        return filter_groups(self.replica.groups, keyword)
