from __future__ import annotations

import logging
from enum import Enum

from .errors import EditModeError

logger = logging.getLogger(__name__)


class EditState(str, Enum):
    VIEWING = "viewing"
    REORDERING_GROUPS = "reordering_groups"
    REORDERING_SITES = "reordering_sites"


class EditMode:
    """Tracks which reorder scope, if any, is active.

    Only one scope can be active. Site reordering is bound to a single group.
    """

    def __init__(self) -> None:
        self.state = EditState.VIEWING
        self.group_id: int | None = None

    def __repr__(self) -> str:
        if self.state is EditState.REORDERING_SITES:
            return f"EditMode({self.state.value}, group_id={self.group_id})"
        return f"EditMode({self.state.value})"

    @property
    def is_viewing(self) -> bool:
        return self.state is EditState.VIEWING

    def start_group_sort(self) -> None:
        if self.state is EditState.REORDERING_GROUPS:
            return
        if self.state is EditState.REORDERING_SITES:
            raise EditModeError(
                f"cannot sort groups while sorting sites of group {self.group_id}"
            )
        self.state = EditState.REORDERING_GROUPS
        self.group_id = None

    def start_site_sort(self, group_id: int) -> None:
        if self.state is EditState.REORDERING_SITES and self.group_id == group_id:
            return
        if self.state is EditState.REORDERING_GROUPS:
            raise EditModeError("cannot sort sites while sorting groups")
        if self.state is EditState.REORDERING_SITES:
            raise EditModeError(
                f"already sorting sites of group {self.group_id}, cannot switch to {group_id}"
            )
        self.state = EditState.REORDERING_SITES
        self.group_id = group_id

    def accepts_drag(self, group_id: int | None = None) -> bool:
        if group_id is None:
            return self.state is EditState.REORDERING_GROUPS
        return self.state is EditState.REORDERING_SITES and self.group_id == group_id

    def finish(self) -> None:
        self._to_viewing()

    def cancel(self) -> None:
        self._to_viewing()

    def reset(self) -> None:
        if not self.is_viewing:
            logger.info("abandoning %s after reload", self.state.value)
        self._to_viewing()

    def _to_viewing(self) -> None:
        self.state = EditState.VIEWING
        self.group_id = None
