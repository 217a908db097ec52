from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from dataclasses import replace
from typing import Any, TypeVar

from .models import OrderEntry

T = TypeVar("T")


def _entity_id(item: Any) -> Any:
    return getattr(item, "id", None)


def move_item(items: Sequence[T], source_index: int, target_index: int) -> list[T]:
    """Move the element at ``source_index`` so it ends up at ``target_index``.

    Elements between the two positions shift by one. Equal or out-of-range
    indices leave the sequence unchanged.
    """

    result = list(items)
    size = len(result)
    if source_index == target_index:
        return result
    if not (0 <= source_index < size and 0 <= target_index < size):
        return result
    moved = result.pop(source_index)
    result.insert(target_index, moved)
    return result


def index_of(
    items: Sequence[T], entity_id: Hashable, *, key: Callable[[T], Any] = _entity_id
) -> int:
    for index, item in enumerate(items):
        if key(item) == entity_id:
            return index
    return -1


def move_by_id(
    items: Sequence[T],
    active_id: Hashable,
    over_id: Hashable | None,
    *,
    key: Callable[[T], Any] = _entity_id,
) -> list[T]:
    # A reload can replace the sequence while a drag is in flight.
    if over_id is None or active_id == over_id:
        return list(items)
    source = index_of(items, active_id, key=key)
    target = index_of(items, over_id, key=key)
    if source == -1 or target == -1:
        return list(items)
    return move_item(items, source, target)


def order_entries(items: Sequence[Any]) -> list[OrderEntry]:
    """Derive persisted order from visual order, ignoring stored order_num."""

    persisted = [item for item in items if _entity_id(item) is not None]
    return [{"id": int(item.id), "order_num": index} for index, item in enumerate(persisted)]


def renumber(items: Sequence[T]) -> list[T]:
    return [replace(item, order_num=index) for index, item in enumerate(items)]  # type: ignore[type-var]


def next_order_num(items: Sequence[Any]) -> int:
    if not items:
        return 0
    return max(int(item.order_num) for item in items) + 1


def is_contiguous(items: Sequence[Any]) -> bool:
    return sorted(int(item.order_num) for item in items) == list(range(len(items)))
