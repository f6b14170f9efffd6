"""
View state owned by the reconciler.

This module holds the three pieces of mutable state the reconciler owns and
the pure arithmetic that keeps the cursor valid:
  - Registry: container id -> ContainerInfo (upsert / remove by identity)
  - StatsHolder: the latest StatsSnapshot, replaced wholesale
  - Cursor arithmetic: max_offset, clamp_cursor, move_cursor, toggle_inspect

Ownership:
  - Only the reconciler thread touches Registry and StatsHolder, so no
    locking is done here. Producers talk to the reconciler through the
    SignalBus only.

Cursor Invariants (hold after every function in this module):
  - 0 <= field_index <= MAX_FIELD_INDEX
  - 0 <= offset <= min(max_offset(size), max_visible_rows)
"""

from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional

from .model import MAX_FIELD_INDEX, ContainerInfo, Cursor, StatsSnapshot


class Move(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class Registry:
    """Running containers keyed by id."""

    def __init__(self):
        self._containers: Dict[str, ContainerInfo] = {}

    def __len__(self) -> int:
        return len(self._containers)

    def __contains__(self, container_id: str) -> bool:
        return container_id in self._containers

    def upsert(self, container: ContainerInfo) -> None:
        self._containers[container.id] = container

    def remove(self, container_id: str) -> bool:
        """Delete by id. Returns False if the id was not registered."""
        return self._containers.pop(container_id, None) is not None

    def get(self, container_id: str) -> Optional[ContainerInfo]:
        return self._containers.get(container_id)

    def sorted(self) -> List[ContainerInfo]:
        """Rows in display order (name, then id)."""
        return sorted(self._containers.values(), key=lambda c: (c.name, c.id))


class StatsHolder:
    def __init__(self):
        self.current: Optional[StatsSnapshot] = None

    def replace(self, snapshot: StatsSnapshot) -> None:
        self.current = snapshot


def max_offset(size: int) -> int:
    return max(size - 1, 0)


def clamp_cursor(cursor: Cursor, size: int, max_visible_rows: int) -> Cursor:
    """Return cursor pulled back inside the bounds for a registry of `size`."""
    upper = min(max_offset(size), max_visible_rows)
    offset = max(0, min(cursor.offset, upper))
    field_index = max(0, min(cursor.field_index, MAX_FIELD_INDEX))
    if offset == cursor.offset and field_index == cursor.field_index:
        return cursor
    return replace(cursor, offset=offset, field_index=field_index)


def move_cursor(cursor: Cursor, move: Move, size: int, max_visible_rows: int) -> Cursor:
    """Apply one navigation step; moves past an edge are no-ops."""
    cursor = clamp_cursor(cursor, size, max_visible_rows)
    if move is Move.LEFT:
        return replace(cursor, field_index=max(cursor.field_index - 1, 0))
    if move is Move.RIGHT:
        return replace(cursor, field_index=min(cursor.field_index + 1, MAX_FIELD_INDEX))
    if move is Move.UP:
        return replace(cursor, offset=max(cursor.offset - 1, 0))
    if move is Move.DOWN:
        return replace(cursor, offset=min(cursor.offset + 1, max_offset(size), max_visible_rows))
    raise ValueError(f"Unknown move: {move}")


def toggle_inspect(cursor: Cursor) -> Cursor:
    return replace(cursor, inspect_mode=not cursor.inspect_mode)
