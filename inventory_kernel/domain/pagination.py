"""
Cursor pagination for stock level scans.

Cursors are opaque to callers.  Internally a cursor is the decimal offset of
the next row in the scan's stable (item_id, location_id) ordering; the next
cursor is only issued when a full page came back.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_kernel.domain.stock import StockLevel
from inventory_kernel.exceptions import InvalidCursorError


@dataclass(frozen=True, slots=True)
class StockLevelPage:
    """One page of a stock level scan."""

    items: tuple[StockLevel, ...]
    next_cursor: str | None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def __len__(self) -> int:
        return len(self.items)


def decode_cursor(cursor: str | None) -> int:
    """
    Turn a cursor into a row offset.

    Raises:
        InvalidCursorError: cursor is not a non-negative decimal string.
    """
    if cursor is None or cursor == "":
        return 0
    if not cursor.isdigit():
        raise InvalidCursorError(cursor)
    return int(cursor)


def encode_cursor(offset: int) -> str:
    return str(offset)


def next_cursor(offset: int, limit: int, returned: int) -> str | None:
    if returned < limit:
        return None
    return encode_cursor(offset + limit)
