"""
StockReportService -- paginated stock reports joined with item data.

Responsibility:
    Builds the low-stock and stock-valuation reports from the ledger's
    paginated level scans and an ItemCatalog lookup.  Item master data
    (SKU, name, unit cost) belongs to another component; this service only
    reads it through the ItemCatalog interface.

Architecture position:
    Services -- read-only orchestration over StockLedgerPort.

Behaviour:
    - Levels whose item the catalog does not know are left out of the
      report.  The page's next_cursor still advances past them, so a page
      can hold fewer rows than the limit while more pages remain.
    - Valuation is unit_cost * quantity_on_hand in Decimal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from inventory_kernel.domain.pagination import StockLevelPage
from inventory_kernel.domain.ports import StockLedgerPort
from inventory_kernel.domain.stock import StockLevel


@dataclass(frozen=True)
class CatalogItem:
    item_id: UUID
    sku: str
    name: str
    unit_cost: Decimal = Decimal("0")


class ItemCatalog(ABC):
    """Read access to item master data owned by another component."""

    @abstractmethod
    def find_by_id(self, item_id: UUID) -> CatalogItem | None: ...


class InMemoryItemCatalog(ItemCatalog):
    """Dictionary-backed catalog for development and tests."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items = {item.item_id: item for item in items}

    def add(self, item: CatalogItem) -> None:
        self._items[item.item_id] = item

    def find_by_id(self, item_id: UUID) -> CatalogItem | None:
        return self._items.get(item_id)


@dataclass(frozen=True)
class LowStockReportItem:
    item: CatalogItem
    stock: StockLevel


@dataclass(frozen=True)
class StockValuationReportItem:
    item: CatalogItem
    stock: StockLevel
    valuation: Decimal


@dataclass(frozen=True)
class LowStockReport:
    items: tuple[LowStockReportItem, ...]
    next_cursor: str | None


@dataclass(frozen=True)
class StockValuationReport:
    items: tuple[StockValuationReportItem, ...]
    next_cursor: str | None

    @property
    def total_valuation(self) -> Decimal:
        return sum((row.valuation for row in self.items), Decimal("0"))


class StockReportService:
    def __init__(self, ledger: StockLedgerPort, catalog: ItemCatalog):
        self._ledger = ledger
        self._catalog = catalog

    def low_stock_report(
        self,
        threshold: int,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> LowStockReport:
        """Items at or below ``threshold`` units at some location."""
        page = self._ledger.get_stock_levels_below_threshold(threshold, limit, cursor)
        rows = tuple(
            LowStockReportItem(item=item, stock=level)
            for item, level in self._join(page)
        )
        return LowStockReport(items=rows, next_cursor=page.next_cursor)

    def stock_valuation_report(
        self,
        location_id: UUID | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> StockValuationReport:
        """Value of stock on hand, for one location or for all of them."""
        if location_id is not None:
            page = self._ledger.get_stock_levels_by_location(location_id, limit, cursor)
        else:
            page = self._ledger.get_all_stock_levels(limit, cursor)

        rows = tuple(
            StockValuationReportItem(
                item=item,
                stock=level,
                valuation=item.unit_cost * level.quantity_on_hand,
            )
            for item, level in self._join(page)
        )
        return StockValuationReport(items=rows, next_cursor=page.next_cursor)

    def _join(self, page: StockLevelPage):
        for level in page.items:
            item = self._catalog.find_by_id(level.item_id)
            if item is not None:
                yield item, level
