"""ORM models for the inventory kernel."""

from inventory_kernel.models.stock import (
    LEDGER_TABLES,
    StockLevelModel,
    StockMovementModel,
)

__all__ = [
    "LEDGER_TABLES",
    "StockLevelModel",
    "StockMovementModel",
]
