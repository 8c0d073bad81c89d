"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.movement_writer import MovementWriter
from inventory_kernel.services.stock_ledger import StockLedger

__all__ = [
    "MovementWriter",
    "StockLedger",
]
