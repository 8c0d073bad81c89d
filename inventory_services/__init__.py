"""
inventory_services -- collaborator workflows over the stock ledger.

Responsibility:
    Adjustments, inter-location transfers, and stock reports.  Each service
    is handed a ``StockLedgerPort`` and never touches the database itself.

Architecture position:
    Services -- depends on inventory_kernel.  The kernel MUST NEVER import
    from this package (enforced by tests/architecture/test_kernel_boundary.py).
"""

from inventory_services.adjustment_service import (
    Adjustment,
    AdjustmentResult,
    AdjustmentService,
    StockAdjustmentRequest,
)
from inventory_services.stock_report_service import (
    CatalogItem,
    InMemoryItemCatalog,
    ItemCatalog,
    LowStockReport,
    LowStockReportItem,
    StockReportService,
    StockValuationReport,
    StockValuationReportItem,
)
from inventory_services.transfer_service import TransferResult, TransferService

__all__ = [
    "Adjustment",
    "AdjustmentResult",
    "AdjustmentService",
    "CatalogItem",
    "InMemoryItemCatalog",
    "ItemCatalog",
    "LowStockReport",
    "LowStockReportItem",
    "StockAdjustmentRequest",
    "StockReportService",
    "StockValuationReport",
    "StockValuationReportItem",
    "TransferResult",
    "TransferService",
]
