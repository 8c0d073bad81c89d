"""
Pure domain layer.

This module contains value objects, entities and interfaces with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time enters only through an injected Clock.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.pagination import StockLevelPage, decode_cursor, encode_cursor
from inventory_kernel.domain.policy import LedgerPolicy
from inventory_kernel.domain.ports import MovementSubscriber, StockLedgerPort
from inventory_kernel.domain.stock import (
    AdjustmentReason,
    MovementType,
    ProjectionCheck,
    ReferenceType,
    SignRule,
    StockLevel,
    StockMovement,
    validate_quantity,
)
from inventory_kernel.domain.tenant import TenantContext

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
    # Taxonomy
    "MovementType",
    "ReferenceType",
    "AdjustmentReason",
    "SignRule",
    "validate_quantity",
    # Entities
    "StockMovement",
    "StockLevel",
    "ProjectionCheck",
    # Tenancy
    "TenantContext",
    # Policy / paging
    "LedgerPolicy",
    "StockLevelPage",
    "decode_cursor",
    "encode_cursor",
    # Ports
    "MovementSubscriber",
    "StockLedgerPort",
]
