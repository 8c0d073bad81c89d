"""
AdjustmentService -- manual stock corrections.

Responsibility:
    Turns a StockAdjustmentRequest (cycle count result, damage write-off,
    found stock) into an ADJUSTMENT movement, records it through the ledger
    and reports the resulting quantity on hand.

Architecture position:
    Services -- orchestration over the kernel's StockLedgerPort.  Holds no
    session of its own; the ledger it is given owns the transaction.

Failure modes:
    - ValidationError: quantity change is not an integer.
    - NegativeStockError: only when the ledger policy disallows negative
      adjustments.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.ports import StockLedgerPort
from inventory_kernel.domain.stock import (
    AdjustmentReason,
    MovementType,
    ReferenceType,
    StockMovement,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.adjustments")


@dataclass(frozen=True)
class StockAdjustmentRequest:
    """A signed correction to one (item, location) pair."""

    item_id: UUID
    location_id: UUID
    qty_change: int
    reason: AdjustmentReason
    note: str | None = None

    def movement_reason(self) -> str:
        """Reason text stored on the movement: the token, then the note."""
        if self.note:
            return f"{self.reason.token}: {self.note}"
        return self.reason.token


@dataclass(frozen=True)
class Adjustment:
    id: UUID
    item_id: UUID
    location_id: UUID
    qty_change: int
    reason: AdjustmentReason
    note: str | None
    created_by: UUID
    created_at: datetime


@dataclass(frozen=True)
class AdjustmentResult:
    adjustment: Adjustment
    movement: StockMovement
    new_quantity_on_hand: int


class AdjustmentService:
    """Records manual adjustments against a stock ledger."""

    def __init__(self, ledger: StockLedgerPort, clock: Clock | None = None):
        self._ledger = ledger
        self._clock = clock

    def adjust_stock(
        self, request: StockAdjustmentRequest, actor_id: UUID
    ) -> AdjustmentResult:
        movement = StockMovement.new(
            item_id=request.item_id,
            location_id=request.location_id,
            movement_type=MovementType.ADJUSTMENT,
            quantity=request.qty_change,
            reference_type=ReferenceType.ADJUSTMENT,
            reference_id=None,
            reason=request.movement_reason(),
            created_by=actor_id,
            clock=self._clock,
        )
        level = self._ledger.record_movement(movement)

        logger.info(
            "stock_adjusted",
            extra={
                "item_id": str(request.item_id),
                "location_id": str(request.location_id),
                "qty_change": request.qty_change,
                "reason": request.reason.token,
                "quantity_on_hand": level.quantity_on_hand,
            },
        )

        return AdjustmentResult(
            adjustment=Adjustment(
                id=movement.id,
                item_id=request.item_id,
                location_id=request.location_id,
                qty_change=request.qty_change,
                reason=request.reason,
                note=request.note,
                created_by=actor_id,
                created_at=movement.created_at,
            ),
            movement=movement,
            new_quantity_on_hand=level.quantity_on_hand,
        )
