"""
TransferService -- move stock between two locations of one tenant.

Responsibility:
    Records a transfer as two movements in one all-or-nothing batch: a
    TRANSFER movement (negative quantity) at the source location and an
    INBOUND movement (positive quantity) at the destination, both
    referencing the transfer.  The source can never go negative; if it
    would, neither leg is recorded.

Architecture position:
    Services -- orchestration over the kernel's StockLedgerPort.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.ports import StockLedgerPort
from inventory_kernel.domain.stock import (
    MovementType,
    ReferenceType,
    StockLevel,
    StockMovement,
)
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.transfers")


@dataclass(frozen=True)
class TransferResult:
    transfer_id: UUID
    outbound: StockMovement
    inbound: StockMovement
    source_level: StockLevel
    destination_level: StockLevel


class TransferService:
    """Records inter-location transfers against a stock ledger."""

    def __init__(self, ledger: StockLedgerPort, clock: Clock | None = None):
        self._ledger = ledger
        self._clock = clock

    def transfer_stock(
        self,
        item_id: UUID,
        from_location_id: UUID,
        to_location_id: UUID,
        quantity: int,
        transfer_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> TransferResult:
        """
        Move ``quantity`` units of an item from one location to another.

        Raises:
            ValidationError: quantity is not a positive integer, or the two
                locations are the same.
            NegativeStockError: the source holds less than ``quantity``.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(
                f"Transfer quantity must be a positive integer, got {quantity!r}"
            )
        if from_location_id == to_location_id:
            raise ValidationError("Transfer source and destination must differ")

        transfer_id = transfer_id or uuid4()
        outbound = StockMovement.new(
            item_id=item_id,
            location_id=from_location_id,
            movement_type=MovementType.TRANSFER,
            quantity=-quantity,
            reference_type=ReferenceType.TRANSFER,
            reference_id=transfer_id,
            created_by=actor_id,
            clock=self._clock,
        )
        inbound = StockMovement.new(
            item_id=item_id,
            location_id=to_location_id,
            movement_type=MovementType.INBOUND,
            quantity=quantity,
            reference_type=ReferenceType.TRANSFER,
            reference_id=transfer_id,
            created_by=actor_id,
            clock=self._clock,
        )

        source_level, destination_level = self._ledger.record_movements(
            [outbound, inbound]
        )

        logger.info(
            "stock_transferred",
            extra={
                "transfer_id": str(transfer_id),
                "item_id": str(item_id),
                "from_location_id": str(from_location_id),
                "to_location_id": str(to_location_id),
                "quantity": quantity,
            },
        )

        return TransferResult(
            transfer_id=transfer_id,
            outbound=outbound,
            inbound=inbound,
            source_level=source_level,
            destination_level=destination_level,
        )
