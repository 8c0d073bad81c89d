"""
Manual adjustments through AdjustmentService.
"""

import pytest

from inventory_kernel.domain.policy import LedgerPolicy
from inventory_kernel.domain.stock import AdjustmentReason, MovementType, ReferenceType
from inventory_kernel.exceptions import NegativeStockError, ValidationError
from inventory_kernel.services.stock_ledger import StockLedger
from inventory_services import AdjustmentService, StockAdjustmentRequest


@pytest.fixture
def adjustments(ledger, deterministic_clock):
    return AdjustmentService(ledger, clock=deterministic_clock)


class TestAdjustStock:
    def test_cycle_count_shrinkage(
        self, adjustments, ledger, make_movement, item_id, location_id, test_actor_id
    ):
        ledger.record_movement(make_movement(item_id, location_id, MovementType.INBOUND, 50))

        result = adjustments.adjust_stock(
            StockAdjustmentRequest(
                item_id=item_id,
                location_id=location_id,
                qty_change=-4,
                reason=AdjustmentReason.CYCLE_COUNT,
                note="aisle 7 recount",
            ),
            actor_id=test_actor_id,
        )

        assert result.new_quantity_on_hand == 46
        assert result.movement.movement_type is MovementType.ADJUSTMENT
        assert result.movement.reference_type is ReferenceType.ADJUSTMENT
        assert result.movement.reason == "cycle_count: aisle 7 recount"
        assert result.adjustment.id == result.movement.id
        assert result.adjustment.created_by == test_actor_id
        assert ledger.get_movement_by_id(result.movement.id) == result.movement

    def test_reason_without_note(self, adjustments, item_id, location_id, test_actor_id):
        result = adjustments.adjust_stock(
            StockAdjustmentRequest(item_id, location_id, 9, AdjustmentReason.FOUND),
            actor_id=test_actor_id,
        )
        assert result.movement.reason == "found"
        assert result.new_quantity_on_hand == 9

    def test_adjustment_may_drive_level_negative(
        self, adjustments, item_id, location_id, test_actor_id
    ):
        result = adjustments.adjust_stock(
            StockAdjustmentRequest(item_id, location_id, -3, AdjustmentReason.CORRECTION),
            actor_id=test_actor_id,
        )
        assert result.new_quantity_on_hand == -3

    def test_strict_policy_rejects_negative_result(
        self, session, tenant, deterministic_clock, item_id, location_id, test_actor_id
    ):
        ledger = StockLedger(
            session,
            tenant,
            clock=deterministic_clock,
            policy=LedgerPolicy(allow_negative_adjustments=False),
        )
        service = AdjustmentService(ledger, clock=deterministic_clock)

        with pytest.raises(NegativeStockError):
            service.adjust_stock(
                StockAdjustmentRequest(item_id, location_id, -1, AdjustmentReason.LOST),
                actor_id=test_actor_id,
            )
        assert not ledger.stock_level_exists(item_id, location_id)

    def test_non_integer_change_rejected(self, adjustments, item_id, location_id, test_actor_id):
        with pytest.raises(ValidationError):
            adjustments.adjust_stock(
                StockAdjustmentRequest(item_id, location_id, 2.5, AdjustmentReason.OTHER),
                actor_id=test_actor_id,
            )

    def test_adjustment_is_logged(
        self, adjustments, item_id, location_id, test_actor_id, captured_logs
    ):
        adjustments.adjust_stock(
            StockAdjustmentRequest(item_id, location_id, 5, AdjustmentReason.FOUND),
            actor_id=test_actor_id,
        )
        logged = [r for r in captured_logs() if r["message"] == "stock_adjusted"]
        assert len(logged) == 1
        assert logged[0]["reason"] == "found"
        assert logged[0]["quantity_on_hand"] == 5
