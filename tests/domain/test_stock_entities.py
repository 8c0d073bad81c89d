"""
StockMovement construction and StockLevel.apply_movement.
"""

from dataclasses import FrozenInstanceError
from uuid import uuid4

import pytest

from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.stock import (
    MovementType,
    ProjectionCheck,
    ReferenceType,
    StockLevel,
    StockMovement,
)
from inventory_kernel.exceptions import (
    InvalidMovementQuantityError,
    MovementMismatchError,
    NegativeStockError,
)


@pytest.fixture
def clock():
    return DeterministicClock()


def _movement(item_id, location_id, movement_type, quantity, clock, **kwargs):
    return StockMovement.new(
        item_id=item_id,
        location_id=location_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=kwargs.pop("reference_type", ReferenceType.PURCHASE_ORDER),
        clock=clock,
        **kwargs,
    )


class TestStockMovementNew:
    def test_assigns_fresh_id_and_clock_time(self, clock):
        item_id, location_id = uuid4(), uuid4()
        first = _movement(item_id, location_id, MovementType.INBOUND, 10, clock)
        second = _movement(item_id, location_id, MovementType.INBOUND, 10, clock)

        assert first.id != second.id
        assert first.created_at == clock.now()
        assert first.created_at.tzinfo is not None

    def test_keeps_optional_fields(self, clock):
        reference_id, actor = uuid4(), uuid4()
        movement = _movement(
            uuid4(),
            uuid4(),
            MovementType.OUTBOUND,
            -4,
            clock,
            reference_type=ReferenceType.SALES_ORDER,
            reference_id=reference_id,
            reason="order 42",
            created_by=actor,
        )
        assert movement.reference_id == reference_id
        assert movement.reason == "order 42"
        assert movement.created_by == actor

    def test_rejects_sign_violation(self, clock):
        with pytest.raises(InvalidMovementQuantityError):
            _movement(uuid4(), uuid4(), MovementType.OUTBOUND, 5, clock)

    def test_is_immutable(self, clock):
        movement = _movement(uuid4(), uuid4(), MovementType.INBOUND, 1, clock)
        with pytest.raises(FrozenInstanceError):
            movement.quantity = 100

    def test_key(self, clock):
        item_id, location_id = uuid4(), uuid4()
        movement = _movement(item_id, location_id, MovementType.INBOUND, 1, clock)
        assert movement.key == (item_id, location_id)


class TestStockLevelApplyMovement:
    def test_new_level_starts_at_zero(self, clock):
        level = StockLevel.new(uuid4(), uuid4(), clock=clock)
        assert level.quantity_on_hand == 0
        assert level.last_movement_id is None

    def test_inbound_then_outbound(self, clock):
        item_id, location_id = uuid4(), uuid4()
        level = StockLevel.new(item_id, location_id, clock=clock)

        inbound = _movement(item_id, location_id, MovementType.INBOUND, 100, clock)
        level.apply_movement(inbound, clock=clock)
        outbound = _movement(item_id, location_id, MovementType.OUTBOUND, -30, clock)
        clock.tick()
        level.apply_movement(outbound, clock=clock)

        assert level.quantity_on_hand == 70
        assert level.last_movement_id == outbound.id
        assert level.updated_at == clock.now()

    def test_mismatched_pair_leaves_level_untouched(self, clock):
        item_id, location_id = uuid4(), uuid4()
        level = StockLevel(item_id=item_id, location_id=location_id, quantity_on_hand=5)
        before = (level.quantity_on_hand, level.last_movement_id, level.updated_at)

        foreign = _movement(uuid4(), location_id, MovementType.INBOUND, 10, clock)
        with pytest.raises(MovementMismatchError) as exc_info:
            level.apply_movement(foreign, clock=clock)

        assert "does not apply to this stock level" in str(exc_info.value)
        assert (level.quantity_on_hand, level.last_movement_id, level.updated_at) == before

    def test_other_location_is_a_mismatch(self, clock):
        item_id = uuid4()
        level = StockLevel.new(item_id, uuid4(), clock=clock)
        with pytest.raises(MovementMismatchError):
            level.apply_movement(
                _movement(item_id, uuid4(), MovementType.INBOUND, 1, clock)
            )

    def test_outbound_below_zero_raises(self, clock):
        item_id, location_id = uuid4(), uuid4()
        level = StockLevel(item_id=item_id, location_id=location_id, quantity_on_hand=3)

        with pytest.raises(NegativeStockError) as exc_info:
            level.apply_movement(
                _movement(item_id, location_id, MovementType.OUTBOUND, -5, clock)
            )
        assert exc_info.value.resulting_quantity == -2
        assert exc_info.value.attempted_quantity == -5
        assert "cannot go negative" in str(exc_info.value)

    def test_adjustment_may_go_negative(self, clock):
        item_id, location_id = uuid4(), uuid4()
        level = StockLevel(item_id=item_id, location_id=location_id, quantity_on_hand=3)

        level.apply_movement(
            _movement(
                item_id,
                location_id,
                MovementType.ADJUSTMENT,
                -5,
                clock,
                reference_type=ReferenceType.ADJUSTMENT,
            )
        )
        assert level.quantity_on_hand == -2


class TestProjectionCheck:
    def test_consistent(self):
        check = ProjectionCheck(uuid4(), uuid4(), 10, 10, 3)
        assert check.is_consistent

    def test_missing_level_with_no_movements_is_consistent(self):
        check = ProjectionCheck(uuid4(), uuid4(), None, 0, 0)
        assert check.is_consistent

    def test_drift(self):
        check = ProjectionCheck(uuid4(), uuid4(), 12, 10, 3)
        assert not check.is_consistent
