"""
Stock -- movement taxonomy, ledger entries, and the quantity projection.

Responsibility:
    Defines the closed sets of movement kinds and origin kinds together with
    their canonical storage tokens and sign rules, the immutable
    ``StockMovement`` ledger entry, and the mutable ``StockLevel``
    projection of one (item, location) pair.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only
    from selectors and services.

Invariants enforced:
    - Sign rule per movement type, checked at construction:
        INBOUND, INITIAL      quantity >= 0
        OUTBOUND, TRANSFER    quantity <= 0
        ADJUSTMENT            any sign (signed delta)
    - A movement is write-once: frozen dataclass, no mutators.
    - A level only accepts movements for its own (item_id, location_id).
    - A level may go negative only through an ADJUSTMENT.

Failure modes:
    - InvalidMovementQuantityError on a sign violation.
    - ValidationError on a non-integer quantity.
    - Unknown*Error on an unrecognized storage token.
    - MovementMismatchError / NegativeStockError from apply_movement().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import (
    InvalidMovementQuantityError,
    MovementMismatchError,
    NegativeStockError,
    UnknownAdjustmentReasonError,
    UnknownMovementTypeError,
    UnknownReferenceTypeError,
    ValidationError,
)

if TYPE_CHECKING:
    from inventory_kernel.models.stock import StockLevelModel, StockMovementModel


# =============================================================================
# Taxonomy
# =============================================================================


class SignRule(str, Enum):
    """Allowed sign of a movement quantity."""

    NON_NEGATIVE = "non-negative"
    NON_POSITIVE = "non-positive"
    ANY = "any"

    def allows(self, quantity: int) -> bool:
        if self is SignRule.NON_NEGATIVE:
            return quantity >= 0
        if self is SignRule.NON_POSITIVE:
            return quantity <= 0
        return True


class MovementType(str, Enum):
    """Kind of stock movement.

    Contract: The value is the canonical storage token and round-trips
    exactly through ``parse()``.
    """

    INBOUND = "inbound"
    OUTBOUND = "outbound"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    INITIAL = "initial"

    @property
    def token(self) -> str:
        return self.value

    @property
    def sign_rule(self) -> SignRule:
        return _SIGN_RULES[self]

    @property
    def exempt_from_non_negative(self) -> bool:
        """Only adjustments may drive a stock level below zero."""
        return self is MovementType.ADJUSTMENT

    @classmethod
    def parse(cls, token: str) -> MovementType:
        try:
            return cls(token)
        except ValueError:
            raise UnknownMovementTypeError(token) from None


_SIGN_RULES: dict[MovementType, SignRule] = {
    MovementType.INBOUND: SignRule.NON_NEGATIVE,
    MovementType.INITIAL: SignRule.NON_NEGATIVE,
    MovementType.OUTBOUND: SignRule.NON_POSITIVE,
    MovementType.TRANSFER: SignRule.NON_POSITIVE,
    MovementType.ADJUSTMENT: SignRule.ANY,
}


class ReferenceType(str, Enum):
    """Origin of a movement.  Purely descriptive."""

    PURCHASE_ORDER = "purchase_order"
    SALES_ORDER = "sales_order"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    RETURN = "return"
    INITIAL = "initial"

    @property
    def token(self) -> str:
        return self.value

    @classmethod
    def parse(cls, token: str) -> ReferenceType:
        try:
            return cls(token)
        except ValueError:
            raise UnknownReferenceTypeError(token) from None


class AdjustmentReason(str, Enum):
    """Why a manual adjustment was made.  Stored as the movement reason."""

    CYCLE_COUNT = "cycle_count"
    DAMAGED = "damaged"
    LOST = "lost"
    FOUND = "found"
    EXPIRED = "expired"
    CORRECTION = "correction"
    OTHER = "other"

    @property
    def token(self) -> str:
        return self.value

    @classmethod
    def parse(cls, token: str) -> AdjustmentReason:
        try:
            return cls(token)
        except ValueError:
            raise UnknownAdjustmentReasonError(token) from None


def validate_quantity(movement_type: MovementType, quantity: int) -> None:
    """
    Check a quantity against the sign rule of its movement type.

    Raises:
        ValidationError: quantity is not an int.
        InvalidMovementQuantityError: sign violates the type's rule.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(
            f"Movement quantity must be an integer, got {type(quantity).__name__}"
        )
    rule = movement_type.sign_rule
    if not rule.allows(quantity):
        raise InvalidMovementQuantityError(
            movement_type=movement_type.value,
            quantity=quantity,
            rule=rule.value,
        )


# =============================================================================
# Entities
# =============================================================================


@dataclass(frozen=True, slots=True)
class StockMovement:
    """
    One signed quantity change to one (item, location) pair.

    Contract:
        Built once through ``StockMovement.new()``, which enforces the sign
        rule, assigns a fresh id and stamps ``created_at``.  Never mutated,
        never deleted once recorded.
    """

    id: UUID
    item_id: UUID
    location_id: UUID
    movement_type: MovementType
    quantity: int
    reference_type: ReferenceType
    reference_id: UUID | None
    reason: str | None
    created_at: datetime
    created_by: UUID | None

    @classmethod
    def new(
        cls,
        item_id: UUID,
        location_id: UUID,
        movement_type: MovementType,
        quantity: int,
        reference_type: ReferenceType,
        reference_id: UUID | None = None,
        reason: str | None = None,
        created_by: UUID | None = None,
        clock: Clock | None = None,
    ) -> StockMovement:
        """
        Construct a validated movement.

        Raises:
            InvalidMovementQuantityError: sign violates movement_type's rule.
            ValidationError: quantity is not an integer.
        """
        validate_quantity(movement_type, quantity)
        return cls(
            id=uuid4(),
            item_id=item_id,
            location_id=location_id,
            movement_type=movement_type,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            created_at=(clock or SystemClock()).now(),
            created_by=created_by,
        )

    @classmethod
    def from_model(cls, model: StockMovementModel) -> StockMovement:
        return cls(
            id=model.id,
            item_id=model.item_id,
            location_id=model.location_id,
            movement_type=MovementType.parse(model.movement_type),
            quantity=model.quantity,
            reference_type=ReferenceType.parse(model.reference_type),
            reference_id=model.reference_id,
            reason=model.reason,
            created_at=model.created_at,
            created_by=model.created_by,
        )

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.item_id, self.location_id)


@dataclass(slots=True)
class StockLevel:
    """
    Current quantity on hand for one (item, location) pair.

    Contract:
        ``quantity_on_hand`` equals the sum of all movement quantities
        recorded for the pair.  Only ``apply_movement()`` changes it.

    Non-goals:
        This is the in-memory transition.  Persisted levels are changed by
        the ledger's atomic upsert, never by saving this object.
    """

    item_id: UUID
    location_id: UUID
    quantity_on_hand: int = 0
    last_movement_id: UUID | None = None
    updated_at: datetime = field(default_factory=lambda: SystemClock().now())

    @classmethod
    def new(
        cls,
        item_id: UUID,
        location_id: UUID,
        clock: Clock | None = None,
    ) -> StockLevel:
        return cls(
            item_id=item_id,
            location_id=location_id,
            updated_at=(clock or SystemClock()).now(),
        )

    @classmethod
    def from_model(cls, model: StockLevelModel) -> StockLevel:
        return cls(
            item_id=model.item_id,
            location_id=model.location_id,
            quantity_on_hand=model.quantity_on_hand,
            last_movement_id=model.last_movement_id,
            updated_at=model.updated_at,
        )

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.item_id, self.location_id)

    def apply_movement(
        self,
        movement: StockMovement,
        clock: Clock | None = None,
    ) -> None:
        """
        Apply one movement to this level.

        Raises:
            MovementMismatchError: movement is for another (item, location).
                The level is left untouched.
            NegativeStockError: the result is negative and the movement is
                not an adjustment.  The new state has already been applied.
        """
        if movement.key != self.key:
            raise MovementMismatchError(
                movement_id=str(movement.id),
                expected_item_id=str(self.item_id),
                expected_location_id=str(self.location_id),
                actual_item_id=str(movement.item_id),
                actual_location_id=str(movement.location_id),
            )

        self.quantity_on_hand += movement.quantity
        self.last_movement_id = movement.id
        self.updated_at = (clock or SystemClock()).now()

        if (
            self.quantity_on_hand < 0
            and not movement.movement_type.exempt_from_non_negative
        ):
            raise NegativeStockError(
                item_id=str(self.item_id),
                location_id=str(self.location_id),
                attempted_quantity=movement.quantity,
                resulting_quantity=self.quantity_on_hand,
                movement_type=movement.movement_type.value,
            )


@dataclass(frozen=True, slots=True)
class ProjectionCheck:
    """Stored projection compared with the sum of the recorded movements."""

    item_id: UUID
    location_id: UUID
    stored_quantity: int | None
    movement_sum: int
    movement_count: int

    @property
    def is_consistent(self) -> bool:
        return (self.stored_quantity or 0) == self.movement_sum
