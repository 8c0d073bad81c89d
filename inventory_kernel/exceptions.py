"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the stock ledger must react differently to different failures:
a wrong sign is a bug in the calling workflow, a negative-stock rejection is
a business outcome the workflow must decide about, and a dropped connection
is an infrastructure problem the caller may retry.  Parsing messages to tell
these apart is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        ledger.record_movement(movement)
    except NegativeStockError as e:
        # Business outcome: pick another location or fail the shipment
        choose_other_location(e.item_id, e.attempted_quantity)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError                 local, caller-fixable, never retried
    |   +-- InvalidMovementQuantityError
    |   +-- MovementMismatchError
    |   +-- UnknownMovementTypeError
    |   +-- UnknownReferenceTypeError
    |   +-- UnknownAdjustmentReasonError
    |   +-- InvalidCursorError
    |
    +-- BusinessRuleError               rolled back, surfaced, never retried
    |   +-- NegativeStockError
    |
    +-- TenantError                     isolation guard violations
    |   +-- TenantContextMissingError
    |   +-- TenantMismatchError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- StockLevelNotFoundError

Infrastructure failures (connection loss, deadlock, serialization failure,
duplicate primary key) are NOT wrapped.  SQLAlchemy's own exceptions
propagate verbatim so that the caller can apply its own retry policy.

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|----------------------------------------
Validation   | INVALID_MOVEMENT_QUANTITY   | Quantity sign violates movement type
             | MOVEMENT_MISMATCH           | Movement applied to the wrong level
             | UNKNOWN_MOVEMENT_TYPE       | Unrecognized movement type token
             | UNKNOWN_REFERENCE_TYPE      | Unrecognized reference type token
             | UNKNOWN_ADJUSTMENT_REASON   | Unrecognized adjustment reason token
             | INVALID_CURSOR              | Pagination cursor is malformed
-------------|-----------------------------|----------------------------------------
Business     | NEGATIVE_STOCK              | Movement would drive level below zero
-------------|-----------------------------|----------------------------------------
Tenant       | TENANT_CONTEXT_MISSING      | Ledger access without a bound tenant
             | TENANT_MISMATCH             | Session/row bound to another tenant
-------------|-----------------------------|----------------------------------------
Immutability | IMMUTABILITY_VIOLATION      | Update/delete of append-only data
-------------|-----------------------------|----------------------------------------
Lookup       | STOCK_LEVEL_NOT_FOUND       | Level missing where one must exist

===============================================================================
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Malformed input.  Always local and caller-correctable."""

    code: str = "VALIDATION_ERROR"


class InvalidMovementQuantityError(ValidationError):
    """Quantity sign is not allowed for the movement type."""

    code: str = "INVALID_MOVEMENT_QUANTITY"

    def __init__(self, movement_type: str, quantity: int, rule: str):
        self.movement_type = movement_type
        self.quantity = quantity
        self.rule = rule
        super().__init__(
            f"Invalid quantity {quantity} for {movement_type} movement: "
            f"quantity must be {rule}"
        )


class MovementMismatchError(ValidationError):
    """Movement does not apply to this stock level."""

    code: str = "MOVEMENT_MISMATCH"

    def __init__(
        self,
        movement_id: str,
        expected_item_id: str,
        expected_location_id: str,
        actual_item_id: str,
        actual_location_id: str,
    ):
        self.movement_id = movement_id
        self.expected_item_id = expected_item_id
        self.expected_location_id = expected_location_id
        self.actual_item_id = actual_item_id
        self.actual_location_id = actual_location_id
        super().__init__(
            f"Movement {movement_id} does not apply to this stock level: "
            f"level is ({expected_item_id}, {expected_location_id}), "
            f"movement is ({actual_item_id}, {actual_location_id})"
        )


class UnknownMovementTypeError(ValidationError):
    """Token is not a recognized movement type."""

    code: str = "UNKNOWN_MOVEMENT_TYPE"

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid movement type: {token!r}")


class UnknownReferenceTypeError(ValidationError):
    """Token is not a recognized reference type."""

    code: str = "UNKNOWN_REFERENCE_TYPE"

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid reference type: {token!r}")


class UnknownAdjustmentReasonError(ValidationError):
    """Token is not a recognized adjustment reason."""

    code: str = "UNKNOWN_ADJUSTMENT_REASON"

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Invalid adjustment reason: {token!r}")


class InvalidCursorError(ValidationError):
    """Pagination cursor could not be decoded."""

    code: str = "INVALID_CURSOR"

    def __init__(self, cursor: str):
        self.cursor = cursor
        super().__init__(f"Invalid pagination cursor: {cursor!r}")


# Business rule exceptions


class BusinessRuleError(InventoryKernelError):
    """A write succeeded mechanically but would violate a ledger rule."""

    code: str = "BUSINESS_RULE_ERROR"


class NegativeStockError(BusinessRuleError):
    """
    Stock level cannot go negative.

    Raised after the movement insert and level upsert when the re-read
    quantity is below zero.  The whole movement is rolled back; the
    ledger never reflects a partially-applied movement.
    """

    code: str = "NEGATIVE_STOCK"

    def __init__(
        self,
        item_id: str,
        location_id: str,
        attempted_quantity: int,
        resulting_quantity: int,
        movement_type: str,
    ):
        self.item_id = item_id
        self.location_id = location_id
        self.attempted_quantity = attempted_quantity
        self.resulting_quantity = resulting_quantity
        self.movement_type = movement_type
        super().__init__(
            f"Stock level cannot go negative: {movement_type} of "
            f"{attempted_quantity} at item {item_id} / location {location_id} "
            f"would leave {resulting_quantity}"
        )


# Tenant exceptions


class TenantError(InventoryKernelError):
    """Base exception for tenant isolation errors."""

    code: str = "TENANT_ERROR"


class TenantContextMissingError(TenantError):
    """A ledger statement was issued without an established tenant."""

    code: str = "TENANT_CONTEXT_MISSING"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"No tenant context bound to session for {operation}"
        )


class TenantMismatchError(TenantError):
    """Session or row belongs to a different tenant than the caller."""

    code: str = "TENANT_MISMATCH"

    def __init__(self, bound_tenant_id: str, requested_tenant_id: str):
        self.bound_tenant_id = bound_tenant_id
        self.requested_tenant_id = requested_tenant_id
        super().__init__(
            f"Session is bound to tenant {bound_tenant_id}, "
            f"cannot use it for tenant {requested_tenant_id}"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete append-only ledger data.

    StockMovement rows are never updated or deleted.  StockLevel rows are
    never deleted and their quantity changes only through the ledger's
    atomic upsert.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class StockLevelNotFoundError(InventoryKernelError):
    """No stock level exists for the item/location pair."""

    code: str = "STOCK_LEVEL_NOT_FOUND"

    def __init__(self, item_id: str, location_id: str):
        self.item_id = item_id
        self.location_id = location_id
        super().__init__(
            f"Stock level not found for item {item_id} at location {location_id}"
        )
