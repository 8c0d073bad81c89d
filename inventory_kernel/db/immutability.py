"""
ORM-Level Immutability Enforcement for the stock ledger.

===============================================================================
WHY THIS EXISTS
===============================================================================

The movements table is the ledger's source of truth: a stock level is only
trustworthy because it equals the sum of the movements behind it.  A movement
that is edited or deleted after the fact silently breaks that equation, and
no later reconciliation can tell which side was right.  Corrections are new
movements (usually an ADJUSTMENT), never edits.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our rules:

    session.flush()
         |
         v
    [before_update event] --> _check_*_update() --> ImmutabilityViolationError
         |                                                  ^
         v                                                  |
    [before_delete event] --> _check_*_delete() -----------+
         |
         v
    SQL sent to database (only if checks pass)

    session.execute(update(...)/delete(...))
         |
         v
    [do_orm_execute event] --> _check_bulk_statement() --> ImmutabilityViolationError

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | Rule                                   | Why
----------------|----------------------------------------|-------------------------
StockMovement   | Never updated, never deleted           | Append-only ledger
StockLevel      | Never deleted; quantity never changed  | Projection of movements
                | through the unit of work               |

StockLevel rows ARE updated, but only by the ledger's INSERT ... ON CONFLICT
DO UPDATE statement, which is not a flush and therefore not intercepted.

===============================================================================
USAGE
===============================================================================

Called once at startup, after the models are imported:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY - never in production):

    from inventory_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


# =============================================================================
# StockMovement -- always immutable
# =============================================================================


def _check_stock_movement_update(mapper, connection, target):
    """Prevent any update to a recorded movement."""
    _blocked(
        "StockMovement",
        str(target.id),
        "UPDATE",
        "Stock movements are immutable and cannot be modified",
    )


def _check_stock_movement_delete(mapper, connection, target):
    """Prevent deletion of a recorded movement."""
    _blocked(
        "StockMovement",
        str(target.id),
        "DELETE",
        "Stock movements cannot be deleted",
    )


# =============================================================================
# StockLevel -- mutated only by the ledger upsert
# =============================================================================


def _check_stock_level_update(mapper, connection, target):
    """
    Block unit-of-work updates of the projection.

    A dirty StockLevelModel means someone assigned quantity_on_hand (or the
    key columns) on a loaded row and flushed it, bypassing the movements.
    """
    _blocked(
        "StockLevel",
        str(target.id),
        "UPDATE",
        "Stock levels change only by recording a stock movement",
    )


def _check_stock_level_delete(mapper, connection, target):
    _blocked(
        "StockLevel",
        str(target.id),
        "DELETE",
        "Stock levels cannot be deleted",
    )


# =============================================================================
# Bulk statements
# =============================================================================


def _check_bulk_statement(orm_execute_state: ORMExecuteState) -> None:
    """Reject ORM-enabled UPDATE/DELETE statements against ledger tables."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return

    from inventory_kernel.models.stock import StockLevelModel, StockMovementModel

    operation = "UPDATE" if orm_execute_state.is_update else "DELETE"
    for mapper in orm_execute_state.all_mappers:
        if mapper.class_ is StockMovementModel:
            _blocked(
                "StockMovement",
                "*",
                f"BULK_{operation}",
                "Stock movements are append-only",
            )
        if mapper.class_ is StockLevelModel:
            _blocked(
                "StockLevel",
                "*",
                f"BULK_{operation}",
                "Stock levels change only by recording a stock movement",
            )


# =============================================================================
# Registration
# =============================================================================


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this after all models are imported but before any database
    operations begin.  Safe to call more than once.
    """
    from inventory_kernel.models.stock import StockLevelModel, StockMovementModel

    listeners = (
        (StockMovementModel, "before_update", _check_stock_movement_update),
        (StockMovementModel, "before_delete", _check_stock_movement_delete),
        (StockLevelModel, "before_update", _check_stock_level_update),
        (StockLevelModel, "before_delete", _check_stock_level_delete),
        (Session, "do_orm_execute", _check_bulk_statement),
    )
    for target, event_name, listener_fn in listeners:
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)

    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """
    Safely remove an event listener, ignoring if not registered.

    This prevents errors when unregistering listeners that may not have been
    registered (e.g., in test scenarios with custom setup/teardown).
    """
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    from inventory_kernel.models.stock import StockLevelModel, StockMovementModel

    _safe_remove_listener(
        StockMovementModel, "before_update", _check_stock_movement_update
    )
    _safe_remove_listener(
        StockMovementModel, "before_delete", _check_stock_movement_delete
    )
    _safe_remove_listener(StockLevelModel, "before_update", _check_stock_level_update)
    _safe_remove_listener(StockLevelModel, "before_delete", _check_stock_level_delete)
    _safe_remove_listener(Session, "do_orm_execute", _check_bulk_statement)
