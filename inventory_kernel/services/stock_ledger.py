"""
StockLedger -- the ledger engine: the single entry point for stock writes.

Responsibility:
    Records stock movements and keeps the (item, location) quantity
    projection in step with them, all-or-nothing, for one tenant.  Also
    exposes the tenant-scoped query surface used by collaborators.

Architecture position:
    Kernel > Services -- imperative shell, owns transaction boundaries when
    ``auto_commit`` is set.  Delegates statements to MovementWriter and
    reads to StockSelector.  Implements ``StockLedgerPort``.

Recording flow (per movement):
    1. Re-check the sign rule (movements built without ``new()`` included).
    2. Open a SAVEPOINT.
    3. Insert the movement row.
    4. Upsert-increment the level row (creates it on first movement).
    5. Re-read the level.  A negative quantity from a non-exempt movement
       raises NegativeStockError and rolls the savepoint back.
    6. Commit (auto_commit) or leave the transaction to the caller.
    7. Notify subscribers of the committed movement.

Invariants enforced:
    - Sum invariant: a level equals the sum of its pair's movements; both
      change in the same transaction or neither does.
    - Non-negative levels for INBOUND/OUTBOUND/TRANSFER/INITIAL.
    - No read-modify-write in Python: the increment is a database
      expression, so concurrent writers never lose updates.
    - Tenant scope: the session is bound to the ledger's tenant for life.

Failure modes:
    - InvalidMovementQuantityError / ValidationError: rejected before any
      statement is issued.
    - NegativeStockError: movement and level changes rolled back.
    - sqlalchemy.exc.*: infrastructure failures propagated verbatim after
      rollback; never retried here.
    - TenantMismatchError: session already serves another tenant.

Audit relevance:
    Every recording is logged with tenant_id, movement_id, the resulting
    quantity and timing.  Rejections are logged with their error code.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.db.tenant_guard import bind_tenant
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.pagination import StockLevelPage, decode_cursor
from inventory_kernel.domain.policy import LedgerPolicy
from inventory_kernel.domain.ports import MovementSubscriber, StockLedgerPort
from inventory_kernel.domain.stock import (
    MovementType,
    ProjectionCheck,
    StockLevel,
    StockMovement,
    validate_quantity,
)
from inventory_kernel.domain.tenant import TenantContext
from inventory_kernel.exceptions import (
    NegativeStockError,
    StockLevelNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext, get_logger, movement_fields
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.services.movement_writer import MovementWriter

logger = get_logger("services.stock_ledger")


class StockLedger(StockLedgerPort):
    """
    SQLAlchemy implementation of the stock ledger for one tenant.

    Contract:
        One instance per (session, tenant).  The session must not be shared
        across threads; concurrent callers each build their own ledger on
        their own session.

    Guarantees:
        - record_movement()/record_movements() either apply completely or
          leave movements and levels untouched.
        - Returned StockLevel objects are snapshots; mutating them has no
          effect on the store.
        - With auto_commit, reads end the transaction they started, so an
          idle reader never holds locks that block writers.

    Non-goals:
        - No retries.  Deadlocks and serialization failures surface to the
          caller.
        - No caching of levels between calls.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext | UUID,
        clock: Clock | None = None,
        auto_commit: bool = True,
        policy: LedgerPolicy | None = None,
        subscribers: Iterable[MovementSubscriber] = (),
    ):
        self._session = session
        self._tenant = bind_tenant(session, tenant)
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._policy = policy or LedgerPolicy()
        self._subscribers: list[MovementSubscriber] = list(subscribers)
        self._writer = MovementWriter(session, self._tenant.tenant_id, self._clock)
        self._selector = StockSelector(session, self._tenant.tenant_id)

    @property
    def tenant_id(self) -> UUID:
        return self._tenant.tenant_id

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    def subscribe(self, subscriber: MovementSubscriber) -> None:
        self._subscribers.append(subscriber)

    # =========================================================================
    # Write side
    # =========================================================================

    def record_movement(self, movement: StockMovement) -> StockLevel:
        """
        Record one movement and return the resulting level.

        Postconditions:
            - On success the movement row exists and the level reflects it
              (committed when auto_commit=True).
            - On failure nothing changed (rolled back when auto_commit=True;
              the savepoint is rolled back either way).

        Raises:
            InvalidMovementQuantityError: sign violates the movement type.
            NegativeStockError: the level would go negative.
        """
        validate_quantity(movement.movement_type, movement.quantity)

        with LogContext.bind(
            correlation_id=uuid4(),
            tenant_id=self.tenant_id,
            movement_id=movement.id,
            actor_id=movement.created_by,
        ):
            logger.info("movement_recording_started", extra=movement_fields(movement))
            t0 = time.monotonic()

            try:
                with self._session.begin_nested():
                    level = self._apply(movement)
                if self._auto_commit:
                    self._session.commit()
            except NegativeStockError:
                self._rollback()
                logger.warning(
                    "movement_rejected_negative_stock",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                raise
            except Exception:
                self._rollback()
                logger.error(
                    "movement_recording_failed",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                raise

            logger.info(
                "movement_recorded",
                extra={
                    "quantity_on_hand": level.quantity_on_hand,
                    "duration_ms": _elapsed_ms(t0),
                },
            )

        self._notify([(movement, level)])
        return level

    def record_movements(self, movements: Sequence[StockMovement]) -> list[StockLevel]:
        """
        Record several movements as one all-or-nothing unit.

        Movements are applied in (item_id, location_id) order, keeping
        submission order within a pair, so that concurrent batches lock
        level rows in the same order.

        Returns:
            The level after each movement, in submission order.

        Raises:
            ValidationError: empty batch or a sign violation.
            NegativeStockError: any movement would drive its level negative;
                no movement of the batch is recorded.
        """
        if not movements:
            raise ValidationError("record_movements requires at least one movement")
        for movement in movements:
            validate_quantity(movement.movement_type, movement.quantity)

        ordered = sorted(
            enumerate(movements),
            key=lambda pair: (str(pair[1].item_id), str(pair[1].location_id), pair[0]),
        )

        with LogContext.bind(
            correlation_id=uuid4(),
            tenant_id=self.tenant_id,
        ):
            logger.info(
                "movement_batch_started",
                extra={"movement_count": len(movements)},
            )
            t0 = time.monotonic()

            levels: list[StockLevel | None] = [None] * len(movements)
            try:
                with self._session.begin_nested():
                    for index, movement in ordered:
                        with LogContext.bind(movement_id=movement.id):
                            logger.debug(
                                "batch_movement_applying", extra=movement_fields(movement)
                            )
                            levels[index] = self._apply(movement)
                if self._auto_commit:
                    self._session.commit()
            except NegativeStockError:
                self._rollback()
                logger.warning(
                    "movement_batch_rejected_negative_stock",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                raise
            except Exception:
                self._rollback()
                logger.error(
                    "movement_batch_failed",
                    extra={"duration_ms": _elapsed_ms(t0)},
                    exc_info=True,
                )
                raise

            logger.info(
                "movement_batch_recorded",
                extra={
                    "movement_count": len(movements),
                    "duration_ms": _elapsed_ms(t0),
                },
            )

        self._notify(list(zip(movements, levels)))
        return levels

    def initialize_stock_level(self, item_id: UUID, location_id: UUID) -> bool:
        """
        Ensure a zero level exists for the pair.  Idempotent.

        Returns:
            True if this call created the level.
        """
        try:
            created = self._writer.initialize_level(item_id, location_id)
            if self._auto_commit:
                self._session.commit()
        except Exception:
            self._rollback()
            logger.error(
                "stock_level_initialization_failed",
                extra={"item_id": str(item_id), "location_id": str(location_id)},
                exc_info=True,
            )
            raise
        return created

    def _apply(self, movement: StockMovement) -> StockLevel:
        self._writer.insert_movement(movement)
        self._writer.upsert_level(movement)

        model = self._writer.read_level(movement.item_id, movement.location_id)
        if model is None:
            raise StockLevelNotFoundError(
                item_id=str(movement.item_id),
                location_id=str(movement.location_id),
            )

        if model.quantity_on_hand < 0 and not self._may_go_negative(
            movement.movement_type
        ):
            raise NegativeStockError(
                item_id=str(movement.item_id),
                location_id=str(movement.location_id),
                attempted_quantity=movement.quantity,
                resulting_quantity=model.quantity_on_hand,
                movement_type=movement.movement_type.token,
            )

        return StockLevel.from_model(model)

    def _may_go_negative(self, movement_type: MovementType) -> bool:
        return (
            movement_type.exempt_from_non_negative
            and self._policy.allow_negative_adjustments
        )

    def _rollback(self) -> None:
        if self._auto_commit:
            self._session.rollback()

    def _notify(self, recorded: list[tuple[StockMovement, StockLevel]]) -> None:
        # Without auto_commit the caller decides whether anything committed.
        if not self._auto_commit or not self._subscribers:
            return
        for movement, level in recorded:
            for subscriber in self._subscribers:
                try:
                    subscriber.on_movement_recorded(self.tenant_id, movement, level)
                except Exception:
                    logger.exception(
                        "movement_subscriber_failed",
                        extra={
                            "subscriber": type(subscriber).__name__,
                            "movement_id": str(movement.id),
                        },
                    )

    # =========================================================================
    # Read side
    # =========================================================================

    @contextmanager
    def _read_scope(self) -> Iterator[None]:
        """
        Run reads; with auto_commit, end the transaction they autobegan.

        On SQLite every transaction takes the write lock (BEGIN IMMEDIATE),
        so a reader left inside one would stall every writer.  A transaction
        that was already open belongs to the caller and is left alone.
        """
        owns_transaction = self._auto_commit and not self._session.in_transaction()
        try:
            yield
        except Exception:
            if owns_transaction:
                self._session.rollback()
            raise
        if owns_transaction:
            self._session.commit()

    def get_stock_level(self, item_id: UUID, location_id: UUID) -> StockLevel | None:
        with self._read_scope():
            return self._selector.get_level(item_id, location_id)

    def stock_level_exists(self, item_id: UUID, location_id: UUID) -> bool:
        with self._read_scope():
            return self._selector.level_exists(item_id, location_id)

    def get_item_stock_levels(self, item_id: UUID) -> list[StockLevel]:
        with self._read_scope():
            return self._selector.levels_for_item(item_id)

    def get_location_stock_levels(self, location_id: UUID) -> list[StockLevel]:
        with self._read_scope():
            return self._selector.levels_for_location(location_id)

    def get_total_quantity_on_hand(self, item_id: UUID) -> int:
        with self._read_scope():
            return self._selector.total_on_hand(item_id)

    def get_movement_by_id(self, movement_id: UUID) -> StockMovement | None:
        with self._read_scope():
            return self._selector.movement_by_id(movement_id)

    def get_item_movements(
        self, item_id: UUID, limit: int | None = None, offset: int | None = None
    ) -> list[StockMovement]:
        with self._read_scope():
            return self._selector.movements_for_item(
                item_id,
                self._policy.clamp_limit(limit),
                self._policy.clamp_offset(offset),
            )

    def get_location_movements(
        self, location_id: UUID, limit: int | None = None, offset: int | None = None
    ) -> list[StockMovement]:
        with self._read_scope():
            return self._selector.movements_for_location(
                location_id,
                self._policy.clamp_limit(limit),
                self._policy.clamp_offset(offset),
            )

    def get_stock_movements(
        self,
        item_id: UUID,
        location_id: UUID,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[StockMovement]:
        with self._read_scope():
            return self._selector.movements_for_pair(
                item_id,
                location_id,
                self._policy.clamp_limit(limit),
                self._policy.clamp_offset(offset),
            )

    def get_stock_levels_below_threshold(
        self, threshold: int, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage:
        """Levels with quantity_on_hand <= threshold, in (item, location) order."""
        offset = decode_cursor(cursor)
        with self._read_scope():
            return self._selector.levels_at_or_below(
                threshold,
                self._policy.clamp_limit(limit),
                offset,
            )

    def get_stock_levels_by_location(
        self, location_id: UUID, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage:
        offset = decode_cursor(cursor)
        with self._read_scope():
            return self._selector.levels_page(
                self._policy.clamp_limit(limit),
                offset,
                location_id=location_id,
            )

    def get_all_stock_levels(
        self, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage:
        offset = decode_cursor(cursor)
        with self._read_scope():
            return self._selector.levels_page(
                self._policy.clamp_limit(limit),
                offset,
            )

    def verify_stock_level(self, item_id: UUID, location_id: UUID) -> ProjectionCheck:
        """Compare the stored level with the sum of its recorded movements."""
        with self._read_scope():
            level = self._selector.get_level(item_id, location_id)
            movement_sum, movement_count = self._selector.movement_totals(
                item_id, location_id
            )
        check = ProjectionCheck(
            item_id=item_id,
            location_id=location_id,
            stored_quantity=level.quantity_on_hand if level is not None else None,
            movement_sum=movement_sum,
            movement_count=movement_count,
        )
        if not check.is_consistent:
            logger.warning(
                "stock_level_drift_detected",
                extra={
                    "tenant_id": str(self.tenant_id),
                    "item_id": str(item_id),
                    "location_id": str(location_id),
                    "stored_quantity": check.stored_quantity,
                    "movement_sum": movement_sum,
                },
            )
        return check


def _elapsed_ms(t0: float) -> float:
    return round((time.monotonic() - t0) * 1000, 2)
