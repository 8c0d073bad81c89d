"""
MovementWriter -- the three statements behind every recorded movement.

Responsibility:
    Inserts a movement row, folds its quantity into the (item, location)
    level with a single atomic upsert, and re-reads the level.  It is the
    only code that writes to ``stock_movements`` and ``stock_levels``.

Architecture position:
    Kernel > Services -- imperative shell.  Called by StockLedger inside a
    savepoint; never commits, never decides whether a result is acceptable.

Invariants enforced:
    - The level increment happens in the database
      (``quantity_on_hand = quantity_on_hand + excluded.quantity_on_hand``),
      so two concurrent writers of the same pair can never lose an update.
      The row lock taken by the upsert serializes them on PostgreSQL; the
      database write lock does on SQLite.
    - The first movement for a pair creates its level; no pre-creation step
      is required.
    - Every row written carries the writer's tenant_id, and the upsert's
      conflict target includes tenant_id.

Failure modes:
    - IntegrityError on a duplicate movement id.  Propagated untouched.
    - RuntimeError on a backend without INSERT ... ON CONFLICT support.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from inventory_kernel.db.tenant_guard import scoped
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.stock import StockMovement
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock import StockLevelModel, StockMovementModel
from inventory_kernel.services.base import BaseService

logger = get_logger("services.movement_writer")

_LEVEL_KEY = ("tenant_id", "item_id", "location_id")


class MovementWriter(BaseService[StockMovementModel]):
    """
    Contract:
        Each method issues exactly one statement inside the caller's
        transaction.  Rollback is the caller's job.
    """

    def __init__(self, session: Session, tenant_id: UUID, clock: Clock | None = None):
        super().__init__(session, tenant_id)
        self._clock = clock or SystemClock()

    def _dialect_insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise RuntimeError(f"Stock level upsert is not supported on {dialect}")

    def insert_movement(self, movement: StockMovement) -> None:
        """Append the movement row."""
        self.session.execute(
            insert(StockMovementModel.__table__).values(
                id=movement.id,
                tenant_id=self.tenant_id,
                item_id=movement.item_id,
                location_id=movement.location_id,
                movement_type=movement.movement_type.token,
                quantity=movement.quantity,
                reference_type=movement.reference_type.token,
                reference_id=movement.reference_id,
                reason=movement.reason,
                created_at=movement.created_at,
                created_by=movement.created_by,
            )
        )

    def upsert_level(self, movement: StockMovement) -> None:
        """
        Add the movement's quantity to its level, creating the level if absent.

        The level's updated_at is the writer's clock at upsert time, not the
        movement's created_at.
        """
        table = StockLevelModel.__table__
        upsert = self._dialect_insert()
        stmt = upsert(table).values(
            id=uuid4(),
            tenant_id=self.tenant_id,
            item_id=movement.item_id,
            location_id=movement.location_id,
            quantity_on_hand=movement.quantity,
            last_movement_id=movement.id,
            updated_at=self._now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_LEVEL_KEY),
            set_={
                "quantity_on_hand": table.c.quantity_on_hand
                + stmt.excluded.quantity_on_hand,
                "last_movement_id": stmt.excluded.last_movement_id,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.session.execute(stmt)

    def initialize_level(self, item_id: UUID, location_id: UUID) -> bool:
        """
        Create a zero level for the pair if none exists.

        Returns:
            True when a row was created, False when the level already existed.
        """
        table = StockLevelModel.__table__
        upsert = self._dialect_insert()
        stmt = upsert(table).values(
            id=uuid4(),
            tenant_id=self.tenant_id,
            item_id=item_id,
            location_id=location_id,
            quantity_on_hand=0,
            last_movement_id=None,
            updated_at=self._now(),
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=list(_LEVEL_KEY))
        result = self.session.execute(stmt)
        created = result.rowcount == 1
        logger.debug(
            "stock_level_initialized" if created else "stock_level_already_exists",
            extra={"item_id": str(item_id), "location_id": str(location_id)},
        )
        return created

    def read_level(self, item_id: UUID, location_id: UUID) -> StockLevelModel | None:
        """Re-read the level as the database now has it, bypassing the identity map."""
        stmt = scoped(
            select(StockLevelModel).where(
                StockLevelModel.item_id == item_id,
                StockLevelModel.location_id == location_id,
            ),
            self.tenant_id,
            StockLevelModel,
        ).execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def _now(self) -> datetime:
        return self._clock.now()
