"""
Module: inventory_kernel.selectors.stock_selector
Responsibility: Read-only queries over stock levels and stock movements for
    one tenant: point lookups, per-item and per-location listings, movement
    history, paginated scans, and the movement-sum reconciliation check.
Architecture position: Kernel > Selectors.  May import from models/, db/ and
    domain/ value objects.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Every statement carries an explicit tenant filter.
    - Movement history is newest first (created_at DESC, id DESC).
    - Level scans use the stable (item_id, location_id) ordering the offset
      cursors depend on.

Failure modes:
    - Returns None / empty lists / zero when nothing matches; never raises
      for a missing row.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.pagination import StockLevelPage, next_cursor
from inventory_kernel.domain.stock import StockLevel, StockMovement
from inventory_kernel.models.stock import StockLevelModel, StockMovementModel
from inventory_kernel.selectors.base import BaseSelector


class StockSelector(BaseSelector[StockLevelModel]):
    """
    Selector for the stock ledger.

    Contract:
        Limits and offsets arrive already clamped; this class never applies
        paging policy itself.

    Guarantees:
        - Results are domain objects, never ORM instances.
        - A tenant never sees another tenant's rows, even when they share
          item or location ids.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        super().__init__(session, tenant_id)

    # -------------------------------------------------------------------------
    # Levels
    # -------------------------------------------------------------------------

    def _levels(self):
        # Levels change under other sessions; never trust the identity map
        return self._scoped(select(StockLevelModel), StockLevelModel).execution_options(
            populate_existing=True
        )

    def get_level(self, item_id: UUID, location_id: UUID) -> StockLevel | None:
        model = self.session.execute(
            self._levels().where(
                StockLevelModel.item_id == item_id,
                StockLevelModel.location_id == location_id,
            )
        ).scalar_one_or_none()
        return StockLevel.from_model(model) if model is not None else None

    def level_exists(self, item_id: UUID, location_id: UUID) -> bool:
        stmt = self._scoped(
            select(func.count(StockLevelModel.id)).where(
                StockLevelModel.item_id == item_id,
                StockLevelModel.location_id == location_id,
            ),
            StockLevelModel,
        )
        return self.session.execute(stmt).scalar_one() > 0

    def levels_for_item(self, item_id: UUID) -> list[StockLevel]:
        stmt = (
            self._levels()
            .where(StockLevelModel.item_id == item_id)
            .order_by(StockLevelModel.location_id)
        )
        return [StockLevel.from_model(m) for m in self.session.scalars(stmt)]

    def levels_for_location(self, location_id: UUID) -> list[StockLevel]:
        stmt = (
            self._levels()
            .where(StockLevelModel.location_id == location_id)
            .order_by(StockLevelModel.item_id)
        )
        return [StockLevel.from_model(m) for m in self.session.scalars(stmt)]

    def total_on_hand(self, item_id: UUID) -> int:
        """Sum of quantity_on_hand across all locations; 0 when none exist."""
        stmt = self._scoped(
            select(func.coalesce(func.sum(StockLevelModel.quantity_on_hand), 0)).where(
                StockLevelModel.item_id == item_id
            ),
            StockLevelModel,
        )
        return int(self.session.execute(stmt).scalar_one())

    # -------------------------------------------------------------------------
    # Paginated level scans
    # -------------------------------------------------------------------------

    def _page(self, stmt, limit: int, offset: int) -> StockLevelPage:
        stmt = (
            stmt.order_by(StockLevelModel.item_id, StockLevelModel.location_id)
            .limit(limit)
            .offset(offset)
        )
        items = tuple(StockLevel.from_model(m) for m in self.session.scalars(stmt))
        return StockLevelPage(
            items=items,
            next_cursor=next_cursor(offset, limit, len(items)),
        )

    def levels_at_or_below(
        self, threshold: int, limit: int, offset: int
    ) -> StockLevelPage:
        return self._page(
            self._levels().where(StockLevelModel.quantity_on_hand <= threshold),
            limit,
            offset,
        )

    def levels_page(
        self, limit: int, offset: int, location_id: UUID | None = None
    ) -> StockLevelPage:
        stmt = self._levels()
        if location_id is not None:
            stmt = stmt.where(StockLevelModel.location_id == location_id)
        return self._page(stmt, limit, offset)

    # -------------------------------------------------------------------------
    # Movements
    # -------------------------------------------------------------------------

    def _movements(self):
        return self._scoped(select(StockMovementModel), StockMovementModel)

    def _history(self, stmt, limit: int, offset: int) -> list[StockMovement]:
        stmt = (
            stmt.order_by(
                StockMovementModel.created_at.desc(),
                StockMovementModel.id.desc(),
            )
            .limit(limit)
            .offset(offset)
        )
        return [StockMovement.from_model(m) for m in self.session.scalars(stmt)]

    def movement_by_id(self, movement_id: UUID) -> StockMovement | None:
        model = self.session.execute(
            self._movements().where(StockMovementModel.id == movement_id)
        ).scalar_one_or_none()
        return StockMovement.from_model(model) if model is not None else None

    def movements_for_item(
        self, item_id: UUID, limit: int, offset: int
    ) -> list[StockMovement]:
        return self._history(
            self._movements().where(StockMovementModel.item_id == item_id),
            limit,
            offset,
        )

    def movements_for_location(
        self, location_id: UUID, limit: int, offset: int
    ) -> list[StockMovement]:
        return self._history(
            self._movements().where(StockMovementModel.location_id == location_id),
            limit,
            offset,
        )

    def movements_for_pair(
        self, item_id: UUID, location_id: UUID, limit: int, offset: int
    ) -> list[StockMovement]:
        return self._history(
            self._movements().where(
                StockMovementModel.item_id == item_id,
                StockMovementModel.location_id == location_id,
            ),
            limit,
            offset,
        )

    def movement_totals(self, item_id: UUID, location_id: UUID) -> tuple[int, int]:
        """Return (sum of quantities, number of movements) for one pair."""
        stmt = self._scoped(
            select(
                func.coalesce(func.sum(StockMovementModel.quantity), 0),
                func.count(StockMovementModel.id),
            ).where(
                StockMovementModel.item_id == item_id,
                StockMovementModel.location_id == location_id,
            ),
            StockMovementModel,
        )
        total, count = self.session.execute(stmt).one()
        return int(total), int(count)
