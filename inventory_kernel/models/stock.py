"""
Module: inventory_kernel.models.stock
Responsibility: ORM persistence for the stock ledger -- the append-only
    movements table and the per-(item, location) levels projection.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    S1 -- Append-only movements.  stock_movements rows are never updated or
          deleted (ORM listeners in db/immutability.py).
    S2 -- Composite identity.  UNIQUE(tenant_id, item_id, location_id) on
          stock_levels: at most one level row per pair per tenant.  This
          constraint is the conflict target of the atomic upsert.
    S3 -- Tenant ownership.  Both tables carry tenant_id (TenantScopedMixin);
          two tenants may reference the same item/location UUIDs.

Failure modes:
    - IntegrityError on a duplicate movement id (programming error).
    - IntegrityError on a duplicate level key if a writer bypasses the upsert.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, TenantScopedMixin, UUIDString


class StockMovementModel(TenantScopedMixin, Base):
    """
    One row per recorded StockMovement.

    Contract:
        Inserted exactly once, in the same transaction as the level upsert
        it caused.  Never updated, never deleted (S1).
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        # Query: history of one pair, newest first
        Index(
            "idx_stock_movement_pair",
            "tenant_id", "item_id", "location_id", "created_at",
        ),
        # Query: history of one item across locations
        Index("idx_stock_movement_item", "tenant_id", "item_id", "created_at"),
        # Query: history of one location across items
        Index(
            "idx_stock_movement_location",
            "tenant_id", "location_id", "created_at",
        ),
        Index("idx_stock_movement_reference", "reference_type", "reference_id"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    movement_type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Signed: positive adds stock, negative removes it
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    reference_type: Mapped[str] = mapped_column(String(32), nullable=False)

    reference_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    created_by: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.id}: {self.movement_type} "
            f"{self.quantity:+d} item={self.item_id} loc={self.location_id}>"
        )


class StockLevelModel(TenantScopedMixin, Base):
    """
    Current quantity on hand for one (tenant, item, location).

    Contract:
        Created lazily by the first movement (or initialize_stock_level) and
        changed only by the ledger's upsert statement.  Never deleted.

    Guarantees:
        - S2: unique per (tenant_id, item_id, location_id).
        - quantity_on_hand equals the sum of the pair's movement quantities.
    """

    __tablename__ = "stock_levels"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "item_id", "location_id",
            name="uq_stock_level_pair",
        ),
        Index("idx_stock_level_location", "tenant_id", "location_id", "item_id"),
        Index("idx_stock_level_quantity", "tenant_id", "quantity_on_hand"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity_on_hand: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    last_movement_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StockLevel item={self.item_id} loc={self.location_id} "
            f"qoh={self.quantity_on_hand}>"
        )


# Tables the ledger owns, in dependency order
LEDGER_TABLES = (StockMovementModel.__tablename__, StockLevelModel.__tablename__)
