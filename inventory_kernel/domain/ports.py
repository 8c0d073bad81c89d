"""
Ports -- the stock ledger's capability set and its outbound hook.

Responsibility:
    ``StockLedgerPort`` is the single interface collaborators program
    against (record, query, initialize).  One concrete implementation exists
    per storage backend and is injected at construction; the SQLAlchemy one
    is ``inventory_kernel.services.stock_ledger.StockLedger``.

    ``MovementSubscriber`` is the outbound hook for read-only consumers such
    as a search projection.  Subscribers are told about a movement only
    after it committed and can never affect the ledger's atomicity.

Architecture position:
    Kernel > Domain -- pure interfaces, zero I/O.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from uuid import UUID

from inventory_kernel.domain.pagination import StockLevelPage
from inventory_kernel.domain.stock import ProjectionCheck, StockLevel, StockMovement


class MovementSubscriber(ABC):
    """Read-only consumer of successfully recorded movements."""

    @abstractmethod
    def on_movement_recorded(
        self,
        tenant_id: UUID,
        movement: StockMovement,
        level: StockLevel,
    ) -> None:
        """Called once per committed movement, in commit order per ledger."""
        ...


class StockLedgerPort(ABC):
    """
    Capability set of the stock ledger.

    Contract:
        Every method operates under the tenant the implementation was
        constructed for.  Writes are all-or-nothing.
    """

    # -- write side ---------------------------------------------------------

    @abstractmethod
    def record_movement(self, movement: StockMovement) -> StockLevel: ...

    @abstractmethod
    def record_movements(
        self, movements: Sequence[StockMovement]
    ) -> list[StockLevel]: ...

    @abstractmethod
    def initialize_stock_level(self, item_id: UUID, location_id: UUID) -> bool: ...

    # -- read side ----------------------------------------------------------

    @abstractmethod
    def get_stock_level(
        self, item_id: UUID, location_id: UUID
    ) -> StockLevel | None: ...

    @abstractmethod
    def stock_level_exists(self, item_id: UUID, location_id: UUID) -> bool: ...

    @abstractmethod
    def get_item_stock_levels(self, item_id: UUID) -> list[StockLevel]: ...

    @abstractmethod
    def get_location_stock_levels(self, location_id: UUID) -> list[StockLevel]: ...

    @abstractmethod
    def get_total_quantity_on_hand(self, item_id: UUID) -> int: ...

    @abstractmethod
    def get_movement_by_id(self, movement_id: UUID) -> StockMovement | None: ...

    @abstractmethod
    def get_item_movements(
        self, item_id: UUID, limit: int | None = None, offset: int | None = None
    ) -> list[StockMovement]: ...

    @abstractmethod
    def get_location_movements(
        self, location_id: UUID, limit: int | None = None, offset: int | None = None
    ) -> list[StockMovement]: ...

    @abstractmethod
    def get_stock_movements(
        self,
        item_id: UUID,
        location_id: UUID,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[StockMovement]: ...

    @abstractmethod
    def get_stock_levels_below_threshold(
        self, threshold: int, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage: ...

    @abstractmethod
    def get_stock_levels_by_location(
        self, location_id: UUID, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage: ...

    @abstractmethod
    def get_all_stock_levels(
        self, limit: int | None = None, cursor: str | None = None
    ) -> StockLevelPage: ...

    @abstractmethod
    def verify_stock_level(
        self, item_id: UUID, location_id: UUID
    ) -> ProjectionCheck: ...
