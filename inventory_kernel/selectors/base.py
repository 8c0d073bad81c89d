"""
Module: inventory_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.  Selectors
    form the "Q" side of the CQRS-lite split, providing tenant-scoped read
    access to the stock ledger without mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/ value objects.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: Selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: Selectors return domain dataclasses
      (StockLevel, StockMovement, StockLevelPage), NOT ORM model instances.
    - Tenant scope: every statement is filtered to ``self.tenant_id``.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base
from inventory_kernel.db.tenant_guard import scoped

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session and a tenant id from the caller, perform
        read-only queries, and return DTOs or computed results.

    Non-goals:
        - BaseSelector does NOT define any query methods.
    """

    def __init__(self, session: Session, tenant_id: UUID):
        """
        Initialize the selector.

        Preconditions: session is a valid, open SQLAlchemy Session.

        Args:
            session: SQLAlchemy session for database operations.
            tenant_id: Tenant whose rows this selector may see.
        """
        self.session = session
        self.tenant_id = tenant_id

    def _scoped(self, stmt, *models):
        """Restrict a statement to this selector's tenant."""
        return scoped(stmt, self.tenant_id, *models)
