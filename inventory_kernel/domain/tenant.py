"""
TenantContext -- explicit tenant scope for every ledger call.

The active tenant is a value passed to the ledger at construction, never an
ambient or thread-local setting.  The data-access layer (db/tenant_guard.py)
turns it into a filter on every statement.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class TenantContext:
    """The tenant on whose behalf ledger reads and writes are performed."""

    tenant_id: UUID

    def __post_init__(self) -> None:
        if not isinstance(self.tenant_id, UUID):
            object.__setattr__(self, "tenant_id", UUID(str(self.tenant_id)))

    def __str__(self) -> str:
        return str(self.tenant_id)
