"""Database layer - engine, base classes, tenant guard, and immutability."""

from inventory_kernel.db.base import UUID, Base, TenantScopedMixin, UTCDateTime, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TenantScopedMixin",
    "UTCDateTime",
    "UUIDString",
    "UUID",
]
