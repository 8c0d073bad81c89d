"""
Module: inventory_kernel.db.tenant_guard
Responsibility: Tenant isolation for every statement that touches ledger
    tables.  A tenant is bound to a session once; from then on every ORM
    SELECT/UPDATE/DELETE against a TenantScopedMixin model is filtered to that
    tenant and every new row must belong to it.
Architecture position: Kernel > DB.  May import from db/base.py, exceptions,
    logging_config and domain/tenant.py (a pure value object).  MUST NOT
    import from services/ or selectors/.

Invariants enforced:
    - No tenant-scoped statement runs without a bound tenant
      (TenantContextMissingError).
    - A session serves exactly one tenant for its lifetime
      (TenantMismatchError on re-binding to another tenant).
    - A row of another tenant is never flushed through a bound session.
    - On PostgreSQL the bound tenant is also published to the database as
      the transaction-local setting app.tenant_id, which the optional
      row-level security policies check.

Layers:
    1. Explicit filter: selectors and writers add ``Model.tenant_id == tid``
       through scoped().  This covers aggregate and column-only SELECTs.
    2. do_orm_execute listener: adds with_loader_criteria for every entity
       SELECT and ORM-enabled UPDATE/DELETE, and refuses to run unbound.
    3. PostgreSQL row-level security (install_tenant_policies, opt-in).

Failure modes:
    - TenantContextMissingError, TenantMismatchError.
"""

from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from inventory_kernel.db.base import TenantScopedMixin
from inventory_kernel.domain.tenant import TenantContext
from inventory_kernel.exceptions import (
    TenantContextMissingError,
    TenantMismatchError,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.tenant_guard")

# Key under which the bound tenant lives in Session.info
TENANT_INFO_KEY = "inventory_tenant_id"

# PostgreSQL setting read by the row-level security policies
TENANT_SETTING = "app.tenant_id"

_RLS_TABLES = ("stock_movements", "stock_levels")


# =============================================================================
# Binding
# =============================================================================


def bind_tenant(session: Session, tenant: TenantContext | UUID) -> TenantContext:
    """
    Bind a tenant to a session.

    Binding the same tenant again is a no-op.

    Raises:
        TenantMismatchError: the session is already bound to another tenant.
    """
    context = tenant if isinstance(tenant, TenantContext) else TenantContext(tenant)
    bound = session.info.get(TENANT_INFO_KEY)
    if bound is not None:
        if bound != context.tenant_id:
            raise TenantMismatchError(
                bound_tenant_id=str(bound),
                requested_tenant_id=str(context.tenant_id),
            )
        return context

    session.info[TENANT_INFO_KEY] = context.tenant_id
    if session.in_transaction():
        _publish_tenant_setting(session.connection(), context.tenant_id)

    logger.debug("tenant_bound", extra={"tenant_id": str(context.tenant_id)})
    return context


def bound_tenant_id(session: Session) -> UUID | None:
    """Return the tenant bound to the session, or None."""
    return session.info.get(TENANT_INFO_KEY)


def current_tenant_id(session: Session, operation: str = "ledger access") -> UUID:
    """
    Return the tenant bound to the session.

    Raises:
        TenantContextMissingError: no tenant is bound.
    """
    tenant_id = session.info.get(TENANT_INFO_KEY)
    if tenant_id is None:
        raise TenantContextMissingError(operation)
    return tenant_id


def scoped(stmt, tenant_id: UUID, *models):
    """Add ``Model.tenant_id == tenant_id`` for each model to a statement."""
    return stmt.where(*(model.tenant_id == tenant_id for model in models))


# =============================================================================
# Session listeners
# =============================================================================


def _touches_tenant_tables(orm_execute_state: ORMExecuteState) -> bool:
    return any(
        issubclass(mapper.class_, TenantScopedMixin)
        for mapper in orm_execute_state.all_mappers
    )


def _apply_tenant_criteria(orm_execute_state: ORMExecuteState) -> None:
    """Filter every entity statement on tenant tables to the bound tenant."""
    if not (
        orm_execute_state.is_select
        or orm_execute_state.is_update
        or orm_execute_state.is_delete
    ):
        return
    if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
        return
    if not _touches_tenant_tables(orm_execute_state):
        return

    tenant_id = orm_execute_state.session.info.get(TENANT_INFO_KEY)
    if tenant_id is None:
        logger.error("tenant_context_missing")
        raise TenantContextMissingError("ORM statement on tenant-scoped table")

    orm_execute_state.statement = orm_execute_state.statement.options(
        with_loader_criteria(
            TenantScopedMixin,
            lambda cls: cls.tenant_id == tenant_id,
            include_aliases=True,
        )
    )


def _check_new_rows(session, flush_context, instances):
    """Every new tenant-scoped row must belong to the bound tenant."""
    tenant_rows = [obj for obj in session.new if isinstance(obj, TenantScopedMixin)]
    if not tenant_rows:
        return

    tenant_id = session.info.get(TENANT_INFO_KEY)
    if tenant_id is None:
        raise TenantContextMissingError("flush of tenant-scoped rows")

    for obj in tenant_rows:
        if obj.tenant_id is None:
            obj.tenant_id = tenant_id
        elif obj.tenant_id != tenant_id:
            logger.error(
                "tenant_mismatch_blocked",
                extra={
                    "entity_type": type(obj).__name__,
                    "row_tenant_id": str(obj.tenant_id),
                },
            )
            raise TenantMismatchError(
                bound_tenant_id=str(tenant_id),
                requested_tenant_id=str(obj.tenant_id),
            )


def _publish_tenant_setting(connection: Connection, tenant_id: UUID) -> None:
    if connection.dialect.name != "postgresql":
        return
    connection.execute(
        text("SELECT set_config(:name, :tid, true)"),
        {"name": TENANT_SETTING, "tid": str(tenant_id)},
    )


def _on_after_begin(session, transaction, connection):
    tenant_id = session.info.get(TENANT_INFO_KEY)
    if tenant_id is not None:
        _publish_tenant_setting(connection, tenant_id)


def register_tenant_guard():
    """
    Register the tenant isolation listeners on all sessions.

    Safe to call more than once.
    """
    listeners = (
        ("do_orm_execute", _apply_tenant_criteria),
        ("before_flush", _check_new_rows),
        ("after_begin", _on_after_begin),
    )
    for event_name, listener_fn in listeners:
        if not event.contains(Session, event_name, listener_fn):
            event.listen(Session, event_name, listener_fn)

    logger.debug("tenant_guard_registered")


def unregister_tenant_guard():
    """Remove the tenant isolation listeners.  TESTS ONLY."""
    for event_name, listener_fn in (
        ("do_orm_execute", _apply_tenant_criteria),
        ("before_flush", _check_new_rows),
        ("after_begin", _on_after_begin),
    ):
        if event.contains(Session, event_name, listener_fn):
            event.remove(Session, event_name, listener_fn)


# =============================================================================
# PostgreSQL row-level security
# =============================================================================


def install_tenant_policies(engine: Engine) -> None:
    """
    Enable and force row-level security on the ledger tables.

    Rows are visible and writable only while app.tenant_id matches their
    tenant_id.  Superusers bypass row-level security regardless.

    Preconditions: PostgreSQL engine; tables already created.
    """
    if engine.dialect.name != "postgresql":
        raise RuntimeError("Row-level security requires PostgreSQL")

    with engine.begin() as conn:
        for table in _RLS_TABLES:
            conn.execute(text(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY"))
            conn.execute(text(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY"))
            conn.execute(text(f"DROP POLICY IF EXISTS tenant_isolation ON {table}"))
            conn.execute(
                text(
                    f"CREATE POLICY tenant_isolation ON {table} "
                    f"USING (tenant_id = current_setting('{TENANT_SETTING}', true)) "
                    f"WITH CHECK (tenant_id = current_setting('{TENANT_SETTING}', true))"
                )
            )

    logger.info("tenant_policies_installed", extra={"tables": list(_RLS_TABLES)})


def remove_tenant_policies(engine: Engine) -> None:
    """Drop the policies and disable row-level security."""
    if engine.dialect.name != "postgresql":
        return

    with engine.begin() as conn:
        for table in _RLS_TABLES:
            conn.execute(text(f"DROP POLICY IF EXISTS tenant_isolation ON {table}"))
            conn.execute(text(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY"))
            conn.execute(text(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY"))
