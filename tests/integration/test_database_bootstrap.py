"""
Startup through init_database alone.

A deployment never sees tests/conftest.py, so the tenant guard and the
append-only listeners must come from the configuration bridge itself.
"""

from uuid import uuid4

import pytest
from sqlalchemy import delete, select

import inventory_kernel.db.engine as engine_module
from inventory_config.bridges import init_database
from inventory_config.loader import parse_config
from inventory_kernel.db.engine import get_session
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.db.tenant_guard import (
    bind_tenant,
    register_tenant_guard,
    unregister_tenant_guard,
)
from inventory_kernel.domain.clock import SystemClock
from inventory_kernel.domain.stock import MovementType, ReferenceType, StockMovement
from inventory_kernel.domain.tenant import TenantContext
from inventory_kernel.exceptions import (
    ImmutabilityViolationError,
    TenantContextMissingError,
)
from inventory_kernel.models.stock import StockMovementModel
from inventory_kernel.services.stock_ledger import StockLedger


@pytest.fixture
def bare_process(monkeypatch):
    """No listeners registered; the suite's engine is restored afterwards."""
    monkeypatch.setattr(engine_module, "_engine", engine_module._engine)
    monkeypatch.setattr(engine_module, "_SessionFactory", engine_module._SessionFactory)
    unregister_tenant_guard()
    unregister_immutability_listeners()
    yield
    register_tenant_guard()
    register_immutability_listeners()


@pytest.fixture
def bootstrapped(bare_process, tmp_path):
    config = parse_config(
        {
            "config_id": "bootstrap",
            "version": 1,
            "database": {"url": f"sqlite:///{tmp_path / 'ledger.db'}"},
        },
        env={},
    )
    engine = init_database(config)
    yield engine
    engine.dispose()


def _record_initial(tenant: TenantContext, quantity: int) -> StockMovement:
    movement = StockMovement.new(
        item_id=uuid4(),
        location_id=uuid4(),
        movement_type=MovementType.INITIAL,
        quantity=quantity,
        reference_type=ReferenceType.INITIAL,
        clock=SystemClock(),
    )
    session = get_session()
    try:
        StockLedger(session, tenant).record_movement(movement)
    finally:
        session.close()
    return movement


class TestInitDatabaseGuards:
    def test_other_tenant_rows_invisible_to_plain_select(self, bootstrapped):
        owner, stranger = TenantContext(uuid4()), TenantContext(uuid4())
        _record_initial(owner, 5)

        session = get_session()
        try:
            bind_tenant(session, stranger)
            assert session.execute(select(StockMovementModel)).scalars().all() == []
        finally:
            session.close()

    def test_unbound_session_cannot_read_ledger(self, bootstrapped):
        _record_initial(TenantContext(uuid4()), 1)

        session = get_session()
        try:
            with pytest.raises(TenantContextMissingError):
                session.execute(select(StockMovementModel)).all()
        finally:
            session.close()

    def test_recorded_movement_cannot_be_deleted(self, bootstrapped):
        tenant = TenantContext(uuid4())
        movement = _record_initial(tenant, 5)

        session = get_session()
        try:
            bind_tenant(session, tenant)
            row = session.execute(
                select(StockMovementModel).where(StockMovementModel.id == movement.id)
            ).scalar_one()
            session.delete(row)
            with pytest.raises(ImmutabilityViolationError):
                session.flush()
            session.rollback()

            with pytest.raises(ImmutabilityViolationError):
                session.execute(delete(StockMovementModel))
        finally:
            session.close()

        reader = get_session()
        try:
            assert StockLedger(reader, tenant).get_movement_by_id(movement.id) is not None
        finally:
            reader.close()
