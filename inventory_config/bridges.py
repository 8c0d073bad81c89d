"""
Config -> Kernel Bridges.

Functions that convert a LedgerConfig into kernel-compatible inputs.  These
live in inventory_config (the producer) because the kernel must NEVER import
inventory_config.

Usage:
    from inventory_config import get_active_config
    from inventory_config.bridges import init_database, ledger_policy_from_config

    config = get_active_config()
    init_database(config)
    ledger = StockLedger(session, tenant, policy=ledger_policy_from_config(config))
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from inventory_config.schema import LedgerConfig
from inventory_kernel.db.engine import create_tables, init_engine_from_url
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.db.tenant_guard import register_tenant_guard
from inventory_kernel.domain.policy import LedgerPolicy
from inventory_kernel.logging_config import configure_logging


def ledger_policy_from_config(config: LedgerConfig) -> LedgerPolicy:
    return LedgerPolicy(
        allow_negative_adjustments=config.ledger.allow_negative_adjustments,
        default_page_size=config.ledger.default_page_size,
        max_page_size=config.ledger.max_page_size,
    )


def init_database(config: LedgerConfig, create: bool = True) -> Engine:
    """
    Initialize the kernel engine from configuration.

    The tenant guard and the append-only listeners are registered on every
    call, before any session can be opened.  With ``create`` the ledger
    tables are created (and, when configured on PostgreSQL, the row-level
    security policies installed).
    """
    db = config.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    register_tenant_guard()
    register_immutability_listeners()
    if create:
        create_tables(install_policies=db.row_level_security)
    return engine


def configure_logging_from_config(config: LedgerConfig) -> None:
    configure_logging(level=config.logging.level)
