"""
LedgerConfig schema.

The typed form of a configuration set.  YAML files are parsed into these
frozen dataclasses by ``inventory_config.loader``; nothing else in the
system reads the YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    # PostgreSQL only: install tenant row-level security policies
    row_level_security: bool = False


# ---------------------------------------------------------------------------
# Ledger policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerPolicyConfig:
    """Source form of the kernel's LedgerPolicy."""

    allow_negative_adjustments: bool = True
    default_page_size: int = 50
    max_page_size: int = 1000


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    database: DatabaseConfig
    ledger: LedgerPolicyConfig = field(default_factory=LedgerPolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
