"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``inventory_config.schema`` dataclasses.  The single public entry point for
runtime config is ``inventory_config.get_active_config()``; this module is
its implementation and test tooling.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Unknown keys are rejected so that a misspelled setting never silently
  falls back to its default.
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Wrong types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LedgerPolicyConfig,
    LoggingConfig,
)

# Environment variable that replaces database.url
DATABASE_URL_ENV = "INVENTORY_DATABASE_URL"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML document must be a mapping")
    return data


def _check_keys(section: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(
            f"Unknown key(s) in '{section}': {', '.join(sorted(unknown))}"
        )


def _bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"'{section}.{key}' must be a boolean, got {value!r}")
    return value


def _positive_int(section: str, key: str, value: Any, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValueError(
            f"'{section}.{key}' must be an integer >= {minimum}, got {value!r}"
        )
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    _check_keys(
        "database",
        data,
        {
            "url",
            "echo",
            "pool_size",
            "max_overflow",
            "pool_timeout",
            "pool_recycle",
            "row_level_security",
        },
    )
    url = data["url"]
    if not isinstance(url, str) or not url:
        raise ValueError("'database.url' must be a non-empty string")
    return DatabaseConfig(
        url=url,
        echo=_bool("database", "echo", data.get("echo", False)),
        pool_size=_positive_int("database", "pool_size", data.get("pool_size", 20)),
        max_overflow=_positive_int(
            "database", "max_overflow", data.get("max_overflow", 10), minimum=0
        ),
        pool_timeout=_positive_int(
            "database", "pool_timeout", data.get("pool_timeout", 30)
        ),
        pool_recycle=_positive_int(
            "database", "pool_recycle", data.get("pool_recycle", 1800)
        ),
        row_level_security=_bool(
            "database", "row_level_security", data.get("row_level_security", False)
        ),
    )


def parse_ledger_policy(data: dict[str, Any]) -> LedgerPolicyConfig:
    _check_keys(
        "ledger",
        data,
        {"allow_negative_adjustments", "default_page_size", "max_page_size"},
    )
    default_page_size = _positive_int(
        "ledger", "default_page_size", data.get("default_page_size", 50)
    )
    max_page_size = _positive_int(
        "ledger", "max_page_size", data.get("max_page_size", 1000)
    )
    if max_page_size < default_page_size:
        raise ValueError(
            f"'ledger.max_page_size' ({max_page_size}) must be >= "
            f"'ledger.default_page_size' ({default_page_size})"
        )
    return LedgerPolicyConfig(
        allow_negative_adjustments=_bool(
            "ledger",
            "allow_negative_adjustments",
            data.get("allow_negative_adjustments", True),
        ),
        default_page_size=default_page_size,
        max_page_size=max_page_size,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    _check_keys("logging", data, {"level"})
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of {sorted(_LOG_LEVELS)}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any], env: dict[str, str] | None = None) -> LedgerConfig:
    """
    Parse a configuration document.

    ``env`` defaults to ``os.environ``; when it carries
    INVENTORY_DATABASE_URL that value replaces ``database.url``.
    """
    _check_keys("root", data, {"config_id", "version", "database", "ledger", "logging"})
    env = os.environ if env is None else env

    database_data = dict(data["database"])
    override = env.get(DATABASE_URL_ENV)
    if override:
        database_data["url"] = override

    return LedgerConfig(
        config_id=str(data["config_id"]),
        version=_positive_int("root", "version", data.get("version", 1)),
        database=parse_database(database_data),
        ledger=parse_ledger_policy(data.get("ledger") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path, env: dict[str, str] | None = None) -> LedgerConfig:
    return parse_config(load_yaml_file(path), env=env)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.  The checksum
    covers the file as written, before any environment override.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
