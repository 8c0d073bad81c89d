"""
Inventory Kernel - Stock Ledger

An append-only, multi-tenant stock ledger with:
- Typed movement taxonomy with sign invariants
- Atomic movement application (insert + level upsert + non-negative check)
- Per-(item, location) quantity-on-hand projection
- Tenant isolation enforced at the data-access boundary
"""

__version__ = "0.1.0"
