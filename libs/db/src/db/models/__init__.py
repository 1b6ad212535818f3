"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``ledger_ingest``.
"""

from .ledger import Base, LedgerAccount, LedgerTransaction

__all__ = [
    "Base",
    "LedgerAccount",
    "LedgerTransaction",
]
