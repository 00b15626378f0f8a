"""
Account Store Module

Arena-style storage of program accounts keyed by derived address:
- InMemoryAccountStore for tests and embedding
- DuckDBAccountStore for durable state (plus DuckDBVaultLedger funding signal)
"""

from .base import Account, AccountStore, Transaction
from .duckdb import DuckDBAccountStore, DuckDBVaultLedger
from .memory import InMemoryAccountStore
from .paths import StorePaths

__all__ = [
    "Account",
    "AccountStore",
    "Transaction",
    "InMemoryAccountStore",
    "DuckDBAccountStore",
    "DuckDBVaultLedger",
    "StorePaths",
]
