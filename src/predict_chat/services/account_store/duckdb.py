"""
DuckDB Account Store - durable arena in a single DuckDB file

Tables:
- accounts:            address -> (owner, data) for every program account
- vault_deposits:      confirmed deposits per (vault, predictor)
- vault_reservations:  stake amounts committed against those deposits

Each committed transaction is one DuckDB transaction; a failed write rolls
back and surfaces as AllocationFailed.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import duckdb
from solders.pubkey import Pubkey

from predict_chat.errors import AllocationFailed

from .base import Account, AccountStore
from .paths import StorePaths

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS accounts (
        address VARCHAR PRIMARY KEY,
        owner VARCHAR NOT NULL,
        data BLOB NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS vault_deposits (
        vault VARCHAR NOT NULL,
        predictor VARCHAR NOT NULL,
        amount UBIGINT NOT NULL,
        deposited_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS vault_reservations (
        vault VARCHAR NOT NULL,
        predictor VARCHAR NOT NULL,
        amount HUGEINT NOT NULL,
        reserved_at TIMESTAMP NOT NULL
    )
    """,
]


class DuckDBAccountStore(AccountStore):
    """
    Account store persisted to DuckDB.

    One connection per store, guarded by a lock; per-address transaction
    locks come from AccountStore.

    Usage:
        with DuckDBAccountStore(StorePaths(tmp_dir)) as store:
            processor = InstructionProcessor(store, clock, DuckDBVaultLedger(store))
    """

    def __init__(
        self,
        paths: StorePaths | None = None,
        db_path: Path | str | None = None,
        max_accounts: int | None = None,
    ):
        """
        Args:
            paths: StorePaths instance (uses defaults if None)
            db_path: Explicit database file, overrides paths
            max_accounts: Capacity limit (None = unbounded)
        """
        super().__init__(max_accounts=max_accounts)
        if db_path is None:
            self._paths = paths or StorePaths()
            self._paths.ensure_directories()
            db_path = self._paths.database_file
        self._db_path = Path(db_path)
        self._conn_lock = threading.RLock()
        self._conn = duckdb.connect(str(self._db_path))
        for statement in _SCHEMA:
            self._conn.execute(statement)
        logger.info(f"DuckDBAccountStore opened {self._db_path}")

    @property
    def db_path(self) -> Path:
        return self._db_path

    def execute(self, sql: str, params: list[Any] | None = None) -> list[tuple]:
        """Run a statement on the store connection and fetch all rows"""
        with self._conn_lock:
            return self._conn.execute(sql, params or []).fetchall()

    def _read(self, address: Pubkey) -> Account | None:
        rows = self.execute(
            "SELECT owner, data FROM accounts WHERE address = ?", [str(address)]
        )
        if not rows:
            return None
        owner, data = rows[0]
        return Account(address=address, owner=Pubkey.from_string(owner), data=bytes(data))

    def _apply(self, accounts: list[Account]) -> None:
        now = _utcnow()
        with self._conn_lock:
            self._conn.execute("BEGIN TRANSACTION")
            try:
                addresses = [str(account.address) for account in accounts]
                existing = self._conn.execute(
                    f"SELECT COUNT(*) FROM accounts WHERE address IN ({', '.join('?' * len(addresses))})",
                    addresses,
                ).fetchone()[0]
                current = self._conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0]
                self._check_capacity(int(current), len(addresses) - int(existing))

                for account in accounts:
                    self._conn.execute(
                        "INSERT OR REPLACE INTO accounts VALUES (?, ?, ?, ?)",
                        [str(account.address), str(account.owner), account.data, now],
                    )
                self._conn.execute("COMMIT")
            except AllocationFailed:
                self._conn.execute("ROLLBACK")
                raise
            except duckdb.Error as e:
                self._conn.execute("ROLLBACK")
                raise AllocationFailed(f"Account write failed: {e}") from e

    def count(self) -> int:
        return int(self.execute("SELECT COUNT(*) FROM accounts")[0][0])

    @property
    def lock(self) -> threading.RLock:
        """Connection lock, for callers that need several statements to run as one"""
        return self._conn_lock

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"DuckDBAccountStore closed {self._db_path}")


class DuckDBVaultLedger:
    """
    Vault funding signal backed by the store's vault tables

    Deposits and reservations are append-only rows; a release is a negative
    reservation row.
    """

    def __init__(self, store: DuckDBAccountStore):
        self._store = store

    def deposit(self, vault: Pubkey, predictor: Pubkey, amount: int) -> int:
        """
        Record a confirmed transfer into a vault

        Returns:
            New balance attributable to the predictor
        """
        if amount <= 0:
            raise ValueError(f"deposit amount must be positive, got {amount}")
        self._store.execute(
            "INSERT INTO vault_deposits VALUES (?, ?, ?, ?)",
            [str(vault), str(predictor), amount, _utcnow()],
        )
        return self.funded_amount(vault, predictor)

    def funded_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        rows = self._store.execute(
            "SELECT COALESCE(SUM(amount), 0) FROM vault_deposits "
            "WHERE vault = ? AND predictor = ?",
            [str(vault), str(predictor)],
        )
        return int(rows[0][0])

    def committed_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        rows = self._store.execute(
            "SELECT COALESCE(SUM(amount), 0) FROM vault_reservations "
            "WHERE vault = ? AND predictor = ?",
            [str(vault), str(predictor)],
        )
        return int(rows[0][0])

    def available_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        with self._store.lock:
            return self.funded_amount(vault, predictor) - self.committed_amount(vault, predictor)

    def reserve(self, vault: Pubkey, predictor: Pubkey, amount: int) -> bool:
        with self._store.lock:
            if self.available_amount(vault, predictor) < amount:
                return False
            self._store.execute(
                "INSERT INTO vault_reservations VALUES (?, ?, ?, ?)",
                [str(vault), str(predictor), amount, _utcnow()],
            )
        logger.debug(f"Reserved {amount} in {vault} for {predictor}")
        return True

    def release(self, vault: Pubkey, predictor: Pubkey, amount: int) -> None:
        self._store.execute(
            "INSERT INTO vault_reservations VALUES (?, ?, ?, ?)",
            [str(vault), str(predictor), -amount, _utcnow()],
        )
        logger.debug(f"Released {amount} in {vault} for {predictor}")
