"""
Account Store - arena of program accounts keyed by derived address

Transactions give each operation an exclusive read-modify-write window:
- Per-address locks, acquired in sorted order (no lock-order deadlocks)
- Writes are staged and only applied if the block exits cleanly
- Any exception discards every staged write
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from solders.pubkey import Pubkey

from predict_chat.errors import AllocationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """Raw stored account: address, owning program, data bytes"""

    address: Pubkey
    owner: Pubkey
    data: bytes

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0


class Transaction:
    """
    Staged view over the store for one operation

    Reads see this transaction's own staged writes first. Only addresses
    locked when the transaction opened may be read or written.
    """

    def __init__(self, store: "AccountStore", addresses: frozenset[bytes]):
        self._store = store
        self._addresses = addresses
        self._writes: dict[bytes, Account] = {}
        self._created = 0

    def _check_locked(self, address: Pubkey) -> bytes:
        key = bytes(address)
        if key not in self._addresses:
            raise RuntimeError(f"Address {address} is not locked by this transaction")
        return key

    def get(self, address: Pubkey) -> Account | None:
        key = self._check_locked(address)
        if key in self._writes:
            return self._writes[key]
        return self._store._read(address)

    def create(self, address: Pubkey, owner: Pubkey, data: bytes) -> Account:
        """
        Allocate a new account

        Raises:
            AllocationFailed: If the address is occupied or the store is full
        """
        if self.get(address) is not None:
            raise AllocationFailed(f"Address {address} is already allocated")
        self._store._ensure_capacity(self._created + 1)
        self._created += 1
        account = Account(address=address, owner=owner, data=bytes(data))
        self._writes[bytes(address)] = account
        return account

    def write(self, address: Pubkey, data: bytes) -> Account:
        """Replace the data of an existing account (same size, same owner)"""
        existing = self.get(address)
        if existing is None:
            raise KeyError(f"Cannot write unallocated address {address}")
        if len(data) != len(existing.data):
            raise ValueError(
                f"Account {address} is {len(existing.data)} bytes, write is {len(data)}"
            )
        account = Account(address=address, owner=existing.owner, data=bytes(data))
        self._writes[bytes(address)] = account
        return account

    @property
    def pending(self) -> list[Account]:
        return list(self._writes.values())


class AccountStore(ABC):
    """Base class for account stores"""

    def __init__(self, max_accounts: int | None = None):
        self._max_accounts = max_accounts
        self._key_locks: dict[bytes, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    @property
    def max_accounts(self) -> int | None:
        return self._max_accounts

    def _lock_for(self, key: bytes) -> threading.Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    @contextmanager
    def transaction(self, *addresses: Pubkey) -> Iterator[Transaction]:
        """
        Open an all-or-nothing transaction over `addresses`

        Usage:
            with store.transaction(room_addr, prediction_addr) as tx:
                account = tx.get(room_addr)
                tx.write(prediction_addr, data)
            # committed here, or nothing at all if the block raised
        """
        keys = sorted({bytes(a) for a in addresses})
        locks = [self._lock_for(key) for key in keys]
        for lock in locks:
            lock.acquire()
        try:
            tx = Transaction(self, frozenset(keys))
            try:
                yield tx
            except BaseException:
                logger.debug(f"Transaction rolled back ({len(tx.pending)} staged writes dropped)")
                raise
            if tx.pending:
                self._apply(tx.pending)
                logger.debug(f"Transaction committed {len(tx.pending)} account(s)")
        finally:
            for lock in reversed(locks):
                lock.release()

    def get(self, address: Pubkey) -> Account | None:
        """Read committed state without locking"""
        return self._read(address)

    def _ensure_capacity(self, new_accounts: int) -> None:
        """Early capacity check; `_apply` repeats it under the store-wide lock"""
        self._check_capacity(self.count(), new_accounts)

    def _check_capacity(self, current: int, new_accounts: int) -> None:
        if self._max_accounts is None:
            return
        if current + new_accounts > self._max_accounts:
            raise AllocationFailed(
                f"Account store full ({current}/{self._max_accounts} accounts, {new_accounts} requested)"
            )

    @abstractmethod
    def _read(self, address: Pubkey) -> Account | None:
        """Return the committed account at `address`, or None"""

    @abstractmethod
    def _apply(self, accounts: list[Account]) -> None:
        """
        Persist every account atomically, or raise and persist none

        Implementations must re-check capacity for newly allocated addresses
        under their store-wide lock (AllocationFailed).
        """

    @abstractmethod
    def count(self) -> int:
        """Number of allocated accounts"""

    def close(self) -> None:
        """Release backend resources"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
