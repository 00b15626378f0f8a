"""
In-memory account store
"""

import logging
import threading

from solders.pubkey import Pubkey

from .base import Account, AccountStore

logger = logging.getLogger(__name__)


class InMemoryAccountStore(AccountStore):
    """Dict-backed arena; state lives as long as the instance"""

    def __init__(self, max_accounts: int | None = None):
        super().__init__(max_accounts=max_accounts)
        self._accounts: dict[bytes, Account] = {}
        self._data_lock = threading.RLock()
        logger.debug(f"InMemoryAccountStore initialized (max_accounts={max_accounts})")

    def _read(self, address: Pubkey) -> Account | None:
        with self._data_lock:
            return self._accounts.get(bytes(address))

    def _apply(self, accounts: list[Account]) -> None:
        with self._data_lock:
            new_accounts = sum(1 for a in accounts if bytes(a.address) not in self._accounts)
            self._check_capacity(len(self._accounts), new_accounts)
            for account in accounts:
                self._accounts[bytes(account.address)] = account

    def count(self) -> int:
        with self._data_lock:
            return len(self._accounts)

    def snapshot(self) -> dict[bytes, Account]:
        """Copy of every committed account (for tests and debugging)"""
        with self._data_lock:
            return dict(self._accounts)
