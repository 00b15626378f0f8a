"""
Vault funding signal

StakeAndCommit never moves tokens. It asks a funding collaborator whether
the room vault already holds the stake on the predictor's behalf and, if so,
reserves that amount so one deposit can back only one stake.
"""

import logging
import threading
from collections import defaultdict
from typing import Protocol

from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)


class VaultFunding(Protocol):
    def funded_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        """Base units deposited into `vault` attributable to `predictor`"""
        ...

    def available_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        """Deposited units not yet backing a committed stake"""
        ...

    def reserve(self, vault: Pubkey, predictor: Pubkey, amount: int) -> bool:
        """Atomically commit `amount` if available; False when underfunded"""
        ...

    def release(self, vault: Pubkey, predictor: Pubkey, amount: int) -> None:
        """Undo a reservation whose stake was never recorded"""
        ...


class VaultLedger:
    """In-memory record of confirmed deposits and committed stakes per (vault, predictor)"""

    def __init__(self):
        self._balances: dict[tuple[bytes, bytes], int] = defaultdict(int)
        self._committed: dict[tuple[bytes, bytes], int] = defaultdict(int)
        self._lock = threading.Lock()

    def deposit(self, vault: Pubkey, predictor: Pubkey, amount: int) -> int:
        """
        Record a confirmed transfer into a vault

        Returns:
            New balance attributable to the predictor
        """
        if amount <= 0:
            raise ValueError(f"deposit amount must be positive, got {amount}")
        with self._lock:
            key = (bytes(vault), bytes(predictor))
            self._balances[key] += amount
            balance = self._balances[key]
        logger.debug(f"Deposit {amount} into {vault} for {predictor} (balance {balance})")
        return balance

    def funded_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        with self._lock:
            return self._balances.get((bytes(vault), bytes(predictor)), 0)

    def available_amount(self, vault: Pubkey, predictor: Pubkey) -> int:
        key = (bytes(vault), bytes(predictor))
        with self._lock:
            return self._balances.get(key, 0) - self._committed.get(key, 0)

    def reserve(self, vault: Pubkey, predictor: Pubkey, amount: int) -> bool:
        key = (bytes(vault), bytes(predictor))
        with self._lock:
            if self._balances.get(key, 0) - self._committed.get(key, 0) < amount:
                return False
            self._committed[key] += amount
        logger.debug(f"Reserved {amount} in {vault} for {predictor}")
        return True

    def release(self, vault: Pubkey, predictor: Pubkey, amount: int) -> None:
        key = (bytes(vault), bytes(predictor))
        with self._lock:
            self._committed[key] = max(0, self._committed[key] - amount)
        logger.debug(f"Released {amount} in {vault} for {predictor}")
