"""
Input validation functions

Configuration checks that run before any state is touched. Each raises the
specific error for the rule it enforces.
"""

from solders.pubkey import Pubkey

from predict_chat.config import config
from predict_chat.errors import (
    ExpiryNotInFuture,
    InvalidConfiguration,
    InvalidStakeAmount,
)
from predict_chat.models.layout import fits_i64, fits_u64

ZERO_ADDRESS = Pubkey.default()


def normalize_room_id(room_id: str | bytes) -> bytes:
    """
    Convert a room identifier to its seed bytes

    Raises:
        InvalidConfiguration: Empty, non text/bytes, or longer than a seed
    """
    if isinstance(room_id, str):
        room_id = room_id.encode("utf-8")
    if not isinstance(room_id, (bytes, bytearray)):
        raise InvalidConfiguration(f"room_id must be str or bytes, got {type(room_id).__name__}")

    max_len = config.get("program", "max_room_id_len")
    if not 0 < len(room_id) <= max_len:
        raise InvalidConfiguration(f"room_id must be 1-{max_len} bytes, got {len(room_id)}")
    return bytes(room_id)


def validate_room_config(oracle_feed: Pubkey, staking_mint: Pubkey) -> None:
    """
    Raises:
        InvalidConfiguration: If the oracle feed or staking mint is the zero address
    """
    if oracle_feed == ZERO_ADDRESS:
        raise InvalidConfiguration("oracle_feed must not be the zero address")
    if staking_mint == ZERO_ADDRESS:
        raise InvalidConfiguration("staking_mint must not be the zero address")


def validate_stake_amount(stake_amount) -> None:
    """
    Raises:
        InvalidStakeAmount: If the amount is not a positive u64
    """
    if not fits_u64(stake_amount) or stake_amount <= 0:
        raise InvalidStakeAmount(f"Stake amount {stake_amount!r} must be a positive u64")


def validate_target_price(target_price) -> None:
    """
    Raises:
        InvalidConfiguration: If the target does not fit the oracle's i64 price
    """
    if not fits_i64(target_price):
        raise InvalidConfiguration(
            f"Target price {target_price!r} is outside the oracle's i64 range"
        )


def validate_expiry(expiry, now: int) -> None:
    """
    Raises:
        ExpiryNotInFuture: If expiry is not strictly after `now`
    """
    if not fits_u64(expiry):
        raise ExpiryNotInFuture(f"Expiry {expiry!r} is not a valid slot")
    if expiry <= now:
        raise ExpiryNotInFuture(f"Expiry {expiry} is not after current slot {now}")


def validate_nonce(nonce) -> None:
    if not fits_u64(nonce):
        raise InvalidConfiguration(f"Nonce {nonce!r} must be a u64")
