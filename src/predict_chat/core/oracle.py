"""
Oracle reader

Simplified decoder: the raw integer price sits at a fixed offset as a
i64 (little-endian by default). No exponent, confidence, or staleness handling.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey

from predict_chat.config import config
from predict_chat.errors import MalformedOracleData


@dataclass(frozen=True)
class OracleAccount:
    """Read-only oracle data blob and the address it was read from"""

    address: Pubkey
    data: bytes


def read_price(data: bytes) -> int:
    """
    Decode the raw price from an oracle blob

    Raises:
        MalformedOracleData: If the blob ends before the price field does
    """
    offset = config.get("oracle", "price_offset")
    size = config.get("oracle", "price_size")
    if len(data) < offset + size:
        raise MalformedOracleData(
            f"Oracle data is {len(data)} bytes, need at least {offset + size}"
        )
    return int.from_bytes(
        data[offset:offset + size],
        config.get("oracle", "byteorder"),
        signed=config.get("oracle", "signed"),
    )


def encode_price(price: int) -> bytes:
    """Build a minimal oracle blob carrying `price` at the configured offset"""
    offset = config.get("oracle", "price_offset")
    return bytes(offset) + price.to_bytes(
        config.get("oracle", "price_size"),
        config.get("oracle", "byteorder"),
        signed=config.get("oracle", "signed"),
    )
