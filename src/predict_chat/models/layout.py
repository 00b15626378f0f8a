"""
Fixed-layout binary helpers shared by stored records

Records are packed little-endian with no padding. Unpacking fails closed:
a wrong length or tag byte is CorruptState, never a guessed default.
"""

import struct

from solders.pubkey import Pubkey

from predict_chat.errors import CorruptState

U8_MAX = 2**8 - 1
U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

PUBKEY_LEN = 32
SEED_MAX_LEN = 32


def fits_u64(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def fits_i64(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and I64_MIN <= value <= I64_MAX


def unpack_record(layout: struct.Struct, data: bytes, tag: int, kind: str) -> tuple:
    """Unpack `data` with `layout`, checking exact size and leading tag byte"""
    if len(data) != layout.size:
        raise CorruptState(f"{kind} record is {len(data)} bytes, expected {layout.size}")
    fields = layout.unpack(data)
    if fields[0] != tag:
        raise CorruptState(f"{kind} record has tag 0x{fields[0]:02x}, expected 0x{tag:02x}")
    return fields[1:]


def pad_seed(seed: bytes) -> bytes:
    """Right-pad a seed to its fixed 32-byte slot"""
    if len(seed) > SEED_MAX_LEN:
        raise ValueError(f"seed longer than {SEED_MAX_LEN} bytes")
    return seed.ljust(SEED_MAX_LEN, b"\x00")


def unpad_seed(raw: bytes, length: int, kind: str) -> bytes:
    if not 0 < length <= SEED_MAX_LEN:
        raise CorruptState(f"{kind} record has invalid seed length {length}")
    if any(raw[length:]):
        raise CorruptState(f"{kind} record has non-zero seed padding")
    return raw[:length]


def pubkey_from(raw: bytes) -> Pubkey:
    return Pubkey.from_bytes(raw)
