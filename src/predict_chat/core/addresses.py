"""
Program-derived address helpers

Every storage location is found with `Pubkey.find_program_address`, so the
result depends only on the seeds and the program id: the same inputs always
give the same (address, bump), and no caller can pick a vault or record
address of their own.
"""

import struct
from collections.abc import Sequence

from solders.pubkey import Pubkey

from predict_chat.config import config

_NONCE = struct.Struct("<Q")


def derive(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Derive an off-curve address and its bump from seed parts"""
    return Pubkey.find_program_address([bytes(seed) for seed in seeds], program_id)


def _seed(key: str) -> bytes:
    value = config.get("program", key)
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def room_address(room_id: bytes, program_id: Pubkey) -> tuple[Pubkey, int]:
    return derive([_seed("room_seed"), room_id], program_id)


def vault_address(room_id: bytes, program_id: Pubkey) -> tuple[Pubkey, int]:
    return derive([_seed("vault_seed"), room_id], program_id)


def prediction_address(
    room: Pubkey, predictor: Pubkey, nonce: int, program_id: Pubkey
) -> tuple[Pubkey, int]:
    return derive(
        [_seed("prediction_seed"), bytes(room), bytes(predictor), _NONCE.pack(nonce)],
        program_id,
    )
