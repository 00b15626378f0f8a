"""
Instruction Schemas - wire format for the three program entry points

Layout (little-endian, no padding):
    u8 variant tag, then
    0 InitializeRoom:    room_id (u8 len + bytes), oracle_feed (32), staking_mint (32)
    1 StakeAndCommit:    room_id, target_price (i64), expiry (u64), stake (u64), nonce (u64)
    2 SettlePrediction:  room_id, predictor (32), nonce (u64)

The signer (authority / predictor / settling caller) travels outside the
instruction data, alongside it.
"""

import struct
from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from solders.pubkey import Pubkey

from predict_chat.errors import InvalidInstructionData

from .enums import InstructionKind
from .layout import I64_MAX, I64_MIN, PUBKEY_LEN, U64_MAX

_U8 = struct.Struct("<B")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


class _InstructionBase(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    KIND: ClassVar[InstructionKind]

    room_id: bytes = Field(..., max_length=255, description="Room identifier seed")


class InitializeRoom(_InstructionBase):
    """Create a room bound to an oracle feed and a staking mint"""

    KIND: ClassVar[InstructionKind] = InstructionKind.INITIALIZE_ROOM

    oracle_feed: Pubkey
    staking_mint: Pubkey


class StakeAndCommit(_InstructionBase):
    """Record a funded stake and a target price for the signer"""

    KIND: ClassVar[InstructionKind] = InstructionKind.STAKE_AND_COMMIT

    target_price: int = Field(..., ge=I64_MIN, le=I64_MAX)
    expiry: int = Field(..., ge=0, le=U64_MAX)
    stake: int = Field(..., ge=0, le=U64_MAX)
    nonce: int = Field(0, ge=0, le=U64_MAX)


class SettlePrediction(_InstructionBase):
    """Settle one predictor's prediction against the room oracle"""

    KIND: ClassVar[InstructionKind] = InstructionKind.SETTLE_PREDICTION

    predictor: Pubkey
    nonce: int = Field(0, ge=0, le=U64_MAX)


Instruction = Union[InitializeRoom, StakeAndCommit, SettlePrediction]


# =============================================================================
# Encoding
# =============================================================================


def _encode_seed(seed: bytes) -> bytes:
    return _U8.pack(len(seed)) + seed


def encode_instruction(instruction: Instruction) -> bytes:
    """Serialize an instruction model to its wire bytes"""
    parts = [_U8.pack(instruction.KIND), _encode_seed(instruction.room_id)]

    if isinstance(instruction, InitializeRoom):
        parts += [bytes(instruction.oracle_feed), bytes(instruction.staking_mint)]
    elif isinstance(instruction, StakeAndCommit):
        parts += [
            _I64.pack(instruction.target_price),
            _U64.pack(instruction.expiry),
            _U64.pack(instruction.stake),
            _U64.pack(instruction.nonce),
        ]
    elif isinstance(instruction, SettlePrediction):
        parts += [bytes(instruction.predictor), _U64.pack(instruction.nonce)]
    else:
        raise TypeError(f"Not an instruction: {type(instruction).__name__}")

    return b"".join(parts)


# =============================================================================
# Decoding
# =============================================================================


class _Reader:
    """Cursor over instruction bytes that fails on truncation"""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise InvalidInstructionData(
                f"Instruction truncated: need {end} bytes, have {len(self._data)}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def unpack(self, fmt: struct.Struct) -> int:
        return fmt.unpack(self.take(fmt.size))[0]

    def seed(self) -> bytes:
        return self.take(self.unpack(_U8))

    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self.take(PUBKEY_LEN))

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise InvalidInstructionData(
                f"{len(self._data) - self._pos} trailing bytes after instruction"
            )


def decode_instruction(data: bytes) -> Instruction:
    """
    Parse instruction bytes into a typed instruction

    Raises:
        InvalidInstructionData: Unknown tag, truncated data, or trailing bytes
    """
    reader = _Reader(bytes(data))
    tag = reader.unpack(_U8)
    try:
        kind = InstructionKind(tag)
    except ValueError:
        raise InvalidInstructionData(f"Unknown instruction tag {tag}") from None

    room_id = reader.seed()
    try:
        if kind is InstructionKind.INITIALIZE_ROOM:
            instruction = InitializeRoom(
                room_id=room_id,
                oracle_feed=reader.pubkey(),
                staking_mint=reader.pubkey(),
            )
        elif kind is InstructionKind.STAKE_AND_COMMIT:
            instruction = StakeAndCommit(
                room_id=room_id,
                target_price=reader.unpack(_I64),
                expiry=reader.unpack(_U64),
                stake=reader.unpack(_U64),
                nonce=reader.unpack(_U64),
            )
        else:
            instruction = SettlePrediction(
                room_id=room_id,
                predictor=reader.pubkey(),
                nonce=reader.unpack(_U64),
            )
    except ValidationError as e:
        raise InvalidInstructionData(f"Invalid {kind.name} fields: {e}") from e

    reader.finish()
    return instruction
