"""
Room data model
"""

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey

from predict_chat.errors import CorruptState

from .enums import AccountTag
from .layout import SEED_MAX_LEN, U8_MAX, pad_seed, pubkey_from, unpack_record, unpad_seed

# tag, room_id_len, room_id, authority, oracle_feed, staking_mint, vault, bump, vault_bump
ROOM_LAYOUT = struct.Struct("<BB32s32s32s32s32sBB")
ROOM_SIZE = ROOM_LAYOUT.size


@dataclass(frozen=True)
class Room:
    """
    A prediction channel bound to one oracle feed and one staking mint

    Attributes:
        room_id: Opaque room identifier (1-32 bytes, used as a derivation seed)
        authority: Address that created the room
        oracle_feed: Oracle account whose data settles predictions
        staking_mint: Token mint stakes are denominated in
        vault: Derived vault address, never chosen by the caller
        bump: Derivation nonce of the room's own address
        vault_bump: Derivation nonce of the vault address
    """

    room_id: bytes
    authority: Pubkey
    oracle_feed: Pubkey
    staking_mint: Pubkey
    vault: Pubkey
    bump: int
    vault_bump: int

    def __post_init__(self):
        if not 0 < len(self.room_id) <= SEED_MAX_LEN:
            raise ValueError(f"room_id must be 1-{SEED_MAX_LEN} bytes, got {len(self.room_id)}")
        for name in ("bump", "vault_bump"):
            value = getattr(self, name)
            if not 0 <= value <= U8_MAX:
                raise ValueError(f"{name} must fit in a byte, got {value}")

    @property
    def label(self) -> str:
        """Room id as text where it decodes, hex otherwise"""
        try:
            return self.room_id.decode("utf-8")
        except UnicodeDecodeError:
            return self.room_id.hex()

    def to_bytes(self) -> bytes:
        return ROOM_LAYOUT.pack(
            AccountTag.ROOM,
            len(self.room_id),
            pad_seed(self.room_id),
            bytes(self.authority),
            bytes(self.oracle_feed),
            bytes(self.staking_mint),
            bytes(self.vault),
            self.bump,
            self.vault_bump,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Room":
        """
        Decode a stored room record

        Raises:
            CorruptState: On size, tag, or field invariant mismatch
        """
        (
            id_len,
            raw_id,
            authority,
            oracle_feed,
            staking_mint,
            vault,
            bump,
            vault_bump,
        ) = unpack_record(ROOM_LAYOUT, data, AccountTag.ROOM, "Room")
        try:
            return cls(
                room_id=unpad_seed(raw_id, id_len, "Room"),
                authority=pubkey_from(authority),
                oracle_feed=pubkey_from(oracle_feed),
                staking_mint=pubkey_from(staking_mint),
                vault=pubkey_from(vault),
                bump=bump,
                vault_bump=vault_bump,
            )
        except ValueError as e:
            raise CorruptState(f"Room record invalid: {e}") from e

    def to_dict(self) -> dict:
        return {
            "room_id": self.label,
            "authority": str(self.authority),
            "oracle_feed": str(self.oracle_feed),
            "staking_mint": str(self.staking_mint),
            "vault": str(self.vault),
            "bump": self.bump,
            "vault_bump": self.vault_bump,
        }
