"""
Prediction data model
"""

import struct
from dataclasses import dataclass, replace

from solders.pubkey import Pubkey

from predict_chat.errors import AlreadySettled, CorruptState

from .enums import AccountTag, PredictionStatus
from .layout import U8_MAX, fits_i64, fits_u64, pubkey_from, unpack_record

# tag, room, predictor, nonce, stake, target_price, expiry_slot, created_slot, status, bump
PREDICTION_LAYOUT = struct.Struct("<B32s32sQQqQQBB")
PREDICTION_SIZE = PREDICTION_LAYOUT.size

_STATUS_CODES = {
    PredictionStatus.OPEN: 0,
    PredictionStatus.WON: 1,
    PredictionStatus.LOST: 2,
}
_STATUS_BY_CODE = {code: status for status, code in _STATUS_CODES.items()}


@dataclass(frozen=True)
class Prediction:
    """
    One predictor's staked, time-bound price bet within a room

    The outcome is folded into `status` so an open prediction can never
    carry an outcome.

    Attributes:
        room: Address of the owning room record
        predictor: Address of the user who staked
        stake: Staked amount in token base units
        target_price: Price the oracle must reach (same scale as the oracle)
        expiry_slot: Slot at or after which settlement is allowed
        created_slot: Slot the stake was committed at
        nonce: Distinguishes successive predictions of one predictor in a room
        status: OPEN, WON, or LOST
        bump: Derivation nonce of the prediction's address
    """

    room: Pubkey
    predictor: Pubkey
    stake: int
    target_price: int
    expiry_slot: int
    created_slot: int
    nonce: int = 0
    status: PredictionStatus = PredictionStatus.OPEN
    bump: int = 0

    def __post_init__(self):
        if not fits_u64(self.stake) or self.stake <= 0:
            raise ValueError(f"stake must be a positive u64, got {self.stake}")
        if not fits_i64(self.target_price):
            raise ValueError(f"target_price must fit in i64, got {self.target_price}")
        if not fits_u64(self.expiry_slot) or not fits_u64(self.created_slot):
            raise ValueError("slots must fit in u64")
        if self.expiry_slot <= self.created_slot:
            raise ValueError(
                f"expiry_slot {self.expiry_slot} must be after created_slot {self.created_slot}"
            )
        if not fits_u64(self.nonce):
            raise ValueError(f"nonce must fit in u64, got {self.nonce}")
        if not 0 <= self.bump <= U8_MAX:
            raise ValueError(f"bump must fit in a byte, got {self.bump}")

    @property
    def settled(self) -> bool:
        return self.status.is_settled

    @property
    def won(self) -> bool | None:
        """Outcome, or None while the prediction is open"""
        if not self.settled:
            return None
        return self.status is PredictionStatus.WON

    def is_expired(self, now: int) -> bool:
        return now >= self.expiry_slot

    def settle(self, won: bool) -> "Prediction":
        """
        Return the terminal copy of this prediction

        Raises:
            AlreadySettled: If the prediction already has an outcome
        """
        if self.settled:
            raise AlreadySettled(f"Prediction already settled as {self.status.value}")
        return replace(self, status=PredictionStatus.from_outcome(won))

    def to_bytes(self) -> bytes:
        return PREDICTION_LAYOUT.pack(
            AccountTag.PREDICTION,
            bytes(self.room),
            bytes(self.predictor),
            self.nonce,
            self.stake,
            self.target_price,
            self.expiry_slot,
            self.created_slot,
            _STATUS_CODES[self.status],
            self.bump,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Prediction":
        """
        Decode a stored prediction record

        Raises:
            CorruptState: On size, tag, status byte, or invariant mismatch
        """
        (
            room,
            predictor,
            nonce,
            stake,
            target_price,
            expiry_slot,
            created_slot,
            status_code,
            bump,
        ) = unpack_record(PREDICTION_LAYOUT, data, AccountTag.PREDICTION, "Prediction")
        status = _STATUS_BY_CODE.get(status_code)
        if status is None:
            raise CorruptState(f"Prediction record has unknown status byte {status_code}")
        try:
            return cls(
                room=pubkey_from(room),
                predictor=pubkey_from(predictor),
                stake=stake,
                target_price=target_price,
                expiry_slot=expiry_slot,
                created_slot=created_slot,
                nonce=nonce,
                status=status,
                bump=bump,
            )
        except ValueError as e:
            raise CorruptState(f"Prediction record invalid: {e}") from e

    def to_dict(self) -> dict:
        return {
            "room": str(self.room),
            "predictor": str(self.predictor),
            "nonce": self.nonce,
            "stake": self.stake,
            "target_price": self.target_price,
            "expiry_slot": self.expiry_slot,
            "created_slot": self.created_slot,
            "status": self.status.value,
            "settled": self.settled,
            "won": self.won,
        }
