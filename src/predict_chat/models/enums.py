"""
Enumerations for record and instruction kinds
"""

from enum import Enum, IntEnum


class PredictionStatus(str, Enum):
    """Prediction lifecycle status

    OPEN is the only non-terminal state; WON and LOST are write-once.
    """

    OPEN = "open"
    WON = "won"
    LOST = "lost"

    @property
    def is_settled(self) -> bool:
        return self is not PredictionStatus.OPEN

    @classmethod
    def from_outcome(cls, won: bool) -> "PredictionStatus":
        return cls.WON if won else cls.LOST


class AccountTag(IntEnum):
    """First byte of every stored record"""

    ROOM = 0x52  # 'R'
    PREDICTION = 0x50  # 'P'


class InstructionKind(IntEnum):
    """Instruction variant tag (first byte of instruction data)"""

    INITIALIZE_ROOM = 0
    STAKE_AND_COMMIT = 1
    SETTLE_PREDICTION = 2
