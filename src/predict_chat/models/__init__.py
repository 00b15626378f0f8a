"""
Data models for the prediction room program
"""

from .enums import AccountTag, InstructionKind, PredictionStatus
from .events import (
    OperationEvent,
    OperationFailedEvent,
    PredictionCommittedEvent,
    PredictionSettledEvent,
    RoomInitializedEvent,
)
from .instructions import (
    InitializeRoom,
    Instruction,
    SettlePrediction,
    StakeAndCommit,
    decode_instruction,
    encode_instruction,
)
from .prediction import PREDICTION_SIZE, Prediction
from .room import ROOM_SIZE, Room

__all__ = [
    "AccountTag",
    "InstructionKind",
    "PredictionStatus",
    # Stored records
    "Room",
    "ROOM_SIZE",
    "Prediction",
    "PREDICTION_SIZE",
    # Instruction wire format
    "InitializeRoom",
    "StakeAndCommit",
    "SettlePrediction",
    "Instruction",
    "encode_instruction",
    "decode_instruction",
    # Event payloads
    "OperationEvent",
    "RoomInitializedEvent",
    "PredictionCommittedEvent",
    "PredictionSettledEvent",
    "OperationFailedEvent",
]
