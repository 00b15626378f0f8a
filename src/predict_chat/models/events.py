"""
Operation Event Schemas - payloads published after each processed operation

Addresses are carried as base58 strings so payloads stay JSON-friendly.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperationEvent(BaseModel):
    """Common envelope fields"""

    operation: str
    room_id: str
    slot: int = Field(..., description="Clock value the operation ran at")
    ts: datetime = Field(default_factory=_utcnow)


class RoomInitializedEvent(OperationEvent):
    operation: Literal["initialize_room"] = "initialize_room"
    room: str
    authority: str
    oracle_feed: str
    staking_mint: str
    vault: str


class PredictionCommittedEvent(OperationEvent):
    operation: Literal["stake_and_commit"] = "stake_and_commit"
    prediction: str
    predictor: str
    nonce: int
    stake: int
    target_price: int
    expiry_slot: int


class PredictionSettledEvent(OperationEvent):
    operation: Literal["settle_prediction"] = "settle_prediction"
    prediction: str
    predictor: str
    nonce: int
    observed_price: int
    target_price: int
    won: bool


class OperationFailedEvent(OperationEvent):
    error: str
    code: int
    category: str
    message: str
    retryable: bool
    predictor: Optional[str] = None
