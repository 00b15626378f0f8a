"""
Settlement engine

Pure decision logic: given a room, an open prediction, oracle data and the
current slot, produce the prediction's terminal state.

Decision rule: the prediction wins iff the observed price is at or above the
target. Below-target and spread bets are not supported.
"""

import logging
from dataclasses import dataclass

from predict_chat.errors import AlreadySettled, NotYetExpired, OracleMismatch
from predict_chat.models import Prediction, Room

from .oracle import OracleAccount, read_price

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    prediction: Prediction
    observed_price: int

    @property
    def won(self) -> bool:
        return bool(self.prediction.won)


def decide_outcome(observed_price: int, target_price: int) -> bool:
    """Won iff observed_price >= target_price"""
    return observed_price >= target_price


def check_settleable(room: Room, prediction: Prediction, oracle: OracleAccount, now: int) -> None:
    """
    Settlement preconditions, first failure wins:
    oracle source, then expiry, then the write-once guard.

    Raises:
        OracleMismatch: Oracle data not read from the room's oracle feed
        NotYetExpired: now < expiry_slot
        AlreadySettled: Prediction already has an outcome
    """
    if oracle.address != room.oracle_feed:
        raise OracleMismatch(
            f"Oracle {oracle.address} is not the room's feed {room.oracle_feed}"
        )
    if not prediction.is_expired(now):
        raise NotYetExpired(
            f"Slot {now} is before expiry {prediction.expiry_slot} "
            f"({prediction.expiry_slot - now} remaining)"
        )
    if prediction.settled:
        raise AlreadySettled(f"Prediction already settled as {prediction.status.value}")


def settle(room: Room, prediction: Prediction, oracle: OracleAccount, now: int) -> SettlementResult:
    """
    Settle an open, expired prediction against the room oracle

    Raises:
        OracleMismatch, NotYetExpired, AlreadySettled: See check_settleable
        MalformedOracleData: Oracle blob too short to hold a price
    """
    check_settleable(room, prediction, oracle, now)
    observed_price = read_price(oracle.data)
    won = decide_outcome(observed_price, prediction.target_price)
    logger.debug(
        f"Observed price {observed_price}, target {prediction.target_price}, won: {won}"
    )
    return SettlementResult(prediction=prediction.settle(won), observed_price=observed_price)
