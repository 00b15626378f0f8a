"""
Tests for the oracle reader and settlement engine
"""

import pytest
from solders.pubkey import Pubkey

from predict_chat.core import OracleAccount, check_settleable, decide_outcome, encode_price, read_price, settle
from predict_chat.errors import AlreadySettled, MalformedOracleData, NotYetExpired, OracleMismatch
from predict_chat.models import Prediction, PredictionStatus, Room


@pytest.fixture
def feed():
    return Pubkey.new_unique()


@pytest.fixture
def sample_room(feed):
    return Room(
        room_id=b"r1",
        authority=Pubkey.new_unique(),
        oracle_feed=feed,
        staking_mint=Pubkey.new_unique(),
        vault=Pubkey.new_unique(),
        bump=255,
        vault_bump=255,
    )


@pytest.fixture
def sample_prediction():
    return Prediction(
        room=Pubkey.new_unique(),
        predictor=Pubkey.new_unique(),
        stake=100,
        target_price=50_000,
        expiry_slot=200,
        created_slot=100,
    )


class TestOracleReader:
    """Tests for decoding oracle prices"""

    def test_reads_little_endian_i64(self):
        assert read_price((60_000).to_bytes(8, "little")) == 60_000

    def test_negative_price(self):
        assert read_price(encode_price(-42)) == -42

    def test_ignores_bytes_after_price(self):
        assert read_price(encode_price(7) + b"\xff" * 24) == 7

    @pytest.mark.parametrize("size", [0, 1, 7])
    def test_short_blob(self, size):
        with pytest.raises(MalformedOracleData):
            read_price(b"\x00" * size)


class TestDecideOutcome:
    """Tests for the price >= target rule"""

    @pytest.mark.parametrize(
        "observed,target,won",
        [(60_000, 50_000, True), (50_000, 50_000, True), (49_999, 50_000, False), (-1, 0, False)],
    )
    def test_outcome(self, observed, target, won):
        assert decide_outcome(observed, target) is won


class TestSettle:
    """Tests for settlement preconditions and results"""

    def test_settle_won(self, sample_room, sample_prediction, feed):
        result = settle(sample_room, sample_prediction, OracleAccount(feed, encode_price(60_000)), 200)

        assert result.won is True
        assert result.observed_price == 60_000
        assert result.prediction.status is PredictionStatus.WON

    def test_settle_lost(self, sample_room, sample_prediction, feed):
        result = settle(sample_room, sample_prediction, OracleAccount(feed, encode_price(1)), 500)
        assert result.won is False

    def test_oracle_checked_first(self, sample_room, sample_prediction):
        """Wrong oracle is reported even before expiry"""
        with pytest.raises(OracleMismatch):
            check_settleable(sample_room, sample_prediction, OracleAccount(Pubkey.new_unique(), b""), 0)

    def test_not_expired(self, sample_room, sample_prediction, feed):
        with pytest.raises(NotYetExpired):
            settle(sample_room, sample_prediction, OracleAccount(feed, encode_price(60_000)), 199)

    def test_expiry_checked_before_oracle_data(self, sample_room, sample_prediction, feed):
        with pytest.raises(NotYetExpired):
            settle(sample_room, sample_prediction, OracleAccount(feed, b""), 199)

    def test_already_settled(self, sample_room, sample_prediction, feed):
        done = sample_prediction.settle(won=True)
        with pytest.raises(AlreadySettled):
            settle(sample_room, done, OracleAccount(feed, encode_price(0)), 300)

    def test_malformed_oracle(self, sample_room, sample_prediction, feed):
        with pytest.raises(MalformedOracleData):
            settle(sample_room, sample_prediction, OracleAccount(feed, b"\x01\x02"), 200)
