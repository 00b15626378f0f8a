"""
Tests for the instruction wire format
"""

import struct

import pytest
from pydantic import ValidationError
from solders.pubkey import Pubkey

from predict_chat.errors import InvalidInstructionData
from predict_chat.models import (
    InitializeRoom,
    SettlePrediction,
    StakeAndCommit,
    decode_instruction,
    encode_instruction,
)


class TestEncodeInstruction:
    """Tests for the byte layout of each variant"""

    def test_initialize_room_layout(self):
        oracle, mint = Pubkey.new_unique(), Pubkey.new_unique()
        data = encode_instruction(InitializeRoom(room_id=b"r1", oracle_feed=oracle, staking_mint=mint))

        assert data == b"\x00" + b"\x02r1" + bytes(oracle) + bytes(mint)

    def test_stake_and_commit_layout(self):
        data = encode_instruction(
            StakeAndCommit(room_id=b"r1", target_price=-7, expiry=200, stake=100, nonce=1)
        )

        assert data[:4] == b"\x01\x02r1"
        assert struct.unpack("<qQQQ", data[4:]) == (-7, 200, 100, 1)

    def test_settle_prediction_layout(self):
        predictor = Pubkey.new_unique()
        data = encode_instruction(SettlePrediction(room_id=b"r1", predictor=predictor))

        assert data == b"\x02\x02r1" + bytes(predictor) + bytes(8)


class TestDecodeInstruction:
    """Tests for parsing instruction bytes"""

    @pytest.mark.parametrize(
        "instruction",
        [
            InitializeRoom(room_id=b"btc", oracle_feed=Pubkey.new_unique(), staking_mint=Pubkey.new_unique()),
            StakeAndCommit(room_id=b"btc", target_price=2**63 - 1, expiry=2**64 - 1, stake=1),
            SettlePrediction(room_id=b"btc", predictor=Pubkey.new_unique(), nonce=9),
        ],
    )
    def test_decode_matches_encode(self, instruction):
        assert decode_instruction(encode_instruction(instruction)) == instruction

    def test_empty_data(self):
        with pytest.raises(InvalidInstructionData):
            decode_instruction(b"")

    def test_unknown_tag(self):
        with pytest.raises(InvalidInstructionData, match="Unknown instruction tag"):
            decode_instruction(b"\x03\x01r")

    def test_truncated(self):
        data = encode_instruction(SettlePrediction(room_id=b"r", predictor=Pubkey.new_unique()))
        with pytest.raises(InvalidInstructionData, match="truncated"):
            decode_instruction(data[:-1])

    def test_trailing_bytes(self):
        data = encode_instruction(SettlePrediction(room_id=b"r", predictor=Pubkey.new_unique()))
        with pytest.raises(InvalidInstructionData, match="trailing"):
            decode_instruction(data + b"\x00")

    def test_room_id_length_past_end(self):
        with pytest.raises(InvalidInstructionData):
            decode_instruction(b"\x02\x40abc")


class TestInstructionModels:
    """Tests for pydantic field validation"""

    def test_negative_stake_rejected(self):
        with pytest.raises(ValidationError):
            StakeAndCommit(room_id=b"r", target_price=1, expiry=1, stake=-1)

    def test_target_outside_i64_rejected(self):
        with pytest.raises(ValidationError):
            StakeAndCommit(room_id=b"r", target_price=2**63, expiry=1, stake=1)

    def test_models_are_frozen(self):
        instruction = SettlePrediction(room_id=b"r", predictor=Pubkey.new_unique())
        with pytest.raises(ValidationError):
            instruction.nonce = 5
