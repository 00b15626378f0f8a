"""
Tests for the Config class
"""

import hashlib
import json

import pytest
from solders.pubkey import Pubkey

from predict_chat.config import Config, ConfigError, _safe_int_env, config as global_config
from predict_chat.core import encode_price, read_price, room_address, validators
from predict_chat.errors import InvalidConfiguration


class TestProgramIdentity:
    """Tests for get_program_id() and get_settle_authorities()"""

    def test_default_program_id_is_seed_hash(self, monkeypatch):
        monkeypatch.delenv("PREDICT_CHAT_PROGRAM_ID", raising=False)

        expected = Pubkey.from_bytes(hashlib.sha256(b"predict-chat-program").digest())
        assert Config.get_program_id() == expected

    def test_program_id_from_env(self, monkeypatch):
        program_id = Pubkey.new_unique()
        monkeypatch.setenv("PREDICT_CHAT_PROGRAM_ID", str(program_id))

        assert Config.get_program_id() == program_id

    def test_invalid_program_id(self, monkeypatch):
        monkeypatch.setenv("PREDICT_CHAT_PROGRAM_ID", "not-base58!")

        with pytest.raises(ConfigError):
            Config.get_program_id()

    def test_settle_authorities_list(self, monkeypatch):
        a, b = Pubkey.new_unique(), Pubkey.new_unique()
        monkeypatch.setenv("PREDICT_CHAT_SETTLE_AUTHORITIES", f"{a}, {b},")

        assert Config.get_settle_authorities() == [a, b]

    def test_settle_authorities_default_empty(self, monkeypatch):
        monkeypatch.delenv("PREDICT_CHAT_SETTLE_AUTHORITIES", raising=False)
        assert Config.get_settle_authorities() == []


class TestStoreAndFiles:
    """Tests for store and file settings"""

    def test_max_accounts_default_unbounded(self, monkeypatch):
        monkeypatch.delenv("PREDICT_CHAT_MAX_ACCOUNTS", raising=False)
        assert Config.get_store_config()["max_accounts"] is None

    def test_max_accounts_from_env(self, monkeypatch):
        monkeypatch.setenv("PREDICT_CHAT_MAX_ACCOUNTS", "500")
        assert Config.get_store_config()["max_accounts"] == 500

    def test_safe_int_env_falls_back(self, monkeypatch):
        monkeypatch.setenv("SOME_INT", "abc")
        assert _safe_int_env("SOME_INT", 7) == 7

    def test_safe_int_env_clamps(self, monkeypatch):
        monkeypatch.setenv("SOME_INT", "-5")
        assert _safe_int_env("SOME_INT", 7, min_val=0) == 0

    def test_data_dir_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PREDICT_CHAT_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("PREDICT_CHAT_LOG_DIR", str(tmp_path / "logs"))

        cfg = Config(validate=False, ensure_directories=True)

        assert cfg.database_path == tmp_path / "data" / "predict_chat.duckdb"
        assert (tmp_path / "logs").is_dir()


class TestConfigValidation:
    """Tests for validate() and file overrides"""

    def test_defaults_validate(self, monkeypatch):
        monkeypatch.delenv("PREDICT_CHAT_PROGRAM_ID", raising=False)
        monkeypatch.delenv("PREDICT_CHAT_SETTLE_AUTHORITIES", raising=False)
        Config(validate=True, ensure_directories=False)

    def test_bad_authority_fails_validation(self, monkeypatch):
        monkeypatch.setenv("PREDICT_CHAT_SETTLE_AUTHORITIES", "0OIl")
        with pytest.raises(ConfigError, match="PREDICT_CHAT_SETTLE_AUTHORITIES"):
            Config(validate=True, ensure_directories=False)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps({"ORACLE": {"price_offset": 4}}))

        cfg = Config(config_file=str(path), validate=False, ensure_directories=False)

        assert cfg.get("oracle", "price_offset") == 4
        assert cfg.get("oracle", "price_size") == 8

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            Config(config_file=str(path), validate=False, ensure_directories=False)

    def test_set_and_to_dict(self):
        cfg = Config(validate=False, ensure_directories=False)
        cfg.set("program", "note", "x")

        data = cfg.to_dict()
        assert data["custom"]["program"]["note"] == "x"
        assert data["oracle"]["price_size"] == 8

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"PROGRAM": {"max_room_id_len": 64}}, "max_room_id_len"),
            ({"PROGRAM": {"max_room_id_len": "4"}}, "max_room_id_len"),
            ({"PROGRAM": {"vault_seed": ""}}, "vault_seed"),
            ({"ORACLE": {"price_offset": -1}}, "price_offset"),
            ({"ORACLE": {"price_size": 4}}, "price_size"),
            ({"ORACLE": {"byteorder": "middle"}}, "byteorder"),
            ({"LOGGING": {"level": "LOUD"}}, "log level"),
        ],
    )
    def test_file_overrides_are_validated(self, tmp_path, monkeypatch, overrides, message):
        monkeypatch.delenv("PREDICT_CHAT_PROGRAM_ID", raising=False)
        monkeypatch.delenv("PREDICT_CHAT_SETTLE_AUTHORITIES", raising=False)
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps(overrides))

        with pytest.raises(ConfigError, match=message):
            Config(config_file=str(path), validate=True, ensure_directories=False)


class TestOverridesReachConsumers:
    """Overrides on the global config change derivation, decoding and validation"""

    @pytest.fixture
    def overrides(self, monkeypatch):
        """Fresh override layer on the global config, restored afterwards"""
        monkeypatch.setattr(global_config, "_custom_settings", {})
        return global_config

    def test_oracle_offset_override(self, overrides):
        blob = b"\xff" * 4 + (1234).to_bytes(8, "little", signed=True)
        overrides.set("oracle", "price_offset", 4)

        assert read_price(blob) == 1234
        assert encode_price(1234) == bytes(4) + blob[4:]

    def test_oracle_byteorder_override(self, overrides):
        overrides.set("oracle", "byteorder", "big")

        assert read_price((-7).to_bytes(8, "big", signed=True)) == -7

    def test_room_id_length_override(self, overrides):
        overrides.set("program", "max_room_id_len", 4)

        assert validators.normalize_room_id("abcd") == b"abcd"
        with pytest.raises(InvalidConfiguration, match="1-4 bytes"):
            validators.normalize_room_id("abcde")

    def test_seed_override_moves_room_address(self, overrides):
        program_id = Pubkey.new_unique()
        default_address, _ = room_address(b"r", program_id)

        overrides.set("program", "room_seed", "chatroom")
        address, _ = room_address(b"r", program_id)

        assert address != default_address
        assert address == Pubkey.find_program_address([b"chatroom", b"r"], program_id)[0]

    def test_loaded_file_reaches_consumers(self, overrides, tmp_path):
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps({"ORACLE": {"price_offset": 2}}))

        overrides.load_from_file(path)

        assert encode_price(5)[:2] == b"\x00\x00"
        assert read_price(encode_price(5)) == 5
