"""
Shared test fixtures for pytest
"""

import pytest
from solders.pubkey import Pubkey

from predict_chat.core import InstructionProcessor, ManualClock, OracleAccount, VaultLedger, encode_price
from predict_chat.services import EventBus, event_bus, setup_logging
from predict_chat.services.account_store import InMemoryAccountStore

ROOM_ID = "btc-usd"


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging(tmp_path_factory):
    """Setup logging for all tests (console only)"""
    setup_logging({"file_logs": False, "log_dir": str(tmp_path_factory.mktemp("logs"))})


@pytest.fixture(autouse=True)
def cleanup_event_bus():
    """Clean up the global event bus after each test"""
    if not event_bus.is_processing:
        event_bus.start()

    yield

    event_bus.clear_all()


@pytest.fixture
def bus():
    """Dedicated started EventBus"""
    bus = EventBus()
    bus.start()
    yield bus
    bus.stop()


@pytest.fixture
def program_id():
    return Pubkey.new_unique()


@pytest.fixture
def oracle_feed():
    return Pubkey.new_unique()


@pytest.fixture
def staking_mint():
    return Pubkey.new_unique()


@pytest.fixture
def authority():
    return Pubkey.new_unique()


@pytest.fixture
def alice():
    return Pubkey.new_unique()


@pytest.fixture
def bob():
    return Pubkey.new_unique()


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def clock():
    """Clock starting at slot 100"""
    return ManualClock(100)


@pytest.fixture
def ledger():
    return VaultLedger()


@pytest.fixture
def processor(store, clock, ledger, program_id, bus):
    """Processor over an in-memory store with no extra settle authorities"""
    return InstructionProcessor(
        store, clock, ledger, program_id=program_id, settle_authorities=[], bus=bus
    )


@pytest.fixture
def room(processor, oracle_feed, staking_mint, authority):
    """Initialized room "btc-usd" """
    return processor.initialize_room(ROOM_ID, oracle_feed, staking_mint, authority)


@pytest.fixture
def make_oracle(oracle_feed):
    """Build an oracle account on the room's feed carrying a price"""

    def _make(price: int, address: Pubkey | None = None) -> OracleAccount:
        return OracleAccount(address=address or oracle_feed, data=encode_price(price))

    return _make


@pytest.fixture
def open_prediction(processor, room, ledger, alice):
    """Alice stakes 100 on target 50_000, expiring at slot 200"""
    ledger.deposit(room.vault, alice, 100)
    return processor.stake_and_commit(ROOM_ID, alice, 100, 50_000, 200)
