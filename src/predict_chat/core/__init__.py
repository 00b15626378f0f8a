"""Core module - address derivation, settlement and instruction processing"""

from . import validators
from .addresses import prediction_address, room_address, vault_address
from .clock import Clock, ManualClock, SystemClock
from .funding import VaultFunding, VaultLedger
from .oracle import OracleAccount, encode_price, read_price
from .processor import InstructionProcessor
from .settlement import SettlementResult, check_settleable, decide_outcome, settle

__all__ = [
    "Clock",
    "InstructionProcessor",
    "ManualClock",
    "OracleAccount",
    "SettlementResult",
    "SystemClock",
    "VaultFunding",
    "VaultLedger",
    "check_settleable",
    "decide_outcome",
    "encode_price",
    "prediction_address",
    "read_price",
    "room_address",
    "settle",
    "validators",
    "vault_address",
]
