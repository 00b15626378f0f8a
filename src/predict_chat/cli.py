"""
Command-line entry point for the prediction room program

Operates on the DuckDB account store under PREDICT_CHAT_DATA_DIR (or --db).
Addresses are base58 strings. Results are printed as JSON.

Examples:
    predict-chat init-room btc-usd --oracle <feed> --mint <mint> --authority <me>
    predict-chat fund btc-usd --predictor <me> --amount 100
    predict-chat stake btc-usd --predictor <me> --amount 100 --target 50000 --expiry 1700000000
    predict-chat settle btc-usd --predictor <me> --price 51000
    predict-chat show-prediction btc-usd --predictor <me>
"""

import argparse
import json
import logging
import sys

from solders.pubkey import Pubkey

from predict_chat import __version__
from predict_chat.config import ConfigError, config
from predict_chat.core import (
    InstructionProcessor,
    ManualClock,
    OracleAccount,
    SystemClock,
    encode_price,
)
from predict_chat.errors import PredictChatError
from predict_chat.services import event_bus, setup_logging
from predict_chat.services.account_store import DuckDBAccountStore, DuckDBVaultLedger

logger = logging.getLogger(__name__)


def _pubkey(value: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a base58 address: {value!r}") from None


def _hex_bytes(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hex string: {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="predict-chat",
        description="Staked price-prediction rooms settled against an oracle feed",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="DuckDB file (default: <data_dir>/predict_chat.duckdb)")
    parser.add_argument("--slot", type=int, help="Current slot (default: unix time)")
    parser.add_argument("--config", help="JSON configuration overrides file")
    parser.add_argument("--debug", action="store_true", help="Verbose console logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-room", help="Create a room bound to an oracle feed and mint")
    p.add_argument("room_id")
    p.add_argument("--oracle", type=_pubkey, required=True)
    p.add_argument("--mint", type=_pubkey, required=True)
    p.add_argument("--authority", type=_pubkey)

    p = sub.add_parser("fund", help="Record a confirmed deposit into a room vault")
    p.add_argument("room_id")
    p.add_argument("--predictor", type=_pubkey, required=True)
    p.add_argument("--amount", type=int, required=True)

    p = sub.add_parser("stake", help="Commit a funded stake and target price")
    p.add_argument("room_id")
    p.add_argument("--predictor", type=_pubkey, required=True)
    p.add_argument("--amount", type=int, required=True)
    p.add_argument("--target", type=int, required=True)
    p.add_argument("--expiry", type=int, required=True)
    p.add_argument("--nonce", type=int, default=0)

    p = sub.add_parser("settle", help="Settle an expired prediction")
    p.add_argument("room_id")
    p.add_argument("--predictor", type=_pubkey, required=True)
    p.add_argument("--nonce", type=int, default=0)
    p.add_argument("--caller", type=_pubkey)
    p.add_argument("--oracle", type=_pubkey, help="Oracle address (default: the room's feed)")
    price = p.add_mutually_exclusive_group(required=True)
    price.add_argument("--price", type=int, help="Observed oracle price")
    price.add_argument("--oracle-data", type=_hex_bytes, help="Raw oracle blob as hex")

    p = sub.add_parser("show-room", help="Print a room record")
    p.add_argument("room_id")

    p = sub.add_parser("show-prediction", help="Print a prediction record")
    p.add_argument("room_id")
    p.add_argument("--predictor", type=_pubkey, required=True)
    p.add_argument("--nonce", type=int, default=0)

    return parser


def run(args: argparse.Namespace, store: DuckDBAccountStore) -> dict:
    """Execute one parsed command against `store` and return its JSON result"""
    ledger = DuckDBVaultLedger(store)
    clock = ManualClock(args.slot) if args.slot is not None else SystemClock()
    processor = InstructionProcessor(store, clock, ledger)

    if args.command == "init-room":
        room = processor.initialize_room(args.room_id, args.oracle, args.mint, args.authority)
        return {"address": str(processor.room_address(args.room_id)), **room.to_dict()}

    if args.command == "fund":
        room = processor.get_room(args.room_id)
        balance = ledger.deposit(room.vault, args.predictor, args.amount)
        return {
            "vault": str(room.vault),
            "predictor": str(args.predictor),
            "funded": balance,
            "available": ledger.available_amount(room.vault, args.predictor),
        }

    if args.command == "stake":
        prediction = processor.stake_and_commit(
            args.room_id, args.predictor, args.amount, args.target, args.expiry, args.nonce
        )
        address = processor.prediction_address(args.room_id, args.predictor, args.nonce)
        return {"address": str(address), **prediction.to_dict()}

    if args.command == "settle":
        room = processor.get_room(args.room_id)
        data = encode_price(args.price) if args.price is not None else args.oracle_data
        oracle = OracleAccount(address=args.oracle or room.oracle_feed, data=data)
        prediction = processor.settle_prediction(
            args.room_id, args.predictor, oracle, args.nonce, caller=args.caller
        )
        return prediction.to_dict()

    if args.command == "show-room":
        return processor.get_room(args.room_id).to_dict()

    if args.command == "show-prediction":
        return processor.get_prediction(args.room_id, args.predictor, args.nonce).to_dict()

    raise ValueError(f"Unknown command {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging({"console_level": "DEBUG" if args.debug else "WARNING"})

    try:
        if args.config:
            config.load_from_file(args.config)
        config.ensure_directories()
        config.validate()
    except ConfigError as e:
        logger.critical(f"Configuration validation failed: {e}")
        print(json.dumps({"error": "ConfigError", "message": str(e)}), file=sys.stderr)
        return 2

    event_bus.start()
    try:
        with DuckDBAccountStore(
            db_path=args.db or config.database_path,
            max_accounts=config.get_store_config()["max_accounts"],
        ) as store:
            result = run(args, store)
    except PredictChatError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 1
    finally:
        event_bus.stop()

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
