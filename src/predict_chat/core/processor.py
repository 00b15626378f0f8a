"""
Instruction processor

Orchestrates the three program operations:
- InitializeRoom:    create a room record and derive its vault
- StakeAndCommit:    record a funded stake and target price
- SettlePrediction:  resolve an expired prediction against the room oracle

Each operation validates its inputs before touching state, then runs its
read-modify-write inside one account store transaction, so it either applies
its whole delta or none of it. Failures are raised as specific
PredictChatError subclasses and also published as OPERATION_FAILED.
"""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from solders.pubkey import Pubkey

from predict_chat.config import config
from predict_chat.errors import (
    AlreadyInitialized,
    CorruptState,
    DuplicatePrediction,
    InvalidOwner,
    InvalidRoom,
    OracleMismatch,
    PredictChatError,
    PredictionNotFound,
    RoomNotFound,
    Unauthorized,
    VaultNotFunded,
)
from predict_chat.models import (
    InitializeRoom,
    OperationFailedEvent,
    Prediction,
    PredictionCommittedEvent,
    PredictionSettledEvent,
    Room,
    RoomInitializedEvent,
    SettlePrediction,
    StakeAndCommit,
    decode_instruction,
)
from predict_chat.services.account_store import Account, AccountStore
from predict_chat.services.event_bus import EventBus, Events, event_bus

from . import addresses, settlement
from .clock import Clock
from .funding import VaultFunding
from .oracle import OracleAccount
from .validators import (
    normalize_room_id,
    validate_expiry,
    validate_nonce,
    validate_room_config,
    validate_stake_amount,
    validate_target_price,
)

logger = logging.getLogger(__name__)


def _label(room_id) -> str:
    if isinstance(room_id, (bytes, bytearray)):
        try:
            return bytes(room_id).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(room_id).hex()
    return str(room_id)


class InstructionProcessor:
    """
    Entry point for all state transitions

    Usage:
        processor = InstructionProcessor(InMemoryAccountStore(), ManualClock(0), VaultLedger())
        room = processor.initialize_room("r1", oracle_feed, staking_mint)
        ledger.deposit(room.vault, user, 100)
        processor.stake_and_commit("r1", user, 100, 50_000, expiry=100)
        clock.set(100)
        processor.settle_prediction("r1", user, OracleAccount(oracle_feed, encode_price(60_000)))

    Events are published only while the bus is running (`bus.start()`).
    """

    def __init__(
        self,
        store: AccountStore,
        clock: Clock,
        funding: VaultFunding,
        program_id: Pubkey | None = None,
        settle_authorities: Iterable[Pubkey] | None = None,
        bus: EventBus | None = None,
    ):
        self.store = store
        self.clock = clock
        self.funding = funding
        self.program_id = program_id if program_id is not None else config.get_program_id()
        if settle_authorities is None:
            settle_authorities = config.get_settle_authorities()
        self.settle_authorities = frozenset(bytes(a) for a in settle_authorities)
        self.bus = bus or event_bus
        logger.info(f"InstructionProcessor initialized for program {self.program_id}")

    # ========================================================================
    # QUERIES
    # ========================================================================

    def room_address(self, room_id: str | bytes) -> Pubkey:
        return addresses.room_address(normalize_room_id(room_id), self.program_id)[0]

    def prediction_address(self, room_id: str | bytes, predictor: Pubkey, nonce: int = 0) -> Pubkey:
        validate_nonce(nonce)
        room_addr = self.room_address(room_id)
        return addresses.prediction_address(room_addr, predictor, nonce, self.program_id)[0]

    def get_room(self, room_id: str | bytes) -> Room:
        address = self.room_address(room_id)
        return self._decode_room(self.store.get(address), address)

    def get_prediction(self, room_id: str | bytes, predictor: Pubkey, nonce: int = 0) -> Prediction:
        address = self.prediction_address(room_id, predictor, nonce)
        return self._decode_prediction(self.store.get(address), address)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def initialize_room(
        self,
        room_id: str | bytes,
        oracle_feed: Pubkey,
        staking_mint: Pubkey,
        authority: Pubkey | None = None,
    ) -> Room:
        """
        Create a room and derive its vault

        Raises:
            InvalidConfiguration: Bad room id, zero oracle feed or staking mint
            AlreadyInitialized: The room's derived address is occupied
            AllocationFailed: The store could not allocate the record
        """
        with self._operation("initialize_room", room_id):
            rid = normalize_room_id(room_id)
            validate_room_config(oracle_feed, staking_mint)

            address, bump = addresses.room_address(rid, self.program_id)
            vault, vault_bump = addresses.vault_address(rid, self.program_id)
            room = Room(
                room_id=rid,
                authority=authority or Pubkey.default(),
                oracle_feed=oracle_feed,
                staking_mint=staking_mint,
                vault=vault,
                bump=bump,
                vault_bump=vault_bump,
            )

            with self.store.transaction(address) as tx:
                if tx.get(address) is not None:
                    raise AlreadyInitialized(f"Room {room.label!r} already exists at {address}")
                tx.create(address, self.program_id, room.to_bytes())

            logger.info(f"Room {room.label!r} initialized by {room.authority} (vault {vault})")
            self._publish(
                Events.ROOM_INITIALIZED,
                RoomInitializedEvent(
                    room_id=room.label,
                    slot=self.clock.now(),
                    room=str(address),
                    authority=str(room.authority),
                    oracle_feed=str(oracle_feed),
                    staking_mint=str(staking_mint),
                    vault=str(vault),
                ),
            )
            return room

    def stake_and_commit(
        self,
        room_id: str | bytes,
        predictor: Pubkey,
        stake_amount: int,
        target_price: int,
        expiry: int,
        nonce: int = 0,
    ) -> Prediction:
        """
        Record a stake and target price for `predictor`

        The stake must already sit in the room vault. It is reserved against
        the predictor's uncommitted deposits and never moves tokens.

        Raises:
            InvalidStakeAmount: Stake not a positive u64
            InvalidConfiguration: Target price outside i64, bad room id or nonce
            RoomNotFound: No room at the derived address
            ExpiryNotInFuture: expiry <= current slot
            DuplicatePrediction: (room, predictor, nonce) already has a prediction
            VaultNotFunded: Uncommitted deposits for this predictor are below the stake
        """
        with self._operation("stake_and_commit", room_id, predictor):
            validate_stake_amount(stake_amount)
            validate_target_price(target_price)
            validate_nonce(nonce)
            rid = normalize_room_id(room_id)

            room_addr = addresses.room_address(rid, self.program_id)[0]
            room = self._decode_room(self.store.get(room_addr), room_addr)

            now = self.clock.now()
            validate_expiry(expiry, now)

            address, bump = addresses.prediction_address(room_addr, predictor, nonce, self.program_id)
            reserved = False
            try:
                with self.store.transaction(address) as tx:
                    existing = tx.get(address)
                    if existing is not None:
                        previous = self._decode_prediction(existing, address)
                        raise DuplicatePrediction(
                            f"Predictor {predictor} already has a {previous.status.value} "
                            f"prediction in room {room.label!r} with nonce {nonce}"
                        )

                    if not self.funding.reserve(room.vault, predictor, stake_amount):
                        available = self.funding.available_amount(room.vault, predictor)
                        raise VaultNotFunded(
                            f"Vault {room.vault} has {available} uncommitted for {predictor}, "
                            f"stake is {stake_amount}"
                        )
                    reserved = True

                    prediction = Prediction(
                        room=room_addr,
                        predictor=predictor,
                        stake=stake_amount,
                        target_price=target_price,
                        expiry_slot=expiry,
                        created_slot=now,
                        nonce=nonce,
                        bump=bump,
                    )
                    tx.create(address, self.program_id, prediction.to_bytes())
            except BaseException:
                # The record was never committed, so the stake backs nothing
                if reserved:
                    self.funding.release(room.vault, predictor, stake_amount)
                raise

            logger.info(
                f"User {predictor} committed prediction {target_price} with stake {stake_amount} "
                f"in room {room.label!r} (expiry {expiry})"
            )
            self._publish(
                Events.PREDICTION_COMMITTED,
                PredictionCommittedEvent(
                    room_id=room.label,
                    slot=now,
                    prediction=str(address),
                    predictor=str(predictor),
                    nonce=nonce,
                    stake=stake_amount,
                    target_price=target_price,
                    expiry_slot=expiry,
                ),
            )
            return prediction

    def settle_prediction(
        self,
        room_id: str | bytes,
        predictor: Pubkey,
        oracle: OracleAccount,
        nonce: int = 0,
        caller: Pubkey | None = None,
    ) -> Prediction:
        """
        Settle an expired prediction: won iff oracle price >= target

        Args:
            oracle: Oracle data and the address it was read from
            caller: Who triggers settlement (defaults to the predictor)

        Raises:
            RoomNotFound / PredictionNotFound: Missing records
            InvalidRoom: Prediction references another room
            Unauthorized: Caller is not the predictor, room authority, or a settle authority
            OracleMismatch: Oracle is not the room's feed
            NotYetExpired: Current slot before expiry
            AlreadySettled: Prediction already has an outcome
            MalformedOracleData: Oracle blob shorter than a price
        """
        with self._operation("settle_prediction", room_id, predictor):
            validate_nonce(nonce)
            rid = normalize_room_id(room_id)

            room_addr = addresses.room_address(rid, self.program_id)[0]
            room = self._decode_room(self.store.get(room_addr), room_addr)

            address = addresses.prediction_address(room_addr, predictor, nonce, self.program_id)[0]
            with self.store.transaction(address) as tx:
                prediction = self._decode_prediction(tx.get(address), address)
                if prediction.room != room_addr:
                    raise InvalidRoom(f"Prediction {address} belongs to room {prediction.room}")
                if prediction.predictor != predictor:
                    raise CorruptState(f"Prediction {address} records another predictor")

                self._authorize_settlement(room, prediction, caller or predictor)

                now = self.clock.now()
                result = settlement.settle(room, prediction, oracle, now)
                tx.write(address, result.prediction.to_bytes())

            logger.info(
                f"Prediction settled. Observed price {result.observed_price}, "
                f"target {prediction.target_price}, won: {result.won}"
            )
            self._publish(
                Events.PREDICTION_SETTLED,
                PredictionSettledEvent(
                    room_id=room.label,
                    slot=now,
                    prediction=str(address),
                    predictor=str(predictor),
                    nonce=nonce,
                    observed_price=result.observed_price,
                    target_price=prediction.target_price,
                    won=result.won,
                ),
            )
            return result.prediction

    def process(
        self, data: bytes, signer: Pubkey, oracle: OracleAccount | None = None
    ) -> Room | Prediction:
        """
        Decode instruction bytes and dispatch them

        Args:
            data: Encoded instruction (see models.instructions)
            signer: Room authority, predictor, or settling caller
            oracle: Oracle account, required for SettlePrediction
        """
        with self._operation("process_instruction", "<undecoded>", signer):
            instruction = decode_instruction(data)

        if isinstance(instruction, InitializeRoom):
            return self.initialize_room(
                instruction.room_id, instruction.oracle_feed, instruction.staking_mint, signer
            )
        if isinstance(instruction, StakeAndCommit):
            return self.stake_and_commit(
                instruction.room_id,
                signer,
                instruction.stake,
                instruction.target_price,
                instruction.expiry,
                instruction.nonce,
            )
        if isinstance(instruction, SettlePrediction):
            if oracle is None:
                with self._operation("settle_prediction", instruction.room_id, instruction.predictor):
                    raise OracleMismatch("SettlePrediction requires an oracle account")
            return self.settle_prediction(
                instruction.room_id, instruction.predictor, oracle, instruction.nonce, caller=signer
            )
        raise TypeError(f"Unhandled instruction {type(instruction).__name__}")

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _decode_room(self, account: Account | None, address: Pubkey) -> Room:
        if account is None or account.is_empty:
            raise RoomNotFound(f"No room at {address}")
        if account.owner != self.program_id:
            raise InvalidOwner(f"Room account {address} is owned by {account.owner}")
        return Room.from_bytes(account.data)

    def _decode_prediction(self, account: Account | None, address: Pubkey) -> Prediction:
        if account is None or account.is_empty:
            raise PredictionNotFound(f"No prediction at {address}")
        if account.owner != self.program_id:
            raise InvalidOwner(f"Prediction account {address} is owned by {account.owner}")
        return Prediction.from_bytes(account.data)

    def _authorize_settlement(self, room: Room, prediction: Prediction, caller: Pubkey) -> None:
        if caller == prediction.predictor:
            return
        if caller == room.authority and room.authority != Pubkey.default():
            return
        if bytes(caller) in self.settle_authorities:
            return
        raise Unauthorized(f"{caller} may not settle a prediction of {prediction.predictor}")

    def _publish(self, event: Events, payload) -> None:
        if not self.bus.is_processing:
            logger.debug(f"Event bus not started, skipping {event.value}")
            return
        self.bus.publish(event, payload.model_dump(mode="json"))

    @contextmanager
    def _operation(self, name: str, room_id, predictor: Pubkey | None = None) -> Iterator[None]:
        try:
            yield
        except PredictChatError as e:
            logger.warning(f"{name} failed for room {_label(room_id)!r}: {e.name}: {e.message}")
            self._publish(
                Events.OPERATION_FAILED,
                OperationFailedEvent(
                    operation=name,
                    room_id=_label(room_id),
                    slot=self.clock.now(),
                    predictor=str(predictor) if predictor is not None else None,
                    error=e.name,
                    code=e.code,
                    category=e.category.value,
                    message=e.message,
                    retryable=e.is_retryable,
                ),
            )
            raise
