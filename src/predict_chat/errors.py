"""
Error taxonomy for prediction room operations

Every failure is a distinct, named exception with a stable numeric code so
callers can tell "try again later" (temporal) from "this will never succeed"
(configuration / state conflict).
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Broad error families"""

    CONFIGURATION = "configuration"
    STATE_CONFLICT = "state_conflict"
    TEMPORAL = "temporal"
    DATA = "data"
    RESOURCE = "resource"
    AUTHORIZATION = "authorization"


class PredictChatError(Exception):
    """Base class for all program errors"""

    code: int = 0
    category: ErrorCategory = ErrorCategory.DATA
    default_message: str = "Prediction program error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def is_retryable(self) -> bool:
        """Only temporal errors can succeed later without changing the request"""
        return self.category == ErrorCategory.TEMPORAL

    def to_dict(self) -> dict:
        return {
            "error": self.name,
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "retryable": self.is_retryable,
        }


# Codes 0-5 are the program's on-chain custom error numbers.


class InvalidOwner(PredictChatError):
    code = 0
    category = ErrorCategory.DATA
    default_message = "Account does not have the expected owner"


class AlreadyInitialized(PredictChatError):
    code = 1
    category = ErrorCategory.STATE_CONFLICT
    default_message = "Account is already initialized"


class AlreadySettled(PredictChatError):
    code = 2
    category = ErrorCategory.STATE_CONFLICT
    default_message = "Prediction is already settled"


class NotYetExpired(PredictChatError):
    code = 3
    category = ErrorCategory.TEMPORAL
    default_message = "Prediction cannot be settled before expiry"


class InvalidRoom(PredictChatError):
    code = 4
    category = ErrorCategory.DATA
    default_message = "Prediction account is tied to a different room"


class MalformedOracleData(PredictChatError):
    code = 5
    category = ErrorCategory.DATA
    default_message = "Oracle account is too small to contain a price feed"


class InvalidConfiguration(PredictChatError):
    code = 6
    category = ErrorCategory.CONFIGURATION
    default_message = "Invalid room configuration"


class AllocationFailed(PredictChatError):
    code = 7
    category = ErrorCategory.RESOURCE
    default_message = "Could not allocate account storage"


class RoomNotFound(PredictChatError):
    code = 8
    category = ErrorCategory.STATE_CONFLICT
    default_message = "Room does not exist"


class PredictionNotFound(PredictChatError):
    code = 9
    category = ErrorCategory.STATE_CONFLICT
    default_message = "Prediction does not exist"


class InvalidStakeAmount(PredictChatError):
    code = 10
    category = ErrorCategory.CONFIGURATION
    default_message = "Stake amount must be a positive 64-bit integer"


class ExpiryNotInFuture(PredictChatError):
    code = 11
    category = ErrorCategory.CONFIGURATION
    default_message = "Expiry must be strictly after the current slot"


class DuplicatePrediction(PredictChatError):
    code = 12
    category = ErrorCategory.STATE_CONFLICT
    default_message = "A prediction already exists for this room, predictor and nonce"


class VaultNotFunded(PredictChatError):
    code = 13
    category = ErrorCategory.STATE_CONFLICT
    default_message = "Vault does not hold the stake for this predictor"


class OracleMismatch(PredictChatError):
    code = 14
    category = ErrorCategory.DATA
    default_message = "Oracle account does not match the room's oracle feed"


class CorruptState(PredictChatError):
    code = 15
    category = ErrorCategory.DATA
    default_message = "Stored account data is corrupt"


class Unauthorized(PredictChatError):
    code = 16
    category = ErrorCategory.AUTHORIZATION
    default_message = "Caller may not perform this operation"


class InvalidInstructionData(PredictChatError):
    code = 17
    category = ErrorCategory.DATA
    default_message = "Instruction data could not be decoded"


ERRORS_BY_CODE: dict[int, type[PredictChatError]] = {
    cls.code: cls
    for cls in (
        InvalidOwner,
        AlreadyInitialized,
        AlreadySettled,
        NotYetExpired,
        InvalidRoom,
        MalformedOracleData,
        InvalidConfiguration,
        AllocationFailed,
        RoomNotFound,
        PredictionNotFound,
        InvalidStakeAmount,
        ExpiryNotInFuture,
        DuplicatePrediction,
        VaultNotFunded,
        OracleMismatch,
        CorruptState,
        Unauthorized,
        InvalidInstructionData,
    )
}
