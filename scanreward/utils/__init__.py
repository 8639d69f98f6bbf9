"""
Utility modules for ScanReward.
"""
from .logging_config import setup_logging, get_logger
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    not_found,
    internal_error,
    loyalty_error_response,
)
from .exceptions import (
    LoyaltyError,
    NotFoundError,
    ShopNotFoundError,
    ClientNotFoundError,
    RewardNotFoundError,
    GiftNotFoundError,
    ValidationError,
    InvalidTagError,
    CooldownActiveError,
    IncompleteProfileError,
    InsufficientPointsError,
    AlreadyUsedError,
    PersistenceError,
    DuplicateError,
    PartnerLinkInconsistentError,
    InvalidStatusTransitionError,
)
