"""
Custom exceptions for ScanReward business logic.

Validation failures (invalid tag, cooldown, incomplete profile, insufficient
points, already used) are expected outcomes shown to the user as-is.
PersistenceError is the only one a caller may choose to retry.
"""
from datetime import datetime
from typing import List, Optional


class LoyaltyError(Exception):
    """Base exception for all loyalty engine errors."""

    def __init__(self, message: str, code: str = "LOYALTY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LoyaltyError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class ShopNotFoundError(NotFoundError):
    def __init__(self, identifier=None):
        super().__init__("Shop", identifier)


class ClientNotFoundError(NotFoundError):
    def __init__(self, identifier=None):
        super().__init__("Client", identifier)


class RewardNotFoundError(NotFoundError):
    def __init__(self, identifier=None):
        super().__init__("Reward", identifier)


class GiftNotFoundError(NotFoundError):
    def __init__(self, identifier=None):
        super().__init__("Gift", identifier)


class ValidationError(LoyaltyError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class InvalidTagError(LoyaltyError):
    """Scanned tag does not belong to any configured shop tag set."""

    def __init__(self, message: str = "Invalid tag for this shop", tag_id: str = None):
        self.tag_id = tag_id
        super().__init__(message, "INVALID_TAG")


class CooldownActiveError(LoyaltyError):
    """A point-earning scan happened too recently at the same shop."""

    def __init__(self, retry_at: datetime):
        self.retry_at = retry_at
        message = f"You can scan again after {retry_at.strftime('%H:%M:%S')}"
        super().__init__(message, "COOLDOWN_ACTIVE")


class IncompleteProfileError(LoyaltyError):
    """Client profile must be complete before redeeming anything."""

    def __init__(self, missing_fields: Optional[List[str]] = None):
        self.missing_fields = missing_fields or []
        super().__init__(
            "Please complete your personal information to use your rewards",
            "INCOMPLETE_PROFILE"
        )


class InsufficientPointsError(LoyaltyError):
    """Not enough points for the reward."""

    def __init__(self, current: int, required: int):
        self.current = current
        self.required = required
        message = f"Insufficient points. Current: {current}, Required: {required}"
        super().__init__(message, "INSUFFICIENT_POINTS")


class AlreadyUsedError(LoyaltyError):
    """Gift was already consumed."""

    def __init__(self, identifier=None):
        self.identifier = identifier
        message = "Gift already used"
        if identifier:
            message = f"Gift {identifier} already used"
        super().__init__(message, "ALREADY_USED")


class PersistenceError(LoyaltyError):
    """The store rejected or could not complete a write."""

    def __init__(self, message: str = "Could not save changes, please try again",
                 original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "PERSISTENCE_ERROR")


class DuplicateError(LoyaltyError):
    """Resource already exists."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} already exists"
        if identifier:
            message = f"{resource} with {identifier} already exists"
        super().__init__(message, "DUPLICATE_ENTRY")


class PartnerLinkInconsistentError(LoyaltyError):
    """Malformed partnership configuration; the link is skipped."""

    def __init__(self, link_id, reason: str):
        self.link_id = link_id
        super().__init__(f"Partner link {link_id} is inconsistent: {reason}",
                         "PARTNER_LINK_INCONSISTENT")


class InvalidStatusTransitionError(LoyaltyError):
    """Invalid status transition for a resource."""

    def __init__(self, resource: str, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot change {resource} status from '{from_status}' to '{to_status}'"
        super().__init__(message, "INVALID_STATUS_TRANSITION")
