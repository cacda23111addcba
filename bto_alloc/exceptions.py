"""Custom exception hierarchy and business error taxonomy for bto-alloc."""

from enum import Enum


class ErrorCode(str, Enum):
    """Expected business outcomes returned by the allocation service."""

    INELIGIBLE = "INELIGIBLE"
    HIDDEN = "HIDDEN"
    NOT_OPEN = "NOT_OPEN"
    ALREADY_ACTIVE = "ALREADY_ACTIVE"
    NO_AVAILABILITY = "NO_AVAILABILITY"
    NOT_APPROVABLE = "NOT_APPROVABLE"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    NO_SLOTS = "NO_SLOTS"
    WINDOW_CONFLICT = "WINDOW_CONFLICT"
    ROLE_CONFLICT = "ROLE_CONFLICT"
    NOT_WITHDRAWABLE = "NOT_WITHDRAWABLE"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    NOT_EDITABLE = "NOT_EDITABLE"
    INVALID_REQUEST = "INVALID_REQUEST"


class ResultWarning(str, Enum):
    """Non-fatal conditions attached to an otherwise committed result."""

    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


class BtoAllocError(Exception):
    """Base exception for all bto-alloc errors."""


class EntityNotFoundError(BtoAllocError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(BtoAllocError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(BtoAllocError):
    """Raised when configuration is invalid or missing."""


class RepositoryError(BtoAllocError):
    """Raised when a persistence collaborator fails."""


class LedgerInvariantError(InvalidEntityStateError):
    """Raised when a ledger operation would break ``available <= total``.

    Always a caller bug, never a business outcome.
    """


class AllocationError(BtoAllocError):
    """A business rule rejected the operation.

    Parameters
    ----------
    code : ErrorCode
        Taxonomy entry describing the rejection.
    message : str
        Human-readable detail (never shown verbatim to end users).
    """

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        super().__init__(message or code.value)
        self.code = code
        self.message = message or code.value
