"""Enumeration types for housing allocation entities."""

from enum import Enum


class FlatCategory(str, Enum):
    TWO_ROOM = "TWO_ROOM"
    THREE_ROOM = "THREE_ROOM"


class MaritalStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"


class Role(str, Enum):
    REQUESTER = "REQUESTER"
    STAFF = "STAFF"
    MANAGER = "MANAGER"


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    UNSUCCESSFUL = "UNSUCCESSFUL"
    BOOKED = "BOOKED"
    WITHDRAWN = "WITHDRAWN"


class RegistrationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WithdrawalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Statuses that count towards the one-active-application rule
ACTIVE_APPLICATION_STATUSES = frozenset(
    {ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED}
)

# Statuses in which the application holds a unit of inventory
HOLDING_APPLICATION_STATUSES = frozenset({ApplicationStatus.SUCCESSFUL, ApplicationStatus.BOOKED})

LIVE_REGISTRATION_STATUSES = frozenset({RegistrationStatus.PENDING, RegistrationStatus.APPROVED})
