"""Application, staff registration and withdrawal request models."""

from dataclasses import dataclass
from datetime import datetime

from bto_alloc.models.housing.enums import (
    ACTIVE_APPLICATION_STATUSES,
    HOLDING_APPLICATION_STATUSES,
    ApplicationStatus,
    FlatCategory,
    RegistrationStatus,
    WithdrawalStatus,
)
from bto_alloc.models.housing.unit import Unit


@dataclass
class Application:
    """A requester's application for one flat category in one listing."""

    application_id: str
    requester_id: str
    listing_id: str
    category: FlatCategory  # chosen at submission
    status: ApplicationStatus
    submitted_at: datetime
    status_changed_at: datetime
    reserved_unit: Unit | None = None  # held from SUCCESSFUL onwards
    booked_unit: Unit | None = None  # set only once BOOKED

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_APPLICATION_STATUSES

    @property
    def holds_unit(self) -> bool:
        return self.status in HOLDING_APPLICATION_STATUSES


@dataclass
class StaffRegistration:
    """Request by a staff member to handle a listing."""

    registration_id: str
    staff_id: str
    listing_id: str
    status: RegistrationStatus
    requested_at: datetime
    decided_at: datetime | None = None
    decided_by: str | None = None


@dataclass
class WithdrawalRequest:
    """Manager-gated request to withdraw an application."""

    request_id: str
    application_id: str
    reason: str
    status: WithdrawalStatus
    requested_at: datetime
    decided_at: datetime | None = None
    decided_by: str | None = None
