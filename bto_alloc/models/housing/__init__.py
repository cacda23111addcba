"""Housing allocation domain models."""

from bto_alloc.models.housing.application import (
    Application,
    StaffRegistration,
    WithdrawalRequest,
)
from bto_alloc.models.housing.enquiry import Enquiry, EnquiryReply, Report, ReportRow
from bto_alloc.models.housing.enums import (
    ACTIVE_APPLICATION_STATUSES,
    HOLDING_APPLICATION_STATUSES,
    LIVE_REGISTRATION_STATUSES,
    ApplicationStatus,
    FlatCategory,
    MaritalStatus,
    RegistrationStatus,
    Role,
    WithdrawalStatus,
)
from bto_alloc.models.housing.listing import Listing
from bto_alloc.models.housing.party import Actor, Manager, Requester, Staff
from bto_alloc.models.housing.unit import Unit

__all__ = [
    "ACTIVE_APPLICATION_STATUSES",
    "HOLDING_APPLICATION_STATUSES",
    "LIVE_REGISTRATION_STATUSES",
    "Actor",
    "Application",
    "ApplicationStatus",
    "Enquiry",
    "EnquiryReply",
    "FlatCategory",
    "Listing",
    "Manager",
    "MaritalStatus",
    "RegistrationStatus",
    "Report",
    "ReportRow",
    "Requester",
    "Role",
    "Staff",
    "StaffRegistration",
    "Unit",
    "WithdrawalRequest",
    "WithdrawalStatus",
]
