"""Enquiry and report models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from bto_alloc.models.housing.enums import (
    ApplicationStatus,
    FlatCategory,
    MaritalStatus,
    Role,
)


@dataclass
class EnquiryReply:
    responder_id: str
    role: Role
    text: str
    replied_at: datetime


@dataclass
class Enquiry:
    """Question raised by a requester about a listing."""

    enquiry_id: str
    requester_id: str
    listing_id: str
    content: str
    submitted_at: datetime
    updated_at: datetime | None = None
    replies: list[EnquiryReply] = field(default_factory=list)

    @property
    def is_answered(self) -> bool:
        return bool(self.replies)


@dataclass
class ReportRow:
    """One application line in a report."""

    application_id: str
    requester_id: str
    requester_name: str
    age: int
    marital_status: MaritalStatus
    category: FlatCategory
    status: ApplicationStatus
    unit_id: str | None = None


@dataclass
class Report:
    """Filtered snapshot of a listing's applications (data only, no layout)."""

    report_id: str
    listing_id: str
    kind: str  # "applications" or "bookings"
    generated_at: datetime
    criteria: dict[str, Any] = field(default_factory=dict)
    rows: list[ReportRow] = field(default_factory=list)
    by_status: dict[ApplicationStatus, int] = field(default_factory=dict)
    by_marital_status: dict[MaritalStatus, int] = field(default_factory=dict)
    by_category: dict[FlatCategory, int] = field(default_factory=dict)
