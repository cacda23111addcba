"""Identity models: requesters, staff, managers and the acting caller."""

from dataclasses import dataclass, field
from datetime import datetime

from bto_alloc.models.housing.enums import MaritalStatus, Role


@dataclass
class Requester:
    """Applicant seeking a flat. ``requester_id`` is the NRIC."""

    requester_id: str
    name: str
    age: int
    marital_status: MaritalStatus
    created_at: datetime | None = None


@dataclass
class Staff:
    """Officer who can be assigned to handle listings.

    Staff may also apply for flats, in which case they act as a
    requester under the same identity.
    """

    staff_id: str
    name: str
    age: int
    marital_status: MaritalStatus
    handling: set[str] = field(default_factory=set)  # listing ids, back-reference only
    created_at: datetime | None = None

    def as_requester(self) -> Requester:
        """Requester view of this staff member."""
        return Requester(
            requester_id=self.staff_id,
            name=self.name,
            age=self.age,
            marital_status=self.marital_status,
            created_at=self.created_at,
        )


@dataclass
class Manager:
    """Manager in charge of one or more listings."""

    manager_id: str
    name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Actor:
    """Authenticated caller supplied by the identity collaborator."""

    identity_id: str
    role: Role
