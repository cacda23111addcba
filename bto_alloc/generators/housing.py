"""Synthetic listings, requesters, staff and managers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator

from bto_alloc.generators.base import BaseGenerator
from bto_alloc.models.base import Window
from bto_alloc.models.housing import FlatCategory, Manager, MaritalStatus, Requester, Staff

NRIC_WEIGHTS = (2, 7, 6, 5, 4, 3, 2)
NRIC_CHECK_LETTERS = "JZIHGFEDCBA"

NEIGHBORHOODS = [
    "Ang Mo Kio",
    "Bedok",
    "Bukit Batok",
    "Choa Chu Kang",
    "Hougang",
    "Jurong West",
    "Punggol",
    "Queenstown",
    "Sengkang",
    "Tampines",
    "Toa Payoh",
    "Woodlands",
    "Yishun",
]
NAME_SUFFIXES = ["Breeze", "Grove", "Heights", "Residences", "Spring", "Vista", "Green", "Edge"]


def nric_check_letter(prefix: str, digits: str) -> str:
    """Check letter for an S/T-series identity number."""
    total = sum(int(d) * w for d, w in zip(digits, NRIC_WEIGHTS))
    if prefix == "T":
        total += 4
    return NRIC_CHECK_LETTERS[total % 11]


def is_valid_nric(value: str) -> bool:
    """Return True for a well-formed S/T identity number with a matching check letter."""
    if len(value) != 9 or value[0] not in "ST" or not value[1:8].isdigit():
        return False
    return value[8] == nric_check_letter(value[0], value[1:8])


@dataclass
class ListingDraft:
    """Parameters for ``AllocationService.create_listing``."""

    name: str
    neighborhood: str
    units: dict[FlatCategory, int]
    window: Window
    staff_slots: int
    visible: bool = True


class IdentityGenerator(BaseGenerator):
    """Shared NRIC issuing; identifiers are unique per generator instance."""

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        super().__init__(seed, locale)
        self._issued: set[str] = set()

    def nric(self, age: int) -> str:
        """Issue an unused identity number for someone aged ``age``."""
        prefix = "S" if date.today().year - age < 2000 else "T"
        while True:
            digits = f"{self.rng.randint(0, 9_999_999):07d}"
            value = f"{prefix}{digits}{nric_check_letter(prefix, digits)}"
            if value not in self._issued:
                self._issued.add(value)
                return value

    def _created_at(self) -> datetime:
        return datetime.now() - timedelta(days=self.rng.randint(0, 3 * 365))


class RequesterGenerator(IdentityGenerator):
    """Generate applicants across the eligibility boundaries."""

    MARITAL_STATUS = list(MaritalStatus)
    MARITAL_WEIGHTS = [0.45, 0.55]

    def generate(self) -> Requester:
        marital_status = self.rng.choices(self.MARITAL_STATUS, weights=self.MARITAL_WEIGHTS, k=1)[0]
        age = self.rng.randint(21, 70)
        return Requester(
            requester_id=self.nric(age),
            name=self.fake.name(),
            age=age,
            marital_status=marital_status,
            created_at=self._created_at(),
        )

    def generate_batch(self, count: int) -> Iterator[Requester]:
        for _ in range(count):
            yield self.generate()


class StaffGenerator(IdentityGenerator):
    def generate(self) -> Staff:
        age = self.rng.randint(23, 62)
        return Staff(
            staff_id=self.nric(age),
            name=self.fake.name(),
            age=age,
            marital_status=self.rng.choice(list(MaritalStatus)),
            created_at=self._created_at(),
        )

    def generate_batch(self, count: int) -> Iterator[Staff]:
        for _ in range(count):
            yield self.generate()


class ManagerGenerator(IdentityGenerator):
    def generate(self) -> Manager:
        return Manager(
            manager_id=self.nric(self.rng.randint(30, 60)),
            name=self.fake.name(),
            created_at=self._created_at(),
        )

    def generate_batch(self, count: int) -> Iterator[Manager]:
        for _ in range(count):
            yield self.generate()


class ListingGenerator(BaseGenerator):
    """Generate listing drafts with back-to-back, non-overlapping windows."""

    def generate(
        self,
        open_date: date,
        duration_days: int = 30,
        max_staff_slots: int = 10,
    ) -> ListingDraft:
        """Generate a single listing draft.

        Parameters
        ----------
        open_date : date
            First day of the application window.
        duration_days : int
            Window length; the window closes ``duration_days - 1`` days later.
        max_staff_slots : int
            Upper bound for the generated staff slots.

        Returns
        -------
        ListingDraft
            Draft accepted by ``create_listing``.
        """
        neighborhood = self.rng.choice(NEIGHBORHOODS)
        name = f"{self.fake.last_name()} {self.rng.choice(NAME_SUFFIXES)}"
        return ListingDraft(
            name=name,
            neighborhood=neighborhood,
            units={
                FlatCategory.TWO_ROOM: self.rng.randint(1, 6),
                FlatCategory.THREE_ROOM: self.rng.randint(0, 4),
            },
            window=Window(open_date, open_date + timedelta(days=duration_days - 1)),
            staff_slots=self.rng.randint(1, max_staff_slots),
            visible=self.rng.random() > 0.1,
        )

    def generate_series(self, start: date, count: int, duration_days: int = 30) -> Iterator[ListingDraft]:
        """Drafts whose windows follow each other without overlapping."""
        for i in range(count):
            yield self.generate(start + timedelta(days=i * duration_days), duration_days)
