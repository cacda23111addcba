"""Pytest configuration and fixtures."""

from datetime import date, datetime, timedelta
from typing import Any, Callable

import pytest

from bto_alloc.engine.ledger import InventoryLedger, SlotLedger
from bto_alloc.models.base import Window
from bto_alloc.models.housing import (
    Actor,
    FlatCategory,
    Listing,
    Manager,
    MaritalStatus,
    Requester,
    Role,
    Staff,
)
from bto_alloc.repositories.base import InMemoryRepository
from bto_alloc.service import AllocationService
from bto_alloc.store.housing import HousingDataStore

DAY1 = date(2026, 1, 1)


def day(n: int) -> date:
    """Calendar date of day ``n`` (day 1 is 2026-01-01)."""
    return DAY1 + timedelta(days=n - 1)


class FakeClock:
    """Deterministic clock; every reading is one second after the previous one."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current += timedelta(seconds=1)
        return now

    def advance(self, **kwargs: Any) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def clock() -> FakeClock:
    """Clock sitting on day 5, 09:00."""
    return FakeClock(datetime.combine(day(5), datetime.min.time()).replace(hour=9))


@pytest.fixture
def store() -> HousingDataStore:
    """Store with two managers."""
    store = HousingDataStore()
    store.add_manager(Manager(manager_id="M1", name="Tan Mei Ling"))
    store.add_manager(Manager(manager_id="M2", name="Rahul Nair"))
    return store


@pytest.fixture
def make_listing(store: HousingDataStore) -> Callable[..., Listing]:
    """Factory adding a listing straight into the store."""

    def _make(
        listing_id: str = "L1",
        manager_id: str = "M1",
        two_room: int = 1,
        three_room: int = 1,
        open_day: int = 1,
        close_day: int = 30,
        slots: int = 5,
        visible: bool = True,
        neighborhood: str = "Yishun",
    ) -> Listing:
        listing = Listing(
            listing_id=listing_id,
            name=f"Project {listing_id}",
            neighborhood=neighborhood,
            window=Window(day(open_day), day(close_day)),
            manager_id=manager_id,
            inventory=InventoryLedger.from_totals(
                listing_id,
                {FlatCategory.TWO_ROOM: two_room, FlatCategory.THREE_ROOM: three_room},
            ),
            staff_slots=SlotLedger.with_total(listing_id, slots),
            visible=visible,
        )
        store.add_listing(listing)
        return listing

    return _make


@pytest.fixture
def make_requester(store: HousingDataStore) -> Callable[..., Requester]:
    """Factory adding a requester to the store."""

    def _make(
        requester_id: str = "R1",
        age: int = 40,
        marital_status: MaritalStatus = MaritalStatus.SINGLE,
    ) -> Requester:
        requester = Requester(
            requester_id=requester_id,
            name=f"Requester {requester_id}",
            age=age,
            marital_status=marital_status,
        )
        store.add_requester(requester)
        return requester

    return _make


@pytest.fixture
def make_staff(store: HousingDataStore) -> Callable[..., Staff]:
    """Factory adding a staff member to the store."""

    def _make(
        staff_id: str = "S1",
        age: int = 30,
        marital_status: MaritalStatus = MaritalStatus.MARRIED,
    ) -> Staff:
        staff = Staff(
            staff_id=staff_id,
            name=f"Officer {staff_id}",
            age=age,
            marital_status=marital_status,
        )
        store.add_staff(staff)
        return staff

    return _make


@pytest.fixture
def repository() -> InMemoryRepository:
    """Fresh in-memory repository."""
    return InMemoryRepository()


@pytest.fixture
def service(
    store: HousingDataStore, repository: InMemoryRepository, clock: FakeClock
) -> AllocationService:
    """Service over the shared store."""
    return AllocationService(store=store, repository=repository, clock=clock)


@pytest.fixture
def manager() -> Actor:
    """Manager M1."""
    return Actor("M1", Role.MANAGER)


@pytest.fixture
def other_manager() -> Actor:
    """Manager M2."""
    return Actor("M2", Role.MANAGER)
