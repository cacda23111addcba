"""Tests for shared serialization utilities."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable

import pytest

from bto_alloc.engine.ledger import InventoryLedger
from bto_alloc.models.base import Window
from bto_alloc.models.housing import (
    Application,
    ApplicationStatus,
    Enquiry,
    EnquiryReply,
    FlatCategory,
    Listing,
    MaritalStatus,
    Role,
    Staff,
    Unit,
)
from bto_alloc.repositories.serialization import (
    DECODERS,
    ID_FIELDS,
    application_from_dict,
    dataclass_to_dict,
    enquiry_from_dict,
    listing_from_dict,
    serialize_value,
    staff_from_dict,
    to_dict,
)


class _SampleEnum(str, Enum):
    VALUE_A = "VALUE_A"


@dataclass
class _SampleData:
    name: str
    created_at: datetime


class TestToDict:
    """Tests for to_dict and serialize_value."""

    def test_dataclass(self) -> None:
        result = to_dict(_SampleData(name="test", created_at=datetime(2026, 1, 1, 8, 30)))

        assert result == {"name": "test", "created_at": "2026-01-01T08:30:00"}

    def test_dict_with_enum_keys(self) -> None:
        """Enum keys become their values."""
        result = to_dict({FlatCategory.TWO_ROOM: 2, "plain": date(2026, 2, 1)})

        assert result == {"TWO_ROOM": 2, "plain": "2026-02-01"}

    def test_other(self) -> None:
        assert to_dict(42) == {"value": "42"}

    def test_serialize_value(self) -> None:
        """Sets come out sorted; nested containers are walked."""
        assert serialize_value(_SampleEnum.VALUE_A) == "VALUE_A"
        assert serialize_value({"S2", "S1"}) == ["S1", "S2"]
        assert serialize_value((date(2026, 1, 1), [_SampleEnum.VALUE_A])) == [
            "2026-01-01",
            ["VALUE_A"],
        ]
        assert serialize_value(None) is None

    def test_listing_document(self, make_listing: Callable[..., Listing]) -> None:
        """Ledgers and windows are nested documents."""
        listing = make_listing(two_room=3, three_room=0)
        listing.assigned_staff.update({"S2", "S1"})

        data = dataclass_to_dict(listing)

        assert data["window"] == {"open_date": "2026-01-01", "close_date": "2026-01-30"}
        assert data["inventory"]["stock"]["TWO_ROOM"] == {"total": 3, "available": 3}
        assert data["staff_slots"] == {"listing_id": "L1", "total": 5, "available": 5}
        assert data["assigned_staff"] == ["S1", "S2"]


class TestDecoders:
    """Tests for the record decoders."""

    def test_listing_round_trip(self, make_listing: Callable[..., Listing]) -> None:
        """A listing decodes to an equal listing with working ledgers."""
        listing = make_listing(two_room=2, three_room=1)
        listing.inventory.reserve(FlatCategory.TWO_ROOM)
        listing.staff_slots.reserve()
        listing.created_at = datetime(2025, 12, 1, 10, 0)

        decoded = listing_from_dict(to_dict(listing))

        assert decoded == listing
        assert isinstance(decoded.inventory, InventoryLedger)
        assert decoded.inventory.available(FlatCategory.TWO_ROOM) == 1
        assert decoded.staff_slots.used == 1
        assert decoded.window == Window(date(2026, 1, 1), date(2026, 1, 30))

    def test_application_with_units(self) -> None:
        """Reserved and booked units survive decoding."""
        unit = Unit("unit-1", "L1", FlatCategory.THREE_ROOM, application_id="app-1")
        application = Application(
            application_id="app-1",
            requester_id="R1",
            listing_id="L1",
            category=FlatCategory.THREE_ROOM,
            status=ApplicationStatus.BOOKED,
            submitted_at=datetime(2026, 1, 5, 9, 0),
            status_changed_at=datetime(2026, 1, 6, 9, 0),
            reserved_unit=unit,
            booked_unit=unit,
        )

        decoded = application_from_dict(to_dict(application))

        assert decoded == application
        assert decoded.booked_unit.is_booked

    def test_staff_handling(self) -> None:
        staff = Staff("S1", "Officer Lim", 31, MaritalStatus.MARRIED, handling={"L2", "L1"})

        decoded = staff_from_dict(to_dict(staff))

        assert decoded.handling == {"L1", "L2"}
        assert decoded.marital_status == MaritalStatus.MARRIED

    def test_enquiry_replies(self) -> None:
        enquiry = Enquiry(
            enquiry_id="enq-1",
            requester_id="R1",
            listing_id="L1",
            content="Is there a hawker centre nearby?",
            submitted_at=datetime(2026, 1, 5, 9, 0),
            replies=[EnquiryReply("M1", Role.MANAGER, "Yes, 300m away.", datetime(2026, 1, 6))],
        )

        assert enquiry_from_dict(to_dict(enquiry)) == enquiry

    def test_missing_field_raises(self) -> None:
        """Incomplete documents raise KeyError for the repository to wrap."""
        with pytest.raises(KeyError):
            application_from_dict({"application_id": "app-1"})

    def test_bad_enum_raises(self) -> None:
        with pytest.raises(ValueError):
            staff_from_dict({"staff_id": "S1", "name": "X", "age": 30, "marital_status": "WIDOWED"})

    def test_tables_cover_every_collection(self) -> None:
        assert set(DECODERS) == set(ID_FIELDS)
        assert ID_FIELDS["withdrawals"] == "request_id"
