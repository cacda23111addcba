"""Tests for the inventory and staff-slot ledgers."""

import logging

import pytest

from bto_alloc.engine.ledger import InventoryLedger, SlotLedger, StockCount
from bto_alloc.exceptions import AllocationError, ErrorCode, LedgerInvariantError
from bto_alloc.models.housing import FlatCategory

TWO = FlatCategory.TWO_ROOM
THREE = FlatCategory.THREE_ROOM


@pytest.fixture
def ledger() -> InventoryLedger:
    """Two two-room units, no three-room units."""
    return InventoryLedger.from_totals("L1", {TWO: 2, THREE: 0})


class TestInventoryLedger:
    """Tests for InventoryLedger."""

    def test_from_totals(self, ledger: InventoryLedger) -> None:
        """Everything starts available."""
        assert ledger.total(TWO) == 2
        assert ledger.available(TWO) == 2
        assert ledger.offered_categories() == {TWO}

    def test_from_totals_rejects_negative(self) -> None:
        """Negative totals are a programming error."""
        with pytest.raises(LedgerInvariantError):
            InventoryLedger.from_totals("L1", {TWO: -1})

    def test_unknown_category_counts_zero(self) -> None:
        """Categories never stocked read as zero."""
        ledger = InventoryLedger("L1")

        assert ledger.total(TWO) == 0
        assert ledger.available(TWO) == 0

    def test_reserve_decrements(self, ledger: InventoryLedger) -> None:
        """Reserving hands out a unit of the category."""
        unit = ledger.reserve(TWO)

        assert unit.listing_id == "L1"
        assert unit.category == TWO
        assert unit.unit_id.startswith("unit-")
        assert not unit.is_booked
        assert ledger.available(TWO) == 1

    def test_reserve_until_exhausted(self, ledger: InventoryLedger) -> None:
        """The third reservation of two units fails."""
        ledger.reserve(TWO)
        ledger.reserve(TWO)

        with pytest.raises(AllocationError) as info:
            ledger.reserve(TWO)

        assert info.value.code == ErrorCode.NO_AVAILABILITY
        assert ledger.available(TWO) == 0

    def test_reserve_unstocked_category(self, ledger: InventoryLedger) -> None:
        """No stock means no availability."""
        with pytest.raises(AllocationError) as info:
            ledger.reserve(THREE)

        assert info.value.code == ErrorCode.NO_AVAILABILITY

    def test_release_restores(self, ledger: InventoryLedger) -> None:
        """Release gives back one unit."""
        ledger.reserve(TWO)
        ledger.release(TWO)

        assert ledger.available(TWO) == 2

    def test_release_beyond_total_rejected(
        self, ledger: InventoryLedger, caplog: pytest.LogCaptureFixture
    ) -> None:
        """More releases than reservations fail loudly instead of clamping."""
        ledger.reserve(TWO)
        ledger.release(TWO)

        with caplog.at_level(logging.ERROR, logger="bto_alloc.engine.ledger"):
            with pytest.raises(LedgerInvariantError):
                ledger.release(TWO)

        assert ledger.available(TWO) == 2
        assert "Release beyond total" in caplog.text

    def test_resize_keeps_reserved(self, ledger: InventoryLedger) -> None:
        """Growing the total keeps existing reservations."""
        ledger.reserve(TWO)
        ledger.resize(TWO, 5)

        assert ledger.stock[TWO] == StockCount(total=5, available=4)

    def test_resize_below_reserved(self, ledger: InventoryLedger) -> None:
        """The total cannot drop under the reserved count."""
        ledger.reserve(TWO)
        ledger.reserve(TWO)

        with pytest.raises(AllocationError) as info:
            ledger.resize(TWO, 1)

        assert info.value.code == ErrorCode.INVALID_REQUEST

    def test_check_invariants(self, ledger: InventoryLedger) -> None:
        """Corrupted counts are detected."""
        ledger.check_invariants()
        ledger.stock[TWO].available = 3

        with pytest.raises(LedgerInvariantError):
            ledger.check_invariants()


class TestSlotLedger:
    """Tests for SlotLedger."""

    def test_reserve_and_release(self) -> None:
        """Slots are taken and returned one at a time."""
        slots = SlotLedger.with_total("L1", 2)

        slots.reserve()
        assert slots.available == 1
        assert slots.used == 1

        slots.release()
        assert slots.available == 2

    def test_no_slots(self) -> None:
        """Exhausted slots raise NO_SLOTS."""
        slots = SlotLedger.with_total("L1", 1)
        slots.reserve()

        with pytest.raises(AllocationError) as info:
            slots.reserve()

        assert info.value.code == ErrorCode.NO_SLOTS
        assert slots.available == 0

    def test_release_beyond_total(self) -> None:
        """Releasing an unused slot is rejected."""
        slots = SlotLedger.with_total("L1", 1)

        with pytest.raises(LedgerInvariantError):
            slots.release()

        assert slots.available == 1

    def test_resize(self) -> None:
        """Resizing keeps assigned slots."""
        slots = SlotLedger.with_total("L1", 3)
        slots.reserve()
        slots.resize(5)

        assert (slots.total, slots.available) == (5, 4)

        with pytest.raises(AllocationError) as info:
            slots.resize(0)
        assert info.value.code == ErrorCode.INVALID_REQUEST
