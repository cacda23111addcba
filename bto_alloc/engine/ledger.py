"""Inventory and staff-slot ledgers owned by each listing.

Both ledgers implement check-and-decrement as a single method so that the
caller only has to hold the listing's lock around the call and the state
transition that goes with it.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from bto_alloc.exceptions import AllocationError, ErrorCode, LedgerInvariantError
from bto_alloc.models.housing.enums import FlatCategory
from bto_alloc.models.housing.unit import Unit

logger = logging.getLogger(__name__)


@dataclass
class StockCount:
    """Total and available counts for one category."""

    total: int
    available: int

    @property
    def reserved(self) -> int:
        return self.total - self.available


@dataclass
class InventoryLedger:
    """Per-category flat inventory of a listing."""

    listing_id: str
    stock: dict[FlatCategory, StockCount] = field(default_factory=dict)

    @classmethod
    def from_totals(cls, listing_id: str, totals: dict[FlatCategory, int]) -> InventoryLedger:
        """Build a fresh ledger with everything available."""
        for category, total in totals.items():
            if total < 0:
                raise LedgerInvariantError(
                    f"Negative total {total} for {category.value} in listing {listing_id}"
                )
        return cls(
            listing_id=listing_id,
            stock={category: StockCount(total, total) for category, total in totals.items()},
        )

    def total(self, category: FlatCategory) -> int:
        count = self.stock.get(category)
        return count.total if count else 0

    def available(self, category: FlatCategory) -> int:
        count = self.stock.get(category)
        return count.available if count else 0

    def offered_categories(self) -> set[FlatCategory]:
        """Categories this listing was built with (total > 0)."""
        return {category for category, count in self.stock.items() if count.total > 0}

    def reserve(self, category: FlatCategory) -> Unit:
        """Take one unit of ``category``.

        Raises
        ------
        AllocationError
            ``NO_AVAILABILITY`` when nothing is left.
        """
        count = self.stock.get(category)
        if count is None or count.available <= 0:
            raise AllocationError(
                ErrorCode.NO_AVAILABILITY,
                f"No {category.value} units left in listing {self.listing_id}",
            )

        count.available -= 1
        return Unit(
            unit_id=f"unit-{uuid.uuid4().hex[:12]}",
            listing_id=self.listing_id,
            category=category,
        )

    def release(self, category: FlatCategory) -> None:
        """Return one unit of ``category``.

        Raises
        ------
        LedgerInvariantError
            If the release would push ``available`` above ``total``.
        """
        count = self.stock.get(category)
        if count is None or count.available >= count.total:
            logger.error(
                "Release beyond total rejected: listing=%s category=%s available=%s total=%s",
                self.listing_id,
                category.value,
                count.available if count else None,
                count.total if count else None,
            )
            raise LedgerInvariantError(
                f"Release of {category.value} in listing {self.listing_id} exceeds total"
            )

        count.available += 1

    def resize(self, category: FlatCategory, new_total: int) -> None:
        """Change the total for ``category`` keeping current reservations."""
        count = self.stock.get(category, StockCount(0, 0))
        if new_total < count.reserved:
            raise AllocationError(
                ErrorCode.INVALID_REQUEST,
                f"{category.value} total {new_total} is below {count.reserved} reserved units",
            )
        self.stock[category] = StockCount(new_total, new_total - count.reserved)

    def check_invariants(self) -> None:
        """Verify ``0 <= available <= total`` for every category."""
        for category, count in self.stock.items():
            if not 0 <= count.available <= count.total:
                message = (
                    f"Listing {self.listing_id} {category.value}: "
                    f"available={count.available} total={count.total}"
                )
                logger.error("Inventory out of bounds: %s", message)
                raise LedgerInvariantError(message)


@dataclass
class SlotLedger:
    """Staff-slot counts of a listing."""

    listing_id: str
    total: int
    available: int

    @classmethod
    def with_total(cls, listing_id: str, total: int) -> SlotLedger:
        return cls(listing_id=listing_id, total=total, available=total)

    @property
    def used(self) -> int:
        return self.total - self.available

    def reserve(self) -> None:
        """Take one staff slot, raising ``NO_SLOTS`` when exhausted."""
        if self.available <= 0:
            raise AllocationError(
                ErrorCode.NO_SLOTS, f"No staff slots left in listing {self.listing_id}"
            )
        self.available -= 1

    def release(self) -> None:
        """Return one staff slot."""
        if self.available >= self.total:
            logger.error(
                "Slot release beyond total rejected: listing=%s available=%s total=%s",
                self.listing_id,
                self.available,
                self.total,
            )
            raise LedgerInvariantError(f"Slot release in listing {self.listing_id} exceeds total")
        self.available += 1

    def resize(self, new_total: int) -> None:
        """Change the slot total keeping current assignments."""
        if new_total < self.used:
            raise AllocationError(
                ErrorCode.INVALID_REQUEST,
                f"Slot total {new_total} is below {self.used} assigned staff",
            )
        self.total = new_total
        self.available = new_total - self.used

    def check_invariants(self) -> None:
        if not 0 <= self.available <= self.total:
            message = f"Listing {self.listing_id} slots: available={self.available} total={self.total}"
            logger.error("Staff slots out of bounds: %s", message)
            raise LedgerInvariantError(message)
