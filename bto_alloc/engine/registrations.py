"""Staff registration lifecycle: PENDING -> APPROVED | REJECTED."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from bto_alloc.exceptions import AllocationError, ErrorCode
from bto_alloc.models.housing import (
    Listing,
    RegistrationStatus,
    Staff,
    StaffRegistration,
)
from bto_alloc.store.housing import HousingDataStore


class StaffRegistrationStateMachine:
    """Registers staff against listings and drives the slot ledger."""

    def __init__(
        self,
        store: HousingDataStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    def window_conflict(self, staff: Staff, listing: Listing) -> Listing | None:
        """First approved assignment whose window overlaps ``listing``'s."""
        for other in self.store.get_approved_listings(staff.staff_id):
            if other.listing_id != listing.listing_id and other.window.overlaps(listing.window):
                return other
        return None

    def register(self, staff: Staff, listing: Listing) -> StaffRegistration:
        """Create a PENDING registration. No slot is taken yet."""
        if self.store.get_live_registration(staff.staff_id, listing.listing_id) is not None:
            raise AllocationError(
                ErrorCode.ALREADY_REGISTERED,
                f"Staff {staff.staff_id} already registered for {listing.listing_id}",
            )
        if listing.staff_slots.available <= 0:
            raise AllocationError(
                ErrorCode.NO_SLOTS, f"No staff slots left in listing {listing.listing_id}"
            )
        conflict = self.window_conflict(staff, listing)
        if conflict is not None:
            raise AllocationError(
                ErrorCode.WINDOW_CONFLICT,
                f"Staff {staff.staff_id} already handles {conflict.listing_id} in an overlapping window",
            )
        for application in self.store.get_active_applications(staff.staff_id):
            if application.listing_id == listing.listing_id:
                raise AllocationError(
                    ErrorCode.ROLE_CONFLICT,
                    f"Staff {staff.staff_id} has applied for {listing.listing_id}",
                )

        registration = StaffRegistration(
            registration_id=f"reg-{uuid.uuid4().hex[:12]}",
            staff_id=staff.staff_id,
            listing_id=listing.listing_id,
            status=RegistrationStatus.PENDING,
            requested_at=self.clock(),
        )
        self.store.add_registration(registration)
        return registration

    def decide(self, registration: StaffRegistration, approve: bool, decided_by: str) -> None:
        """Approve or reject a PENDING registration.

        A failed approval (``NO_SLOTS`` or ``WINDOW_CONFLICT``) leaves the
        registration PENDING.
        """
        if registration.status != RegistrationStatus.PENDING:
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Registration {registration.registration_id} is {registration.status.value}",
            )

        if not approve:
            self._close(registration, RegistrationStatus.REJECTED, decided_by)
            return

        staff = self.store.get_staff(registration.staff_id)
        listing = self.store.get_listing(registration.listing_id)

        conflict = self.window_conflict(staff, listing)
        if conflict is not None:
            raise AllocationError(
                ErrorCode.WINDOW_CONFLICT,
                f"Staff {staff.staff_id} was approved for {conflict.listing_id} in an overlapping window",
            )

        listing.staff_slots.reserve()
        listing.assigned_staff.add(staff.staff_id)
        staff.handling.add(listing.listing_id)
        self._close(registration, RegistrationStatus.APPROVED, decided_by)

    def _close(
        self, registration: StaffRegistration, status: RegistrationStatus, decided_by: str
    ) -> None:
        registration.status = status
        registration.decided_at = self.clock()
        registration.decided_by = decided_by
