"""Housing domain data store with referential integrity."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bto_alloc.exceptions import EntityNotFoundError, ReferentialIntegrityError
from bto_alloc.models.housing import (
    Application,
    Enquiry,
    Listing,
    Manager,
    RegistrationStatus,
    Requester,
    Staff,
    StaffRegistration,
    WithdrawalRequest,
    WithdrawalStatus,
)
from bto_alloc.models.housing.enums import LIVE_REGISTRATION_STATUSES

if TYPE_CHECKING:
    from bto_alloc.repositories.base import Repository

logger = logging.getLogger(__name__)


@dataclass
class HousingDataStore:
    """Authoritative in-memory collections with relationship tracking.

    Entities reference each other by id only. The internal lock guards the
    dictionaries themselves; business-level serialisation is the
    allocation service's job.
    """

    # Listings and identities
    listings: dict[str, Listing] = field(default_factory=dict)
    requesters: dict[str, Requester] = field(default_factory=dict)
    staff: dict[str, Staff] = field(default_factory=dict)
    managers: dict[str, Manager] = field(default_factory=dict)

    # Lifecycle records
    applications: dict[str, Application] = field(default_factory=dict)
    registrations: dict[str, StaffRegistration] = field(default_factory=dict)
    withdrawals: dict[str, WithdrawalRequest] = field(default_factory=dict)
    enquiries: dict[str, Enquiry] = field(default_factory=dict)

    # Relationship indexes
    _manager_listings: dict[str, list[str]] = field(default_factory=dict)
    _requester_applications: dict[str, list[str]] = field(default_factory=dict)
    _listing_applications: dict[str, list[str]] = field(default_factory=dict)
    _staff_registrations: dict[str, list[str]] = field(default_factory=dict)
    _listing_registrations: dict[str, list[str]] = field(default_factory=dict)
    _application_withdrawals: dict[str, list[str]] = field(default_factory=dict)
    _listing_enquiries: dict[str, list[str]] = field(default_factory=dict)
    _requester_enquiries: dict[str, list[str]] = field(default_factory=dict)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    # Identities

    def add_requester(self, requester: Requester) -> None:
        """Add a requester to the store."""
        with self._lock:
            self.requesters[requester.requester_id] = requester

    def add_staff(self, staff: Staff) -> None:
        """Add a staff member to the store."""
        with self._lock:
            self.staff[staff.staff_id] = staff

    def add_manager(self, manager: Manager) -> None:
        """Add a manager to the store."""
        with self._lock:
            self.managers[manager.manager_id] = manager
            self._manager_listings.setdefault(manager.manager_id, [])

    # Listings

    def add_listing(self, listing: Listing) -> None:
        """Add a listing to the store."""
        with self._lock:
            if listing.manager_id not in self.managers:
                raise ReferentialIntegrityError(f"Manager {listing.manager_id} not found")
            for staff_id in listing.assigned_staff:
                if staff_id not in self.staff:
                    raise ReferentialIntegrityError(f"Staff {staff_id} not found")

            self.listings[listing.listing_id] = listing
            self._manager_listings[listing.manager_id].append(listing.listing_id)
            self._listing_applications.setdefault(listing.listing_id, [])
            self._listing_registrations.setdefault(listing.listing_id, [])
            self._listing_enquiries.setdefault(listing.listing_id, [])

    def remove_listing(self, listing_id: str) -> Listing:
        """Remove a listing and every record hanging off it."""
        with self._lock:
            listing = self.get_listing(listing_id)
            del self.listings[listing_id]
            self._manager_listings[listing.manager_id].remove(listing_id)

            for app_id in self._listing_applications.pop(listing_id, []):
                app = self.applications.pop(app_id)
                self._requester_applications[app.requester_id].remove(app_id)
                for request_id in self._application_withdrawals.pop(app_id, []):
                    del self.withdrawals[request_id]
            for reg_id in self._listing_registrations.pop(listing_id, []):
                reg = self.registrations.pop(reg_id)
                self._staff_registrations[reg.staff_id].remove(reg_id)
            for enquiry_id in self._listing_enquiries.pop(listing_id, []):
                enquiry = self.enquiries.pop(enquiry_id)
                self._requester_enquiries[enquiry.requester_id].remove(enquiry_id)
            return listing

    # Lifecycle records

    def add_application(self, application: Application) -> None:
        """Add an application to the store."""
        with self._lock:
            if application.listing_id not in self.listings:
                raise ReferentialIntegrityError(f"Listing {application.listing_id} not found")
            if (
                application.requester_id not in self.requesters
                and application.requester_id not in self.staff
            ):
                raise ReferentialIntegrityError(f"Requester {application.requester_id} not found")

            self.applications[application.application_id] = application
            self._requester_applications.setdefault(application.requester_id, []).append(
                application.application_id
            )
            self._listing_applications[application.listing_id].append(application.application_id)

    def add_registration(self, registration: StaffRegistration) -> None:
        """Add a staff registration to the store."""
        with self._lock:
            if registration.listing_id not in self.listings:
                raise ReferentialIntegrityError(f"Listing {registration.listing_id} not found")
            if registration.staff_id not in self.staff:
                raise ReferentialIntegrityError(f"Staff {registration.staff_id} not found")

            self.registrations[registration.registration_id] = registration
            self._staff_registrations.setdefault(registration.staff_id, []).append(
                registration.registration_id
            )
            self._listing_registrations[registration.listing_id].append(
                registration.registration_id
            )

    def add_withdrawal(self, request: WithdrawalRequest) -> None:
        """Add a withdrawal request to the store."""
        with self._lock:
            if request.application_id not in self.applications:
                raise ReferentialIntegrityError(f"Application {request.application_id} not found")

            self.withdrawals[request.request_id] = request
            self._application_withdrawals.setdefault(request.application_id, []).append(
                request.request_id
            )

    def add_enquiry(self, enquiry: Enquiry) -> None:
        """Add an enquiry to the store."""
        with self._lock:
            if enquiry.listing_id not in self.listings:
                raise ReferentialIntegrityError(f"Listing {enquiry.listing_id} not found")
            if enquiry.requester_id not in self.requesters and enquiry.requester_id not in self.staff:
                raise ReferentialIntegrityError(f"Requester {enquiry.requester_id} not found")

            self.enquiries[enquiry.enquiry_id] = enquiry
            self._listing_enquiries[enquiry.listing_id].append(enquiry.enquiry_id)
            self._requester_enquiries.setdefault(enquiry.requester_id, []).append(
                enquiry.enquiry_id
            )

    def remove_enquiry(self, enquiry_id: str) -> Enquiry:
        """Remove an enquiry."""
        with self._lock:
            enquiry = self.get_enquiry(enquiry_id)
            del self.enquiries[enquiry_id]
            self._listing_enquiries[enquiry.listing_id].remove(enquiry_id)
            self._requester_enquiries[enquiry.requester_id].remove(enquiry_id)
            return enquiry

    # Lookups

    def get_listing(self, listing_id: str) -> Listing:
        try:
            return self.listings[listing_id]
        except KeyError:
            raise EntityNotFoundError(f"Listing {listing_id} not found") from None

    def get_application(self, application_id: str) -> Application:
        try:
            return self.applications[application_id]
        except KeyError:
            raise EntityNotFoundError(f"Application {application_id} not found") from None

    def get_registration(self, registration_id: str) -> StaffRegistration:
        try:
            return self.registrations[registration_id]
        except KeyError:
            raise EntityNotFoundError(f"Registration {registration_id} not found") from None

    def get_withdrawal(self, request_id: str) -> WithdrawalRequest:
        try:
            return self.withdrawals[request_id]
        except KeyError:
            raise EntityNotFoundError(f"Withdrawal request {request_id} not found") from None

    def get_enquiry(self, enquiry_id: str) -> Enquiry:
        try:
            return self.enquiries[enquiry_id]
        except KeyError:
            raise EntityNotFoundError(f"Enquiry {enquiry_id} not found") from None

    def get_staff(self, staff_id: str) -> Staff:
        try:
            return self.staff[staff_id]
        except KeyError:
            raise EntityNotFoundError(f"Staff {staff_id} not found") from None

    def get_manager(self, manager_id: str) -> Manager:
        try:
            return self.managers[manager_id]
        except KeyError:
            raise EntityNotFoundError(f"Manager {manager_id} not found") from None

    def requester_profile(self, identity_id: str) -> Requester:
        """Requester record, or the requester view of a staff member."""
        if identity_id in self.requesters:
            return self.requesters[identity_id]
        if identity_id in self.staff:
            return self.staff[identity_id].as_requester()
        raise EntityNotFoundError(f"Requester {identity_id} not found")

    # Query methods

    def get_requester_applications(self, requester_id: str) -> list[Application]:
        """Get all applications for a requester, oldest first."""
        with self._lock:
            app_ids = self._requester_applications.get(requester_id, [])
            return [self.applications[aid] for aid in app_ids]

    def get_active_applications(self, requester_id: str) -> list[Application]:
        """Get the requester's applications that are not terminal."""
        return [app for app in self.get_requester_applications(requester_id) if app.is_active]

    def get_listing_applications(self, listing_id: str) -> list[Application]:
        """Get all applications for a listing in submission order."""
        with self._lock:
            app_ids = self._listing_applications.get(listing_id, [])
            return [self.applications[aid] for aid in app_ids]

    def get_staff_registrations(self, staff_id: str) -> list[StaffRegistration]:
        """Get all registrations made by a staff member."""
        with self._lock:
            reg_ids = self._staff_registrations.get(staff_id, [])
            return [self.registrations[rid] for rid in reg_ids]

    def get_listing_registrations(self, listing_id: str) -> list[StaffRegistration]:
        """Get all staff registrations for a listing."""
        with self._lock:
            reg_ids = self._listing_registrations.get(listing_id, [])
            return [self.registrations[rid] for rid in reg_ids]

    def get_live_registration(self, staff_id: str, listing_id: str) -> StaffRegistration | None:
        """PENDING or APPROVED registration of ``staff_id`` for ``listing_id``."""
        for reg in self.get_staff_registrations(staff_id):
            if reg.listing_id == listing_id and reg.status in LIVE_REGISTRATION_STATUSES:
                return reg
        return None

    def get_approved_listings(self, staff_id: str) -> list[Listing]:
        """Listings the staff member is approved to handle."""
        return [
            self.listings[reg.listing_id]
            for reg in self.get_staff_registrations(staff_id)
            if reg.status == RegistrationStatus.APPROVED
        ]

    def get_application_withdrawals(self, application_id: str) -> list[WithdrawalRequest]:
        """Get all withdrawal requests for an application."""
        with self._lock:
            request_ids = self._application_withdrawals.get(application_id, [])
            return [self.withdrawals[rid] for rid in request_ids]

    def get_pending_withdrawal(self, application_id: str) -> WithdrawalRequest | None:
        for request in self.get_application_withdrawals(application_id):
            if request.status == WithdrawalStatus.PENDING:
                return request
        return None

    def get_manager_listings(self, manager_id: str) -> list[Listing]:
        """Get all listings a manager is in charge of."""
        with self._lock:
            listing_ids = self._manager_listings.get(manager_id, [])
            return [self.listings[lid] for lid in listing_ids]

    def get_listing_enquiries(self, listing_id: str) -> list[Enquiry]:
        with self._lock:
            enquiry_ids = self._listing_enquiries.get(listing_id, [])
            return [self.enquiries[eid] for eid in enquiry_ids]

    def get_requester_enquiries(self, requester_id: str) -> list[Enquiry]:
        with self._lock:
            enquiry_ids = self._requester_enquiries.get(requester_id, [])
            return [self.enquiries[eid] for eid in enquiry_ids]

    def snapshot(self, collection: str) -> list:
        """Copy of a collection's values, safe to hand to a repository."""
        with self._lock:
            return list(getattr(self, collection).values())

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "listings": len(self.listings),
            "requesters": len(self.requesters),
            "staff": len(self.staff),
            "managers": len(self.managers),
            "applications": len(self.applications),
            "registrations": len(self.registrations),
            "withdrawals": len(self.withdrawals),
            "enquiries": len(self.enquiries),
        }

    # Loading

    @classmethod
    def load(cls, repository: Repository) -> HousingDataStore:
        """Hydrate a store from a repository in two phases.

        Identities and listings are loaded first; lifecycle records are then
        resolved against them by key. A dangling reference raises
        ``ReferentialIntegrityError``.
        """
        store = cls()

        for manager in repository.load_managers():
            store.add_manager(manager)
        for requester in repository.load_requesters():
            store.add_requester(requester)
        for staff in repository.load_staff():
            store.add_staff(staff)
        for listing in repository.load_listings():
            store.add_listing(listing)

        for application in repository.load_applications():
            store.add_application(application)
        for registration in repository.load_registrations():
            store.add_registration(registration)
        for request in repository.load_withdrawals():
            store.add_withdrawal(request)
        for enquiry in repository.load_enquiries():
            store.add_enquiry(enquiry)

        store._reconcile_assignments()
        logger.info("Store loaded: %s", store.summary())
        return store

    def _reconcile_assignments(self) -> None:
        """Rebuild staff/listing back-references from APPROVED registrations."""
        for staff in self.staff.values():
            staff.handling.clear()
        for registration in self.registrations.values():
            if registration.status != RegistrationStatus.APPROVED:
                continue
            listing = self.listings[registration.listing_id]
            self.staff[registration.staff_id].handling.add(listing.listing_id)
            if registration.staff_id not in listing.assigned_staff:
                logger.warning(
                    "Listing %s missing approved staff %s, restoring assignment",
                    listing.listing_id,
                    registration.staff_id,
                )
                listing.assigned_staff.add(registration.staff_id)
