"""Application lifecycle: PENDING -> SUCCESSFUL -> BOOKED, with terminal exits."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from bto_alloc.engine.eligibility import EligibilityRules, evaluate
from bto_alloc.exceptions import AllocationError, ErrorCode, InvalidEntityStateError
from bto_alloc.models.housing import (
    Application,
    ApplicationStatus,
    FlatCategory,
    Listing,
    Requester,
    Unit,
)
from bto_alloc.store.housing import HousingDataStore

logger = logging.getLogger(__name__)

# Legal transitions; anything else is a programming error
TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset(
        {ApplicationStatus.SUCCESSFUL, ApplicationStatus.UNSUCCESSFUL, ApplicationStatus.WITHDRAWN}
    ),
    ApplicationStatus.SUCCESSFUL: frozenset({ApplicationStatus.BOOKED, ApplicationStatus.WITHDRAWN}),
    ApplicationStatus.BOOKED: frozenset({ApplicationStatus.WITHDRAWN}),
    ApplicationStatus.UNSUCCESSFUL: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
}


class ApplicationStateMachine:
    """Owns every application status change and the ledger effects that go with it.

    Parameters
    ----------
    store : HousingDataStore
        Authoritative collections.
    rules : EligibilityRules | None
        Age thresholds for submission.
    clock : Callable[[], datetime]
        Source of "now" for timestamps and window checks.
    """

    def __init__(
        self,
        store: HousingDataStore,
        rules: EligibilityRules | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.rules = rules or EligibilityRules()
        self.clock = clock

    def is_blocked(self, identity_id: str, listing: Listing) -> bool:
        """True if ``identity_id`` handles, or asked to handle, ``listing`` as staff."""
        if identity_id in listing.assigned_staff:
            return True
        if identity_id not in self.store.staff:
            return False
        return self.store.get_live_registration(identity_id, listing.listing_id) is not None

    def submit(self, requester: Requester, listing: Listing, category: FlatCategory) -> Application:
        """Create a PENDING application. No inventory is reserved yet."""
        if self.store.get_active_applications(requester.requester_id):
            raise AllocationError(
                ErrorCode.ALREADY_ACTIVE,
                f"Requester {requester.requester_id} already has an active application",
            )

        now = self.clock()
        outcome = evaluate(
            requester,
            listing,
            now.date(),
            self.rules,
            blocked=self.is_blocked(requester.requester_id, listing),
        )
        outcome.require(category)

        application = Application(
            application_id=f"app-{uuid.uuid4().hex[:12]}",
            requester_id=requester.requester_id,
            listing_id=listing.listing_id,
            category=category,
            status=ApplicationStatus.PENDING,
            submitted_at=now,
            status_changed_at=now,
        )
        self.store.add_application(application)
        return application

    def decide(
        self,
        application: Application,
        approve: bool,
        category: FlatCategory | None = None,
    ) -> ErrorCode | None:
        """Approve or reject a PENDING application.

        An approval that finds no stock is downgraded to UNSUCCESSFUL rather
        than failing; the returned code (``NO_AVAILABILITY``) records why.

        Returns
        -------
        ErrorCode | None
            Reason for a downgrade, or None.
        """
        if application.status != ApplicationStatus.PENDING:
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Application {application.application_id} is {application.status.value}",
            )
        if category is not None and category != application.category:
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Application {application.application_id} was made for "
                f"{application.category.value}, not {category.value}",
            )

        if not approve:
            self._transition(application, ApplicationStatus.UNSUCCESSFUL)
            return None

        listing = self.store.get_listing(application.listing_id)
        try:
            unit = listing.inventory.reserve(application.category)
        except AllocationError as exc:
            logger.info(
                "Approval of %s downgraded: %s", application.application_id, exc.message
            )
            self._transition(application, ApplicationStatus.UNSUCCESSFUL)
            return exc.code

        application.reserved_unit = unit
        self._transition(application, ApplicationStatus.SUCCESSFUL)
        return None

    def book(self, application: Application, unit: Unit) -> Unit:
        """Bind the reserved unit and move to BOOKED."""
        if application.status != ApplicationStatus.SUCCESSFUL or application.booked_unit is not None:
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Application {application.application_id} cannot be booked "
                f"from {application.status.value}",
            )

        reserved = application.reserved_unit
        if (
            reserved is None
            or unit.unit_id != reserved.unit_id
            or unit.listing_id != application.listing_id
            or unit.category != application.category
            or unit.is_booked
        ):
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Unit {unit.unit_id} is not the unit held for {application.application_id}",
            )

        unit.application_id = application.application_id
        application.booked_unit = unit
        self._transition(application, ApplicationStatus.BOOKED)
        return unit

    def withdraw(self, application: Application) -> None:
        """Release any held unit and move to WITHDRAWN.

        Only the withdrawal workflow calls this, once a manager approved it.
        """
        if not application.is_active:
            raise AllocationError(
                ErrorCode.NOT_WITHDRAWABLE,
                f"Application {application.application_id} is {application.status.value}",
            )

        if application.holds_unit:
            listing = self.store.get_listing(application.listing_id)
            listing.inventory.release(application.category)
            if application.booked_unit is not None:
                application.booked_unit.application_id = None
            application.reserved_unit = None
            application.booked_unit = None

        self._transition(application, ApplicationStatus.WITHDRAWN)

    def _transition(self, application: Application, target: ApplicationStatus) -> None:
        if target not in TRANSITIONS[application.status]:
            raise InvalidEntityStateError(
                f"Illegal transition {application.status.value} -> {target.value} "
                f"for {application.application_id}"
            )
        application.status = target
        application.status_changed_at = self.clock()
