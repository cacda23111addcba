"""Launch exercise scenario: a full allocation round driven through the façade."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Callable

from bto_alloc.config import EngineConfig
from bto_alloc.generators import (
    ListingGenerator,
    ManagerGenerator,
    RequesterGenerator,
    StaffGenerator,
)
from bto_alloc.models.housing import (
    Actor,
    ApplicationStatus,
    FlatCategory,
    MaritalStatus,
    Role,
)
from bto_alloc.repositories.base import EventSink, InMemoryRepository, Repository
from bto_alloc.service import AllocationService

logger = logging.getLogger(__name__)


class LaunchExerciseScenario:
    """Run one launch of BTO listings end to end.

    This scenario:
    - enrols managers, staff and requesters
    - has each manager open listings with back-to-back windows
    - has staff register for listings and managers decide them
    - has requesters apply to a listing they can discover
    - decides applications in submission order, books and withdraws some
    - files a few enquiries and answers part of them
    """

    def __init__(
        self,
        num_managers: int = 2,
        listings_per_manager: int = 2,
        num_staff: int = 6,
        num_requesters: int = 40,
        approval_rate: float = 0.85,
        booking_rate: float = 0.6,
        withdrawal_rate: float = 0.1,
        enquiry_rate: float = 0.2,
        seed: int | None = None,
        *,
        config: EngineConfig | None = None,
        repository: Repository | None = None,
        events: EventSink | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize launch exercise scenario.

        Parameters
        ----------
        num_managers : int
            Number of managers, each running ``listings_per_manager`` listings.
        listings_per_manager : int
            Listings per manager; their windows never overlap.
        num_staff : int
            Number of staff members.
        num_requesters : int
            Number of applicants.
        approval_rate : float
            Share of applications and registrations managers approve.
        booking_rate : float
            Share of successful applications that get booked.
        withdrawal_rate : float
            Share of active applications withdrawn at the end.
        enquiry_rate : float
            Share of requesters that file an enquiry.
        seed : int | None
            Random seed for reproducibility.
        config : EngineConfig | None
            Engine rules.
        repository : Repository | None
            Persistence collaborator (in-memory when omitted).
        events : EventSink | None
            Optional change-log sink.
        clock : Callable[[], datetime]
            Source of "now" shared with the service.
        """
        self.num_managers = num_managers
        self.listings_per_manager = listings_per_manager
        self.num_staff = num_staff
        self.num_requesters = num_requesters
        self.approval_rate = approval_rate
        self.booking_rate = booking_rate
        self.withdrawal_rate = withdrawal_rate
        self.enquiry_rate = enquiry_rate
        self.seed = seed
        self.clock = clock

        self.rng = random.Random(seed)
        self.config = config or EngineConfig()
        self.service = AllocationService(
            repository=repository if repository is not None else InMemoryRepository(),
            events=events,
            config=self.config,
            clock=clock,
        )
        self._manager_gen = ManagerGenerator(seed=seed)
        self._staff_gen = StaffGenerator(seed=None if seed is None else seed + 1)
        self._requester_gen = RequesterGenerator(seed=None if seed is None else seed + 2)
        self._listing_gen = ListingGenerator(seed=seed)

    def generate(self) -> AllocationService:
        """Run the scenario.

        Returns
        -------
        AllocationService
            Service holding the resulting state.
        """
        logger.info(
            "Starting launch exercise: %d managers, %d staff, %d requesters",
            self.num_managers,
            self.num_staff,
            self.num_requesters,
        )

        self._enrol()
        self._open_listings()
        self._register_staff()
        self._submit_applications()
        self._decide_applications()
        self._book()
        self._withdraw()
        self._enquire()

        logger.info("Launch exercise complete: %s", self.service.store.summary())
        return self.service

    def _enrol(self) -> None:
        for manager in self._manager_gen.generate_batch(self.num_managers):
            self.service.add_manager(manager)
        for staff in self._staff_gen.generate_batch(self.num_staff):
            self.service.add_staff(staff)
        for requester in self._requester_gen.generate_batch(self.num_requesters):
            self.service.add_requester(requester)

    def _open_listings(self) -> None:
        today = self.clock().date()
        for manager_id in list(self.service.store.managers):
            actor = Actor(manager_id, Role.MANAGER)
            start = today - timedelta(days=self.rng.randint(0, 20))
            for draft in self._listing_gen.generate_series(start, self.listings_per_manager):
                result = self.service.create_listing(
                    actor,
                    draft.name,
                    draft.neighborhood,
                    draft.units,
                    draft.window,
                    min(draft.staff_slots, self.config.max_staff_slots),
                    draft.visible,
                )
                if not result.ok:
                    logger.warning("Listing %s not created: %s", draft.name, result.error.value)
        logger.info("Opened %d listings", len(self.service.store.listings))

    def _register_staff(self) -> None:
        listings = list(self.service.store.listings.values())
        for staff_id in list(self.service.store.staff):
            actor = Actor(staff_id, Role.STAFF)
            for listing in self.rng.sample(listings, k=min(2, len(listings))):
                registered = self.service.register_staff(actor, listing.listing_id)
                if not registered.ok:
                    continue
                manager = Actor(listing.manager_id, Role.MANAGER)
                self.service.decide_registration(
                    manager,
                    registered.value.registration_id,
                    self.rng.random() < self.approval_rate,
                )

    def _submit_applications(self) -> None:
        submitted = 0
        for requester in list(self.service.store.requesters.values()):
            actor = Actor(requester.requester_id, Role.REQUESTER)
            preferred = (
                [FlatCategory.THREE_ROOM, FlatCategory.TWO_ROOM]
                if requester.marital_status == MaritalStatus.MARRIED
                else [FlatCategory.TWO_ROOM]
            )
            for category in preferred:
                found = self.service.discover_listings(actor, category=category)
                if found.ok and found.value:
                    listing = self.rng.choice(found.value)
                    if self.service.submit(actor, listing.listing_id, category).ok:
                        submitted += 1
                    break
        logger.info("Submitted %d applications", submitted)

    def _decide_applications(self) -> None:
        for listing in list(self.service.store.listings.values()):
            manager = Actor(listing.manager_id, Role.MANAGER)
            for application in self.service.pending_applications(manager, listing.listing_id).value:
                result = self.service.decide_application(
                    manager,
                    application.application_id,
                    self.rng.random() < self.approval_rate,
                )
                if result.reason is not None:
                    logger.info(
                        "Application %s downgraded: %s",
                        application.application_id,
                        result.reason.value,
                    )

    def _book(self) -> None:
        for application in list(self.service.store.applications.values()):
            if application.status != ApplicationStatus.SUCCESSFUL:
                continue
            if self.rng.random() >= self.booking_rate:
                continue
            listing = self.service.store.get_listing(application.listing_id)
            if listing.assigned_staff:
                actor = Actor(self.rng.choice(sorted(listing.assigned_staff)), Role.STAFF)
            else:
                actor = Actor(listing.manager_id, Role.MANAGER)
            self.service.book(actor, application.application_id)

    def _withdraw(self) -> None:
        for application in list(self.service.store.applications.values()):
            if not application.is_active or self.rng.random() >= self.withdrawal_rate:
                continue
            requester = Actor(application.requester_id, Role.REQUESTER)
            requested = self.service.request_withdrawal(requester, application.application_id, "Change of plans")
            if requested.ok:
                listing = self.service.store.get_listing(application.listing_id)
                self.service.decide_withdrawal(
                    Actor(listing.manager_id, Role.MANAGER), requested.value.request_id, True
                )

    def _enquire(self) -> None:
        for requester in list(self.service.store.requesters.values()):
            if self.rng.random() >= self.enquiry_rate:
                continue
            actor = Actor(requester.requester_id, Role.REQUESTER)
            found = self.service.discover_listings(actor)
            if not found.ok or not found.value:
                continue
            listing = self.rng.choice(found.value)
            enquiry = self.service.submit_enquiry(
                actor, listing.listing_id, f"When will the {listing.name} balloting results be out?"
            )
            if enquiry.ok and self.rng.random() < 0.5:
                self.service.reply_enquiry(
                    Actor(listing.manager_id, Role.MANAGER),
                    enquiry.value.enquiry_id,
                    "Results are released within four weeks of the window closing.",
                )
