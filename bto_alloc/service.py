"""Allocation service: the single mutation entry point of the engine.

Every public method takes the authenticated ``Actor`` supplied by the identity
collaborator and returns a ``Result``. Business rejections never escape as
exceptions.
"""

from __future__ import annotations

import functools
import logging
import threading
import uuid
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator

from bto_alloc.config import EngineConfig
from bto_alloc.engine.applications import ApplicationStateMachine
from bto_alloc.engine.eligibility import EligibilityRules, evaluate
from bto_alloc.engine.enquiries import EnquiryDesk
from bto_alloc.engine.ledger import InventoryLedger, SlotLedger
from bto_alloc.engine.registrations import StaffRegistrationStateMachine
from bto_alloc.engine.reports import ReportBuilder
from bto_alloc.engine.withdrawals import WithdrawalWorkflow
from bto_alloc.exceptions import (
    AllocationError,
    EntityNotFoundError,
    ErrorCode,
    LedgerInvariantError,
    RepositoryError,
    ResultWarning,
)
from bto_alloc.models.base import Event, Window
from bto_alloc.models.housing import (
    Actor,
    ApplicationStatus,
    Enquiry,
    FlatCategory,
    Listing,
    Manager,
    RegistrationStatus,
    Requester,
    Role,
    Staff,
    WithdrawalStatus,
)
from bto_alloc.repositories.base import EventSink, InMemoryRepository, Repository
from bto_alloc.repositories.serialization import to_dict
from bto_alloc.store.housing import HousingDataStore

logger = logging.getLogger(__name__)

EVENT_SOURCE = "bto-alloc"
SORT_KEYS: dict[str, Callable[[Listing], Any]] = {
    "name": lambda listing: listing.name.lower(),
    "neighborhood": lambda listing: (listing.neighborhood.lower(), listing.name.lower()),
    "open_date": lambda listing: (listing.window.open_date, listing.name.lower()),
    "close_date": lambda listing: (listing.window.close_date, listing.name.lower()),
}
LISTING_FIELDS = ("name", "neighborhood", "units", "window", "staff_slots", "visible")


@dataclass
class Result:
    """Outcome of a service call.

    ``reason`` explains a committed but downgraded decision (an approval
    that found no stock); ``error`` means nothing was committed.
    """

    value: Any = None
    error: ErrorCode | None = None
    message: str = ""
    reason: ErrorCode | None = None
    warnings: list[ResultWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class LockManager:
    """Named re-entrant locks, taken identities first, then listings."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _lock(self, key: str) -> threading.RLock:
        with self._guard:
            return self._locks.setdefault(key, threading.RLock())

    @contextmanager
    def hold(
        self, identities: Iterable[str] = (), listings: Iterable[str] = ()
    ) -> Iterator[None]:
        keys = [f"identity:{i}" for i in sorted(set(identities))]
        keys += [f"listing:{key}" for key in sorted(set(listings))]
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._lock(key))
            yield


def business_operation(method: Callable[..., Result]) -> Callable[..., Result]:
    """Turn engine exceptions raised by ``method`` into error results."""

    @functools.wraps(method)
    def wrapper(self: AllocationService, *args: Any, **kwargs: Any) -> Result:
        try:
            return method(self, *args, **kwargs)
        except AllocationError as exc:
            logger.debug("%s rejected: %s (%s)", method.__name__, exc.code.value, exc.message)
            return Result(error=exc.code, message=exc.message)
        except EntityNotFoundError as exc:
            logger.debug("%s rejected: NOT_FOUND (%s)", method.__name__, exc)
            return Result(error=ErrorCode.NOT_FOUND, message=str(exc))
        except LedgerInvariantError as exc:
            if self.config.strict_invariants:
                raise
            logger.debug("%s rejected: ledger invariant (%s)", method.__name__, exc)
            return Result(error=ErrorCode.INVALID_REQUEST, message=str(exc))

    return wrapper


def _require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        raise AllocationError(
            ErrorCode.UNAUTHORIZED,
            f"{actor.role.value} {actor.identity_id} may not perform this operation",
        )


def _require_manager_of(actor: Actor, listing: Listing) -> None:
    if actor.role != Role.MANAGER or listing.manager_id != actor.identity_id:
        raise AllocationError(
            ErrorCode.UNAUTHORIZED,
            f"{actor.identity_id} is not the manager of listing {listing.listing_id}",
        )


def _category(value: FlatCategory | str) -> FlatCategory:
    try:
        return FlatCategory(value)
    except ValueError:
        raise AllocationError(ErrorCode.INVALID_REQUEST, f"Unknown flat category {value!r}") from None


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _log_context(actor: Actor, event_type: str, listing_id: str | None) -> dict[str, Any]:
    """``extra`` mapping rendered as fields by ``JsonFormatter``."""
    return {"extra": {"event_type": event_type, "listing_id": listing_id, "actor": actor.identity_id}}


class AllocationService:
    """Façade over eligibility, ledgers and the lifecycle state machines.

    Parameters
    ----------
    store : HousingDataStore | None
        Authoritative collections; an empty store when omitted.
    repository : Repository | None
        Persistence collaborator written through after each committed
        mutation.
    events : EventSink | None
        Optional change-log publisher.
    config : EngineConfig | None
        Business rule parameters.
    clock : Callable[[], datetime]
        Source of "now".
    """

    def __init__(
        self,
        store: HousingDataStore | None = None,
        repository: Repository | None = None,
        events: EventSink | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store if store is not None else HousingDataStore()
        self.repository = repository if repository is not None else InMemoryRepository()
        self.events = events
        self.config = config or EngineConfig()
        self.clock = clock
        self.rules = EligibilityRules.from_config(self.config)

        self.applications = ApplicationStateMachine(self.store, self.rules, clock)
        self.registrations = StaffRegistrationStateMachine(self.store, clock)
        self.withdrawals = WithdrawalWorkflow(self.store, self.applications, clock)
        self.enquiry_desk = EnquiryDesk(self.store, clock)
        self.reports = ReportBuilder(self.store, clock)
        self._locks = LockManager()
        self._persist_lock = threading.Lock()

    @classmethod
    def from_repository(
        cls,
        repository: Repository,
        events: EventSink | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> AllocationService:
        """Build a service over a store hydrated from ``repository``."""
        return cls(HousingDataStore.load(repository), repository, events, config, clock)

    # Write-through

    def _commit(
        self,
        actor: Actor,
        event_type: str,
        subject: str,
        listing_id: str | None,
        entity: Any,
        collections: tuple[str, ...],
    ) -> list[ResultWarning]:
        """Save touched collections and publish the change event.

        Snapshots are taken and saved under one service-wide lock so the
        last save of a collection always carries its newest state. Every
        collection is attempted; failures are reported as a single warning
        and in-memory state is never rolled back.
        """
        warnings: list[ResultWarning] = []
        with self._persist_lock:
            for collection in collections:
                try:
                    getattr(self.repository, f"save_{collection}")(self.store.snapshot(collection))
                except RepositoryError as exc:
                    logger.warning("Saving %s failed after %s: %s", collection, event_type, exc)
                    if ResultWarning.PERSISTENCE_FAILED not in warnings:
                        warnings.append(ResultWarning.PERSISTENCE_FAILED)

        if self.events is not None:
            event = Event(
                event_id=str(uuid.uuid4()),
                event_type=event_type,
                event_time=self.clock(),
                source=EVENT_SOURCE,
                subject=subject,
                data=to_dict(entity),
                metadata={"listing_id": listing_id, "actor": actor.identity_id},
            )
            try:
                self.events.publish(event, key=listing_id)
            except RepositoryError as exc:
                logger.warning("Publishing %s failed: %s", event_type, exc)
                if ResultWarning.PERSISTENCE_FAILED not in warnings:
                    warnings.append(ResultWarning.PERSISTENCE_FAILED)
        return warnings

    # Identities

    @business_operation
    def add_requester(self, requester: Requester) -> Result:
        """Enrol a requester supplied by the identity collaborator."""
        with self._locks.hold(identities=[requester.requester_id]):
            if requester.created_at is None:
                requester.created_at = self.clock()
            self.store.add_requester(requester)
            warnings = self._commit(
                Actor(requester.requester_id, Role.REQUESTER),
                "requester.enrolled",
                requester.requester_id,
                None,
                requester,
                ("requesters",),
            )
        return Result(value=requester, warnings=warnings)

    @business_operation
    def add_staff(self, staff: Staff) -> Result:
        with self._locks.hold(identities=[staff.staff_id]):
            if staff.created_at is None:
                staff.created_at = self.clock()
            self.store.add_staff(staff)
            warnings = self._commit(
                Actor(staff.staff_id, Role.STAFF),
                "staff.enrolled",
                staff.staff_id,
                None,
                staff,
                ("staff",),
            )
        return Result(value=staff, warnings=warnings)

    @business_operation
    def add_manager(self, manager: Manager) -> Result:
        with self._locks.hold(identities=[manager.manager_id]):
            if manager.created_at is None:
                manager.created_at = self.clock()
            self.store.add_manager(manager)
            warnings = self._commit(
                Actor(manager.manager_id, Role.MANAGER),
                "manager.enrolled",
                manager.manager_id,
                None,
                manager,
                ("managers",),
            )
        return Result(value=manager, warnings=warnings)

    # Applications

    @business_operation
    def submit(self, actor: Actor, listing_id: str, category: FlatCategory | str) -> Result:
        """Submit an application for ``category`` in ``listing_id``.

        Returns
        -------
        Result
            The PENDING application, or ``ALREADY_ACTIVE``, ``HIDDEN``,
            ``NOT_OPEN``, ``ROLE_CONFLICT`` or ``INELIGIBLE``.
        """
        _require_role(actor, Role.REQUESTER, Role.STAFF)
        category = _category(category)
        requester = self.store.requester_profile(actor.identity_id)
        listing = self.store.get_listing(listing_id)

        with self._locks.hold(identities=[actor.identity_id], listings=[listing_id]):
            application = self.applications.submit(requester, listing, category)
            warnings = self._commit(
                actor,
                "application.submitted",
                application.application_id,
                listing_id,
                application,
                ("applications",),
            )

        logger.info(
            "Application %s submitted by %s for %s (%s)",
            application.application_id,
            actor.identity_id,
            listing_id,
            category.value,
            extra=_log_context(actor, "application.submitted", listing_id),
        )
        return Result(value=application, warnings=warnings)

    @business_operation
    def decide_application(
        self,
        actor: Actor,
        application_id: str,
        approve: bool,
        category: FlatCategory | str | None = None,
    ) -> Result:
        """Approve or reject a PENDING application.

        An approval that finds no stock commits UNSUCCESSFUL and reports
        ``NO_AVAILABILITY`` in ``Result.reason``.
        """
        application = self.store.get_application(application_id)
        listing = self.store.get_listing(application.listing_id)
        _require_manager_of(actor, listing)
        if category is not None:
            category = _category(category)

        with self._locks.hold(listings=[listing.listing_id]):
            reason = self.applications.decide(application, approve, category)
            listing.inventory.check_invariants()
            warnings = self._commit(
                actor,
                "application.decided",
                application_id,
                listing.listing_id,
                application,
                ("applications", "listings"),
            )

        logger.info(
            "Application %s decided by %s: %s",
            application_id,
            actor.identity_id,
            application.status.value,
            extra=_log_context(actor, "application.decided", listing.listing_id),
        )
        return Result(value=application, reason=reason, warnings=warnings)

    @business_operation
    def book(self, actor: Actor, application_id: str) -> Result:
        """Bind the unit reserved at approval time and mark the application BOOKED."""
        application = self.store.get_application(application_id)
        listing = self.store.get_listing(application.listing_id)
        if not (
            (actor.role == Role.STAFF and actor.identity_id in listing.assigned_staff)
            or (actor.role == Role.MANAGER and actor.identity_id == listing.manager_id)
        ):
            raise AllocationError(
                ErrorCode.UNAUTHORIZED,
                f"{actor.identity_id} does not handle listing {listing.listing_id}",
            )

        with self._locks.hold(listings=[listing.listing_id]):
            if application.reserved_unit is None:
                raise AllocationError(
                    ErrorCode.NOT_APPROVABLE,
                    f"Application {application_id} holds no unit",
                )
            unit = self.applications.book(application, application.reserved_unit)
            warnings = self._commit(
                actor,
                "application.booked",
                application_id,
                listing.listing_id,
                application,
                ("applications",),
            )

        logger.info(
            "Application %s booked unit %s",
            application_id,
            unit.unit_id,
            extra=_log_context(actor, "application.booked", listing.listing_id),
        )
        return Result(value=unit, warnings=warnings)

    # Withdrawals

    @business_operation
    def request_withdrawal(self, actor: Actor, application_id: str, reason: str = "") -> Result:
        _require_role(actor, Role.REQUESTER, Role.STAFF)
        application = self.store.get_application(application_id)
        if application.requester_id != actor.identity_id:
            raise AllocationError(
                ErrorCode.UNAUTHORIZED,
                f"Application {application_id} does not belong to {actor.identity_id}",
            )

        with self._locks.hold(listings=[application.listing_id]):
            request = self.withdrawals.request(application, reason)
            warnings = self._commit(
                actor,
                "withdrawal.requested",
                request.request_id,
                application.listing_id,
                request,
                ("withdrawals",),
            )

        logger.info(
            "Withdrawal %s requested for %s",
            request.request_id,
            application_id,
            extra=_log_context(actor, "withdrawal.requested", application.listing_id),
        )
        return Result(value=request, warnings=warnings)

    @business_operation
    def decide_withdrawal(self, actor: Actor, request_id: str, approve: bool) -> Result:
        """Approve (release held unit, WITHDRAWN) or reject a withdrawal request."""
        request = self.store.get_withdrawal(request_id)
        application = self.store.get_application(request.application_id)
        listing = self.store.get_listing(application.listing_id)
        _require_manager_of(actor, listing)

        with self._locks.hold(listings=[listing.listing_id]):
            self.withdrawals.decide(request, approve, actor.identity_id)
            listing.inventory.check_invariants()
            warnings = self._commit(
                actor,
                "withdrawal.decided",
                request_id,
                listing.listing_id,
                request,
                ("withdrawals", "applications", "listings"),
            )

        logger.info(
            "Withdrawal %s decided by %s: %s",
            request_id,
            actor.identity_id,
            request.status.value,
            extra=_log_context(actor, "withdrawal.decided", listing.listing_id),
        )
        return Result(value=request, warnings=warnings)

    # Staff registrations

    @business_operation
    def register_staff(self, actor: Actor, listing_id: str) -> Result:
        _require_role(actor, Role.STAFF)
        staff = self.store.get_staff(actor.identity_id)
        listing = self.store.get_listing(listing_id)

        with self._locks.hold(identities=[staff.staff_id], listings=[listing_id]):
            registration = self.registrations.register(staff, listing)
            warnings = self._commit(
                actor,
                "registration.requested",
                registration.registration_id,
                listing_id,
                registration,
                ("registrations",),
            )

        logger.info(
            "Registration %s: staff %s for %s",
            registration.registration_id,
            staff.staff_id,
            listing_id,
            extra=_log_context(actor, "registration.requested", listing_id),
        )
        return Result(value=registration, warnings=warnings)

    @business_operation
    def decide_registration(self, actor: Actor, registration_id: str, approve: bool) -> Result:
        """Approve or reject a PENDING staff registration.

        ``NO_SLOTS`` or ``WINDOW_CONFLICT`` on approval leave the
        registration PENDING.
        """
        registration = self.store.get_registration(registration_id)
        listing = self.store.get_listing(registration.listing_id)
        _require_manager_of(actor, listing)

        with self._locks.hold(identities=[registration.staff_id], listings=[listing.listing_id]):
            self.registrations.decide(registration, approve, actor.identity_id)
            listing.staff_slots.check_invariants()
            warnings = self._commit(
                actor,
                "registration.decided",
                registration_id,
                listing.listing_id,
                registration,
                ("registrations", "listings", "staff"),
            )

        logger.info(
            "Registration %s decided by %s: %s",
            registration_id,
            actor.identity_id,
            registration.status.value,
            extra=_log_context(actor, "registration.decided", listing.listing_id),
        )
        return Result(value=registration, warnings=warnings)

    # Listing administration

    def _manager_conflict(self, manager_id: str, window: Window, exclude: str | None = None) -> Listing | None:
        for other in self.store.get_manager_listings(manager_id):
            if other.listing_id != exclude and other.window.overlaps(window):
                return other
        return None

    def _check_slots(self, staff_slots: int) -> None:
        if not _is_count(staff_slots):
            raise AllocationError(
                ErrorCode.INVALID_REQUEST, f"Staff slots must be an integer, got {staff_slots!r}"
            )
        if not 1 <= staff_slots <= self.config.max_staff_slots:
            raise AllocationError(
                ErrorCode.INVALID_REQUEST,
                f"Staff slots must be between 1 and {self.config.max_staff_slots}, got {staff_slots}",
            )

    @staticmethod
    def _check_units(units: dict[FlatCategory | str, int]) -> dict[FlatCategory, int]:
        if not isinstance(units, dict):
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Unit totals must map categories to counts")
        totals = {_category(category): total for category, total in units.items()}
        for category, total in totals.items():
            if not _is_count(total):
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST,
                    f"Unit count for {category.value} must be an integer, got {total!r}",
                )
            if total < 0:
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST, f"Negative unit count for {category.value}"
                )
        return totals

    @business_operation
    def create_listing(
        self,
        actor: Actor,
        name: str,
        neighborhood: str,
        units: dict[FlatCategory | str, int],
        window: Window,
        staff_slots: int,
        visible: bool = True,
    ) -> Result:
        """Create a listing managed by ``actor``.

        A manager may not run two listings with overlapping windows.
        """
        _require_role(actor, Role.MANAGER)
        self.store.get_manager(actor.identity_id)
        if not name.strip():
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Listing name is empty")
        if not window.is_valid:
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Window opens after it closes")
        self._check_slots(staff_slots)
        totals = self._check_units(units)

        with self._locks.hold(identities=[actor.identity_id]):
            conflict = self._manager_conflict(actor.identity_id, window)
            if conflict is not None:
                raise AllocationError(
                    ErrorCode.WINDOW_CONFLICT,
                    f"Manager {actor.identity_id} already runs {conflict.listing_id} in an overlapping window",
                )

            listing_id = f"lst-{uuid.uuid4().hex[:12]}"
            listing = Listing(
                listing_id=listing_id,
                name=name.strip(),
                neighborhood=neighborhood.strip(),
                window=window,
                manager_id=actor.identity_id,
                inventory=InventoryLedger.from_totals(listing_id, totals),
                staff_slots=SlotLedger.with_total(listing_id, staff_slots),
                visible=visible,
                created_at=self.clock(),
            )
            self.store.add_listing(listing)
            warnings = self._commit(
                actor, "listing.created", listing_id, listing_id, listing, ("listings",)
            )

        logger.info(
            "Listing %s (%s) created by %s",
            listing_id,
            listing.name,
            actor.identity_id,
            extra=_log_context(actor, "listing.created", listing_id),
        )
        return Result(value=listing, warnings=warnings)

    @business_operation
    def update_listing(self, actor: Actor, listing_id: str, **changes: Any) -> Result:
        """Edit a listing's name, neighbourhood, unit totals, window, slots or visibility.

        All changes are validated before any is applied.
        """
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        unknown = set(changes) - set(LISTING_FIELDS)
        if unknown:
            raise AllocationError(
                ErrorCode.INVALID_REQUEST, f"Unknown listing fields: {', '.join(sorted(unknown))}"
            )

        # Window checks need every assigned staff member locked. The set only
        # changes when a registration decision commits, so the retry ends once
        # no decision lands between reading it and taking the locks.
        while True:
            staff_ids = set(listing.assigned_staff)
            with self._locks.hold(identities=[actor.identity_id, *staff_ids], listings=[listing_id]):
                if listing.assigned_staff != staff_ids:
                    continue
                self._apply_listing_changes(listing, changes)
                warnings = self._commit(
                    actor, "listing.updated", listing_id, listing_id, listing, ("listings",)
                )
                break

        logger.info(
            "Listing %s updated by %s: %s",
            listing_id,
            actor.identity_id,
            sorted(changes),
            extra=_log_context(actor, "listing.updated", listing_id),
        )
        return Result(value=listing, warnings=warnings)

    def _apply_listing_changes(self, listing: Listing, changes: dict[str, Any]) -> None:
        if "name" in changes and not str(changes["name"]).strip():
            raise AllocationError(ErrorCode.INVALID_REQUEST, "Listing name is empty")

        totals = self._check_units(changes.get("units", {}))
        for category, total in totals.items():
            reserved = listing.inventory.total(category) - listing.inventory.available(category)
            if total < reserved:
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST,
                    f"{category.value} total {total} is below {reserved} reserved units",
                )

        if "staff_slots" in changes:
            self._check_slots(changes["staff_slots"])
            if changes["staff_slots"] < listing.staff_slots.used:
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST,
                    f"Listing {listing.listing_id} already has {listing.staff_slots.used} staff assigned",
                )

        window = changes.get("window")
        if window is not None:
            if not window.is_valid:
                raise AllocationError(ErrorCode.INVALID_REQUEST, "Window opens after it closes")
            conflict = self._manager_conflict(listing.manager_id, window, exclude=listing.listing_id)
            if conflict is not None:
                raise AllocationError(
                    ErrorCode.WINDOW_CONFLICT,
                    f"Manager {listing.manager_id} already runs {conflict.listing_id} in an overlapping window",
                )
            for staff_id in listing.assigned_staff:
                for other in self.store.get_approved_listings(staff_id):
                    if other.listing_id != listing.listing_id and other.window.overlaps(window):
                        raise AllocationError(
                            ErrorCode.WINDOW_CONFLICT,
                            f"Staff {staff_id} also handles {other.listing_id} in an overlapping window",
                        )

        if "name" in changes:
            listing.name = str(changes["name"]).strip()
        if "neighborhood" in changes:
            listing.neighborhood = str(changes["neighborhood"]).strip()
        for category, total in totals.items():
            listing.inventory.resize(category, total)
        if "staff_slots" in changes:
            listing.staff_slots.resize(changes["staff_slots"])
        if window is not None:
            listing.window = window
        if "visible" in changes:
            listing.visible = bool(changes["visible"])

    @business_operation
    def set_visibility(self, actor: Actor, listing_id: str, visible: bool) -> Result:
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        with self._locks.hold(listings=[listing_id]):
            listing.visible = visible
            warnings = self._commit(
                actor, "listing.visibility_changed", listing_id, listing_id, listing, ("listings",)
            )
        logger.info(
            "Listing %s visibility set to %s",
            listing_id,
            visible,
            extra=_log_context(actor, "listing.visibility_changed", listing_id),
        )
        return Result(value=listing, warnings=warnings)

    @business_operation
    def delete_listing(self, actor: Actor, listing_id: str) -> Result:
        """Delete a listing that has no active applications and no assigned staff."""
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)

        with self._locks.hold(identities=[actor.identity_id], listings=[listing_id]):
            if any(app.is_active for app in self.store.get_listing_applications(listing_id)):
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST, f"Listing {listing_id} has active applications"
                )
            if listing.assigned_staff:
                raise AllocationError(
                    ErrorCode.INVALID_REQUEST, f"Listing {listing_id} has assigned staff"
                )
            self.store.remove_listing(listing_id)
            warnings = self._commit(
                actor,
                "listing.deleted",
                listing_id,
                listing_id,
                {"listing_id": listing_id},
                ("listings", "applications", "registrations", "withdrawals", "enquiries"),
            )

        logger.info(
            "Listing %s deleted by %s",
            listing_id,
            actor.identity_id,
            extra=_log_context(actor, "listing.deleted", listing_id),
        )
        return Result(value=listing, warnings=warnings)

    # Enquiries

    @business_operation
    def submit_enquiry(self, actor: Actor, listing_id: str, content: str) -> Result:
        _require_role(actor, Role.REQUESTER, Role.STAFF)
        requester = self.store.requester_profile(actor.identity_id)
        listing = self.store.get_listing(listing_id)
        evaluate(
            requester,
            listing,
            self.clock().date(),
            self.rules,
            blocked=self.applications.is_blocked(actor.identity_id, listing),
        ).require()

        with self._locks.hold(listings=[listing_id]):
            enquiry = self.enquiry_desk.submit(requester, listing, content)
            warnings = self._commit(
                actor, "enquiry.submitted", enquiry.enquiry_id, listing_id, enquiry, ("enquiries",)
            )
        logger.info(
            "Enquiry %s submitted by %s",
            enquiry.enquiry_id,
            actor.identity_id,
            extra=_log_context(actor, "enquiry.submitted", listing_id),
        )
        return Result(value=enquiry, warnings=warnings)

    def _own_enquiry(self, actor: Actor, enquiry_id: str) -> Enquiry:
        enquiry = self.store.get_enquiry(enquiry_id)
        if enquiry.requester_id != actor.identity_id:
            raise AllocationError(
                ErrorCode.UNAUTHORIZED, f"Enquiry {enquiry_id} does not belong to {actor.identity_id}"
            )
        return enquiry

    @business_operation
    def edit_enquiry(self, actor: Actor, enquiry_id: str, content: str) -> Result:
        enquiry = self._own_enquiry(actor, enquiry_id)
        with self._locks.hold(listings=[enquiry.listing_id]):
            self.enquiry_desk.edit(enquiry, content)
            warnings = self._commit(
                actor, "enquiry.edited", enquiry_id, enquiry.listing_id, enquiry, ("enquiries",)
            )
        return Result(value=enquiry, warnings=warnings)

    @business_operation
    def delete_enquiry(self, actor: Actor, enquiry_id: str) -> Result:
        enquiry = self._own_enquiry(actor, enquiry_id)
        with self._locks.hold(listings=[enquiry.listing_id]):
            self.enquiry_desk.delete(enquiry)
            warnings = self._commit(
                actor, "enquiry.deleted", enquiry_id, enquiry.listing_id, enquiry, ("enquiries",)
            )
        return Result(value=enquiry, warnings=warnings)

    @business_operation
    def reply_enquiry(self, actor: Actor, enquiry_id: str, text: str) -> Result:
        """Answer an enquiry as the listing's manager or one of its assigned staff."""
        enquiry = self.store.get_enquiry(enquiry_id)
        listing = self.store.get_listing(enquiry.listing_id)
        if not (
            (actor.role == Role.MANAGER and actor.identity_id == listing.manager_id)
            or (actor.role == Role.STAFF and actor.identity_id in listing.assigned_staff)
        ):
            raise AllocationError(
                ErrorCode.UNAUTHORIZED,
                f"{actor.identity_id} cannot answer enquiries for {listing.listing_id}",
            )

        with self._locks.hold(listings=[listing.listing_id]):
            reply = self.enquiry_desk.reply(enquiry, actor.identity_id, actor.role, text)
            warnings = self._commit(
                actor, "enquiry.replied", enquiry_id, listing.listing_id, enquiry, ("enquiries",)
            )
        logger.info(
            "Enquiry %s answered by %s",
            enquiry_id,
            actor.identity_id,
            extra=_log_context(actor, "enquiry.replied", listing.listing_id),
        )
        return Result(value=reply, warnings=warnings)

    # Reports

    @business_operation
    def application_report(
        self, actor: Actor, listing_id: str, filters: dict[str, Any] | None = None
    ) -> Result:
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        return Result(value=self.reports.application_report(listing, filters))

    @business_operation
    def booking_report(
        self, actor: Actor, listing_id: str, filters: dict[str, Any] | None = None
    ) -> Result:
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        return Result(value=self.reports.booking_report(listing, filters))

    # Queries (lock-free; they return copies of lists)

    @business_operation
    def discover_listings(
        self,
        actor: Actor,
        neighborhood: str | None = None,
        category: FlatCategory | str | None = None,
        sort_by: str = "name",
    ) -> Result:
        """Listings visible to ``actor``.

        Requesters see visible, open listings they are eligible for and not
        blocked from. Staff additionally see the listings they handle, even
        hidden ones. Managers see everything.
        """
        if sort_by not in SORT_KEYS:
            raise AllocationError(ErrorCode.INVALID_REQUEST, f"Cannot sort listings by {sort_by!r}")
        wanted = _category(category) if category is not None else None
        listings = list(self.store.snapshot("listings"))

        if actor.role == Role.MANAGER:
            found = [
                listing
                for listing in listings
                if wanted is None or listing.inventory.total(wanted) > 0
            ]
        else:
            requester = self.store.requester_profile(actor.identity_id)
            today = self.clock().date()
            found = []
            for listing in listings:
                if actor.role == Role.STAFF and actor.identity_id in listing.assigned_staff:
                    if wanted is None or listing.inventory.total(wanted) > 0:
                        found.append(listing)
                    continue
                outcome = evaluate(
                    requester,
                    listing,
                    today,
                    self.rules,
                    blocked=self.applications.is_blocked(actor.identity_id, listing),
                )
                if outcome.eligible and (wanted is None or wanted in outcome.categories):
                    found.append(listing)

        if neighborhood is not None:
            wanted_area = neighborhood.strip().lower()
            found = [listing for listing in found if listing.neighborhood.lower() == wanted_area]
        return Result(value=sorted(found, key=SORT_KEYS[sort_by]))

    @business_operation
    def get_listing(self, actor: Actor, listing_id: str) -> Result:
        listing = self.store.get_listing(listing_id)
        if (
            actor.role == Role.REQUESTER
            or (actor.role == Role.STAFF and actor.identity_id not in listing.assigned_staff)
        ) and not listing.visible:
            raise AllocationError(ErrorCode.HIDDEN, f"Listing {listing_id} is hidden")
        return Result(value=listing)

    @business_operation
    def applications_for(self, actor: Actor) -> Result:
        return Result(value=self.store.get_requester_applications(actor.identity_id))

    @business_operation
    def pending_applications(self, actor: Actor, listing_id: str) -> Result:
        """PENDING applications of a listing, oldest submission first."""
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        pending = [
            app
            for app in self.store.get_listing_applications(listing_id)
            if app.status == ApplicationStatus.PENDING
        ]
        return Result(value=sorted(pending, key=lambda app: app.submitted_at))

    @business_operation
    def pending_registrations(self, actor: Actor, listing_id: str) -> Result:
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        pending = [
            reg
            for reg in self.store.get_listing_registrations(listing_id)
            if reg.status == RegistrationStatus.PENDING
        ]
        return Result(value=sorted(pending, key=lambda reg: reg.requested_at))

    @business_operation
    def pending_withdrawals(self, actor: Actor, listing_id: str) -> Result:
        listing = self.store.get_listing(listing_id)
        _require_manager_of(actor, listing)
        pending = [
            request
            for app in self.store.get_listing_applications(listing_id)
            for request in self.store.get_application_withdrawals(app.application_id)
            if request.status == WithdrawalStatus.PENDING
        ]
        return Result(value=sorted(pending, key=lambda request: request.requested_at))

    @business_operation
    def registrations_for(self, actor: Actor) -> Result:
        _require_role(actor, Role.STAFF)
        return Result(value=self.store.get_staff_registrations(actor.identity_id))

    @business_operation
    def withdrawals_for(self, actor: Actor) -> Result:
        return Result(
            value=[
                request
                for app in self.store.get_requester_applications(actor.identity_id)
                for request in self.store.get_application_withdrawals(app.application_id)
            ]
        )

    @business_operation
    def enquiries_for_listing(self, actor: Actor, listing_id: str) -> Result:
        """All enquiries on a listing, for any manager or the listing's staff."""
        listing = self.store.get_listing(listing_id)
        if not (
            actor.role == Role.MANAGER
            or (actor.role == Role.STAFF and actor.identity_id in listing.assigned_staff)
        ):
            raise AllocationError(
                ErrorCode.UNAUTHORIZED, f"{actor.identity_id} cannot view enquiries for {listing_id}"
            )
        return Result(value=self.store.get_listing_enquiries(listing_id))

    @business_operation
    def enquiries_for(self, actor: Actor) -> Result:
        return Result(value=self.store.get_requester_enquiries(actor.identity_id))
