"""Application and booking reports for managers.

Reports are plain data; rendering them is up to the presentation layer.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Callable

from bto_alloc.models.housing import (
    Application,
    ApplicationStatus,
    FlatCategory,
    Listing,
    MaritalStatus,
    Report,
    ReportRow,
)
from bto_alloc.store.housing import HousingDataStore

logger = logging.getLogger(__name__)

FILTER_KEYS = ("marital_status", "min_age", "max_age", "status", "category")


class ReportBuilder:
    """Build filtered reports over a listing's applications."""

    def __init__(
        self,
        store: HousingDataStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    def application_report(self, listing: Listing, filters: dict[str, Any] | None = None) -> Report:
        """Every application for the listing that matches ``filters``."""
        applications = self.store.get_listing_applications(listing.listing_id)
        return self._build(listing, "applications", applications, filters or {})

    def booking_report(self, listing: Listing, filters: dict[str, Any] | None = None) -> Report:
        """Booked applications only."""
        applications = [
            app
            for app in self.store.get_listing_applications(listing.listing_id)
            if app.status == ApplicationStatus.BOOKED and app.booked_unit is not None
        ]
        return self._build(listing, "bookings", applications, filters or {})

    def _build(
        self,
        listing: Listing,
        kind: str,
        applications: list[Application],
        filters: dict[str, Any],
    ) -> Report:
        rows = [row for row in (self._row(app) for app in applications) if _matches(row, filters)]
        prefix = "RPT-BOOK" if kind == "bookings" else "RPT-APP"
        return Report(
            report_id=f"{prefix}-{listing.listing_id}-{uuid.uuid4().hex[:6]}",
            listing_id=listing.listing_id,
            kind=kind,
            generated_at=self.clock(),
            criteria={key: filters[key] for key in FILTER_KEYS if key in filters},
            rows=rows,
            by_status=dict(Counter(row.status for row in rows)),
            by_marital_status=dict(Counter(row.marital_status for row in rows)),
            by_category=dict(Counter(row.category for row in rows)),
        )

    def _row(self, application: Application) -> ReportRow:
        requester = self.store.requester_profile(application.requester_id)
        unit = application.booked_unit or application.reserved_unit
        return ReportRow(
            application_id=application.application_id,
            requester_id=requester.requester_id,
            requester_name=requester.name,
            age=requester.age,
            marital_status=requester.marital_status,
            category=application.category,
            status=application.status,
            unit_id=unit.unit_id if unit else None,
        )


def _coerce(enum_cls: type, value: Any) -> Any:
    """Enum member for ``value`` or None when it is not a known value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        logger.debug("Ignoring unknown %s filter value %r", enum_cls.__name__, value)
        return None


def _age_bound(filters: dict[str, Any], key: str) -> int | None:
    if key not in filters:
        return None
    try:
        return int(filters[key])
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric %s filter value %r", key, filters[key])
        return None


def _matches(row: ReportRow, filters: dict[str, Any]) -> bool:
    """Apply report filters; unknown values are ignored, not rejected."""
    if "marital_status" in filters:
        wanted = _coerce(MaritalStatus, filters["marital_status"])
        if wanted is not None and row.marital_status != wanted:
            return False
    if "status" in filters:
        wanted = _coerce(ApplicationStatus, filters["status"])
        if wanted is not None and row.status != wanted:
            return False
    if "category" in filters:
        wanted = _coerce(FlatCategory, filters["category"])
        if wanted is not None and row.category != wanted:
            return False
    min_age = _age_bound(filters, "min_age")
    if min_age is not None and row.age < min_age:
        return False
    max_age = _age_bound(filters, "max_age")
    if max_age is not None and row.age > max_age:
        return False
    return True
