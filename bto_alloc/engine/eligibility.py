"""Eligibility evaluation: which flat categories a requester may apply for."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from bto_alloc.config import EngineConfig
from bto_alloc.exceptions import AllocationError, ErrorCode
from bto_alloc.models.housing.enums import FlatCategory, MaritalStatus
from bto_alloc.models.housing.listing import Listing
from bto_alloc.models.housing.party import Requester


@dataclass(frozen=True)
class EligibilityRules:
    """Age thresholds per marital status."""

    single_min_age: int = 35
    married_min_age: int = 21

    @classmethod
    def from_config(cls, config: EngineConfig) -> EligibilityRules:
        return cls(
            single_min_age=config.single_min_age,
            married_min_age=config.married_min_age,
        )


@dataclass(frozen=True)
class EligibilityOutcome:
    """Allowed categories, or the reason the listing is out of reach."""

    categories: frozenset[FlatCategory]
    reason: ErrorCode | None = None

    @property
    def eligible(self) -> bool:
        return self.reason is None

    def require(self, category: FlatCategory | None = None) -> frozenset[FlatCategory]:
        """Raise the rejection reason, or ``INELIGIBLE`` for a disallowed category."""
        if self.reason is not None:
            raise AllocationError(self.reason)
        if category is not None and category not in self.categories:
            raise AllocationError(
                ErrorCode.INELIGIBLE, f"{category.value} is not open to this requester"
            )
        return self.categories


def categories_for(requester: Requester, rules: EligibilityRules) -> frozenset[FlatCategory]:
    """Categories allowed by age and marital status alone.

    Singles aged ``single_min_age`` and above may take a two-room flat;
    married requesters aged ``married_min_age`` and above may take either.
    """
    if requester.marital_status == MaritalStatus.SINGLE:
        if requester.age >= rules.single_min_age:
            return frozenset({FlatCategory.TWO_ROOM})
    elif requester.marital_status == MaritalStatus.MARRIED:
        if requester.age >= rules.married_min_age:
            return frozenset({FlatCategory.TWO_ROOM, FlatCategory.THREE_ROOM})
    return frozenset()


def evaluate(
    requester: Requester,
    listing: Listing,
    today: date,
    rules: EligibilityRules | None = None,
    *,
    blocked: bool = False,
) -> EligibilityOutcome:
    """Evaluate a requester against a listing.

    Parameters
    ----------
    requester : Requester
        Requester profile (age, marital status).
    listing : Listing
        Listing to evaluate.
    today : date
        Reference date for the application window.
    rules : EligibilityRules | None
        Age thresholds; defaults apply when omitted.
    blocked : bool
        True when the requester already handles (or asked to handle) the
        listing as staff.

    Returns
    -------
    EligibilityOutcome
        Non-empty category set, or a reason among ``HIDDEN``, ``NOT_OPEN``,
        ``ROLE_CONFLICT`` and ``INELIGIBLE``.
    """
    rules = rules or EligibilityRules()

    if not listing.visible:
        return EligibilityOutcome(frozenset(), ErrorCode.HIDDEN)
    if not listing.is_open(today):
        return EligibilityOutcome(frozenset(), ErrorCode.NOT_OPEN)
    if blocked:
        return EligibilityOutcome(frozenset(), ErrorCode.ROLE_CONFLICT)

    categories = categories_for(requester, rules) & listing.inventory.offered_categories()
    if not categories:
        return EligibilityOutcome(frozenset(), ErrorCode.INELIGIBLE)
    return EligibilityOutcome(frozenset(categories))
