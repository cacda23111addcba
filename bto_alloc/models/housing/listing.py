"""Listing (BTO project) model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from bto_alloc.models.base import Window

if TYPE_CHECKING:
    from bto_alloc.engine.ledger import InventoryLedger, SlotLedger


@dataclass
class Listing:
    """A housing project accepting applications.

    The listing owns both of its ledgers; nothing else holds unit or slot
    counts.
    """

    listing_id: str
    name: str
    neighborhood: str
    window: Window
    manager_id: str
    inventory: InventoryLedger
    staff_slots: SlotLedger
    visible: bool = True  # gates requester discovery only
    assigned_staff: set[str] = field(default_factory=set)
    created_at: datetime | None = None

    def is_open(self, day: date) -> bool:
        return self.window.contains(day)
