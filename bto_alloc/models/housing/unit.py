"""Flat unit handle."""

from dataclasses import dataclass

from bto_alloc.models.housing.enums import FlatCategory


@dataclass
class Unit:
    """One concrete flat, created when inventory is reserved for an application."""

    unit_id: str
    listing_id: str
    category: FlatCategory
    application_id: str | None = None  # set at booking

    @property
    def is_booked(self) -> bool:
        return self.application_id is not None
