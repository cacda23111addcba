"""Base models shared across domains."""

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class Window:
    """Application period of a listing.

    ``contains`` treats the period as closed (``[open, close]``) for
    requester discovery; ``overlaps`` treats it as half-open
    (``[open, close)``) for staff exclusivity.
    """

    open_date: date
    close_date: date

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls inside ``[open, close]``."""
        return self.open_date <= day <= self.close_date

    def overlaps(self, other: "Window") -> bool:
        """Return True if the two half-open windows intersect."""
        return self.open_date < other.close_date and other.open_date < self.close_date

    @property
    def is_valid(self) -> bool:
        return self.open_date <= self.close_date


@dataclass
class Event:
    """Standard event envelope for the change-log stream."""

    event_id: str
    event_type: str  # entity.action (e.g., application.decided)
    event_time: datetime
    source: str  # Service/system that generated
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)
