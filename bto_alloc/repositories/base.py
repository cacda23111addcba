"""Persistence collaborator contracts and the in-memory repository."""

from __future__ import annotations

import copy
from typing import Any, Protocol

from bto_alloc.models.base import Event

COLLECTIONS = (
    "managers",
    "requesters",
    "staff",
    "listings",
    "applications",
    "registrations",
    "withdrawals",
    "enquiries",
)


class Repository(Protocol):
    """Load/save contract used by the data store and the allocation service.

    Every ``save_*`` receives the full snapshot of its collection.
    """

    def load_listings(self) -> list: ...
    def load_requesters(self) -> list: ...
    def load_staff(self) -> list: ...
    def load_managers(self) -> list: ...
    def load_applications(self) -> list: ...
    def load_registrations(self) -> list: ...
    def load_withdrawals(self) -> list: ...
    def load_enquiries(self) -> list: ...

    def save_listings(self, records: list) -> None: ...
    def save_requesters(self, records: list) -> None: ...
    def save_staff(self, records: list) -> None: ...
    def save_managers(self, records: list) -> None: ...
    def save_applications(self, records: list) -> None: ...
    def save_registrations(self, records: list) -> None: ...
    def save_withdrawals(self, records: list) -> None: ...
    def save_enquiries(self, records: list) -> None: ...


class EventSink(Protocol):
    """Change-log publisher."""

    def publish(self, event: Event, key: str | None = None) -> None: ...

    def close(self) -> None: ...


class SnapshotRepository:
    """Routes every ``load_*``/``save_*`` call to ``_read``/``_write``."""

    def _read(self, collection: str) -> list:
        raise NotImplementedError

    def _write(self, collection: str, records: list) -> None:
        raise NotImplementedError

    def load_listings(self) -> list:
        return self._read("listings")

    def load_requesters(self) -> list:
        return self._read("requesters")

    def load_staff(self) -> list:
        return self._read("staff")

    def load_managers(self) -> list:
        return self._read("managers")

    def load_applications(self) -> list:
        return self._read("applications")

    def load_registrations(self) -> list:
        return self._read("registrations")

    def load_withdrawals(self) -> list:
        return self._read("withdrawals")

    def load_enquiries(self) -> list:
        return self._read("enquiries")

    def save_listings(self, records: list) -> None:
        self._write("listings", records)

    def save_requesters(self, records: list) -> None:
        self._write("requesters", records)

    def save_staff(self, records: list) -> None:
        self._write("staff", records)

    def save_managers(self, records: list) -> None:
        self._write("managers", records)

    def save_applications(self, records: list) -> None:
        self._write("applications", records)

    def save_registrations(self, records: list) -> None:
        self._write("registrations", records)

    def save_withdrawals(self, records: list) -> None:
        self._write("withdrawals", records)

    def save_enquiries(self, records: list) -> None:
        self._write("enquiries", records)


class InMemoryRepository(SnapshotRepository):
    """Keeps deep copies of the last saved snapshot of each collection."""

    def __init__(self, initial: dict[str, list[Any]] | None = None) -> None:
        self._collections: dict[str, list[Any]] = {name: [] for name in COLLECTIONS}
        self.save_counts: dict[str, int] = {name: 0 for name in COLLECTIONS}
        for name, records in (initial or {}).items():
            self._collections[name] = copy.deepcopy(list(records))

    def _read(self, collection: str) -> list:
        return copy.deepcopy(self._collections[collection])

    def _write(self, collection: str, records: list) -> None:
        self._collections[collection] = copy.deepcopy(list(records))
        self.save_counts[collection] += 1
