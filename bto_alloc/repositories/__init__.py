"""Persistence collaborators: repositories and the change-log sink."""

from bto_alloc.repositories.base import (
    COLLECTIONS,
    EventSink,
    InMemoryRepository,
    Repository,
    SnapshotRepository,
)
from bto_alloc.repositories.json_file import JsonFileRepository

__all__ = [
    "COLLECTIONS",
    "EventSink",
    "InMemoryRepository",
    "JsonFileRepository",
    "Repository",
    "SnapshotRepository",
]
