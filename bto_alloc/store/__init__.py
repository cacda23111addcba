"""In-memory data store for maintaining entity relationships."""

from bto_alloc.store.housing import HousingDataStore

__all__ = ["HousingDataStore"]
