"""Domain models for the BTO allocation engine."""

from bto_alloc.models.base import Event, Window

__all__ = ["Event", "Window"]
