"""Faker-based synthetic data generators."""

from bto_alloc.generators.housing import (
    ListingDraft,
    ListingGenerator,
    ManagerGenerator,
    RequesterGenerator,
    StaffGenerator,
    is_valid_nric,
)

__all__ = [
    "ListingDraft",
    "ListingGenerator",
    "ManagerGenerator",
    "RequesterGenerator",
    "StaffGenerator",
    "is_valid_nric",
]
