"""Allocation engine: eligibility, ledgers and lifecycle state machines."""
