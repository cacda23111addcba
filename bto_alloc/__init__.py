"""bto-alloc: allocation and lifecycle engine for BTO housing launches."""

__version__ = "0.1.0"
