"""Tracking of applied seed files."""

from .ledger import SeedLedger

__all__ = ["SeedLedger"]
