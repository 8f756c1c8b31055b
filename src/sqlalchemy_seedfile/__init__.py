"""
SQLAlchemy Seedfile - apply versioned seed files to a database, once.

Seed files are Python modules or YAML/JSON descriptors named
``<timestamp>_<name>.<ext>``. Applied files are recorded in a ledger table
so they never run twice.
"""

from sqlalchemy_seedfile.core import (
    ModelRegistry,
    SeedRegistry,
    SeedUnit,
    Seeder,
    TimestampSeeder,
    seed,
)
from sqlalchemy_seedfile.exceptions import SeederError
from sqlalchemy_seedfile.tracking import SeedLedger
from sqlalchemy_seedfile.utils.environment import get_environment, set_environment

__version__ = "0.1.0"

__all__ = [
    "ModelRegistry",
    "SeedLedger",
    "SeedRegistry",
    "SeedUnit",
    "Seeder",
    "SeederError",
    "TimestampSeeder",
    "get_environment",
    "seed",
    "set_environment",
]
