"""Core components of the sqlalchemy-seedfile package."""

from .base_seed import SeedKind, SeedUnit
from .model_registry import ModelRegistry
from .seed_registry import SeedRegistry, seed
from .seeder import Seeder, SeedFile, SeedFormat, SeedRunResult, SeedStatus, TimestampSeeder

__all__ = [
    "ModelRegistry",
    "SeedFile",
    "SeedFormat",
    "SeedKind",
    "SeedRegistry",
    "SeedRunResult",
    "SeedStatus",
    "SeedUnit",
    "Seeder",
    "TimestampSeeder",
    "seed",
]
