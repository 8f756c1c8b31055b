"""Utility modules for sqlalchemy-seedfile."""

from .config import Config
from .environment import (
    EnvironmentManager,
    get_environment,
    normalize_environment,
    set_environment,
)

__all__ = [
    "Config",
    "EnvironmentManager",
    "get_environment",
    "normalize_environment",
    "set_environment",
]
