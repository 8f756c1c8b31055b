"""
Environment management for seeds.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Iterable, FrozenSet, List, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Label = Union[str, Enum]


def normalize_environment(label: Label) -> str:
    """
    Normalize an environment label to its canonical string form.

    Strings and enum members compare equal once normalized, and the
    ``:name`` symbol notation used in some data files is accepted.

    Args:
        label: Environment label (string or enum member)

    Returns:
        Lower-cased label without surrounding whitespace or leading colon
    """
    if isinstance(label, Enum):
        label = label.value if isinstance(label.value, str) else label.name
    if not isinstance(label, str):
        raise TypeError(f"Environment label must be a string or enum, got {label!r}")
    return label.strip().lstrip(":").lower()


def normalize_environments(labels: Optional[Iterable[Label]]) -> FrozenSet[str]:
    """Normalize a collection of labels; ``None`` means every environment."""
    if not labels:
        return frozenset()
    if isinstance(labels, (str, Enum)):
        labels = [labels]
    return frozenset(normalize_environment(label) for label in labels)


class EnvironmentConfig(BaseModel):
    """Configuration for an environment."""

    name: str
    is_production: bool = False
    require_confirmation: bool = False


class EnvironmentManager:
    """
    Manages the active deployment environment.

    The active environment decides which seeds apply. It is detected from
    the process environment variables and can be overridden at runtime.
    """

    DEFAULT_ENVIRONMENTS = {
        "development": EnvironmentConfig(name="development"),
        "test": EnvironmentConfig(name="test"),
        "staging": EnvironmentConfig(name="staging", require_confirmation=True),
        "production": EnvironmentConfig(
            name="production",
            is_production=True,
            require_confirmation=True,
        ),
    }

    ENV_VARS = [
        "SEEDER_ENVIRONMENT",
        "ENVIRONMENT",
        "ENV",
        "APP_ENV",
        "FLASK_ENV",
        "DJANGO_ENV",
        "PYTHON_ENV",
    ]

    def __init__(self, environment: Optional[Label] = None):
        """
        Initialize the environment manager.

        Args:
            environment: Initial environment; detected when omitted
        """
        self._environments: Dict[str, EnvironmentConfig] = self.DEFAULT_ENVIRONMENTS.copy()
        self._current_environment: Optional[str] = None

        if environment is not None:
            self.current_environment = environment
        else:
            self._detect_environment()

    def _detect_environment(self) -> None:
        """Detect the current environment from environment variables."""
        for var in self.ENV_VARS:
            env_value = os.environ.get(var)
            if env_value:
                self._current_environment = normalize_environment(env_value)
                logger.info(f"Detected environment: {self._current_environment} (from {var})")
                return

        self._current_environment = "development"
        logger.debug("No environment detected, defaulting to: development")

    @property
    def current_environment(self) -> str:
        """Get the current environment name."""
        return self._current_environment or "development"

    @current_environment.setter
    def current_environment(self, value: Label) -> None:
        """Set the current environment."""
        name = normalize_environment(value)
        if name not in self._environments:
            self._environments[name] = EnvironmentConfig(name=name)

        self._current_environment = name
        logger.info(f"Environment set to: {name}")

    def get_config(self, environment: Optional[Label] = None) -> EnvironmentConfig:
        """
        Get configuration for an environment.

        Args:
            environment: Environment name (defaults to current)

        Returns:
            Environment configuration
        """
        name = normalize_environment(environment) if environment else self.current_environment
        return self._environments.get(name) or EnvironmentConfig(name=name)

    def register_environment(self, config: EnvironmentConfig) -> None:
        """Register a new environment configuration."""
        config.name = normalize_environment(config.name)
        self._environments[config.name] = config
        logger.info(f"Registered environment: {config.name}")

    def is_production(self, environment: Optional[Label] = None) -> bool:
        return self.get_config(environment).is_production

    def requires_confirmation(self, environment: Optional[Label] = None) -> bool:
        return self.get_config(environment).require_confirmation

    def list_environments(self) -> List[str]:
        return list(self._environments.keys())

    def get_environment_info(self, environment: Optional[Label] = None) -> Dict[str, Any]:
        config = self.get_config(environment)
        return {
            "name": config.name,
            "is_production": config.is_production,
            "requires_confirmation": config.require_confirmation,
        }


_manager = EnvironmentManager()


def get_environment_manager() -> EnvironmentManager:
    """Return the process-wide environment manager."""
    return _manager


def get_environment() -> str:
    """Return the process-wide active environment."""
    return _manager.current_environment


def set_environment(label: Label) -> str:
    """
    Set the process-wide active environment.

    Args:
        label: Environment label (string or enum member)

    Returns:
        The normalized environment name
    """
    _manager.current_environment = label
    return _manager.current_environment
