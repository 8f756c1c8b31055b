"""
Registry collecting the seed units discovered during one seeding run.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Iterable, Iterator, List, Optional

from sqlalchemy_seedfile.core.base_seed import SeedKind, SeedUnit
from sqlalchemy_seedfile.exceptions import SeederError
from sqlalchemy_seedfile.utils.environment import (
    Label,
    get_environment,
    normalize_environment,
    normalize_environments,
)

logger = logging.getLogger(__name__)

_active_registry: ContextVar[Optional["SeedRegistry"]] = ContextVar(
    "sqlalchemy_seedfile_active_registry", default=None
)


class SeedRegistry:
    """
    Registry for the seed units of a single run.

    The engine creates a fresh registry for every run, so units never leak
    from one run into the next.
    """

    def __init__(self, environment: Optional[Label] = None):
        """
        Initialize the seed registry.

        Args:
            environment: Active environment used to filter definitions;
                defaults to the process-wide environment
        """
        self._units: List[SeedUnit] = []
        self._environment = normalize_environment(
            environment if environment is not None else get_environment()
        )
        self._current_file: Optional[str] = None

    @property
    def active_environment(self) -> str:
        """Get the environment definitions are filtered against."""
        return self._environment

    @active_environment.setter
    def active_environment(self, value: Label) -> None:
        self._environment = normalize_environment(value)

    def define(
        self,
        environments: Optional[Iterable[Label]],
        body: Callable[..., Any],
        kind: SeedKind = SeedKind.CODE,
        origin_file: Optional[str] = None,
    ) -> Optional[SeedUnit]:
        """
        Define a seed unit and register it if it applies.

        Args:
            environments: Environments the seed applies to; empty means all
            body: Callable performing the change
            kind: Whether the unit comes from code or a data descriptor
            origin_file: Defining file (defaults to the file being loaded)

        Returns:
            The registered unit, or None when filtered out by environment
        """
        envs = normalize_environments(environments)
        if envs and self._environment not in envs:
            logger.debug(
                f"Ignoring seed {getattr(body, '__name__', kind.value)} "
                f"(environments {sorted(envs)}, active {self._environment})"
            )
            return None

        unit = SeedUnit(
            body,
            kind=kind,
            environments=envs,
            origin_file=origin_file or self._current_file,
        )
        self.register(unit)
        return unit

    def register(self, unit: SeedUnit) -> SeedUnit:
        """
        Register a seed unit, ignoring it if this exact unit is present.

        Args:
            unit: The unit to register
        """
        if not any(existing is unit for existing in self._units):
            self._units.append(unit)
            logger.debug(f"Registered seed unit: {unit!r}")
        return unit

    def list(self) -> List[SeedUnit]:
        """Get all registered units in registration order."""
        return list(self._units)

    def clear(self) -> None:
        """Clear all registered units."""
        self._units.clear()

    @contextmanager
    def loading(self, path: Optional[str] = None) -> Iterator["SeedRegistry"]:
        """
        Make this registry the target of ``seed()`` while a file is loaded.

        Args:
            path: File whose definitions are being collected
        """
        token = _active_registry.set(self)
        previous_file, self._current_file = self._current_file, path
        try:
            yield self
        finally:
            self._current_file = previous_file
            _active_registry.reset(token)

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self) -> Iterator[SeedUnit]:
        return iter(list(self._units))

    def __contains__(self, unit: object) -> bool:
        return any(existing is unit for existing in self._units)


def current_registry() -> Optional[SeedRegistry]:
    """Return the registry collecting definitions, if any."""
    return _active_registry.get()


def seed(*environments: Label) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Declare the decorated function as a seed.

    Used inside seed files::

        @seed("development", "test")
        def add_users(session):
            session.add(User(name="rfeynman"))

    With no arguments the seed applies to every environment.

    Args:
        *environments: Environments the seed applies to

    Returns:
        Decorator registering the function and returning it unchanged
    """
    if len(environments) == 1 and callable(environments[0]) and not isinstance(environments[0], str):
        # Bare ``@seed`` without parentheses
        return seed()(environments[0])

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        registry = current_registry()
        if registry is None:
            raise SeederError(
                f"seed() used outside of a seed file load (defining {func.__name__})"
            )
        registry.define(environments, func, kind=SeedKind.CODE)
        return func

    return decorator
