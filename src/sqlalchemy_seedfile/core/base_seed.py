"""
Seed units: the atomic, runnable changes discovered in seed files.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, FrozenSet, Optional

from sqlalchemy.orm import Session

from sqlalchemy_seedfile.utils.environment import Label, normalize_environment

logger = logging.getLogger(__name__)


class SeedKind(str, Enum):
    """How a seed unit was defined."""

    CODE = "code"
    DATA_DESCRIPTOR = "data_descriptor"


class SeedUnit:
    """
    A named, runnable change.

    Units compare by identity: two units built from identical arguments are
    still two distinct seeds.
    """

    def __init__(
        self,
        body: Callable[..., Any],
        kind: SeedKind = SeedKind.CODE,
        environments: FrozenSet[str] = frozenset(),
        origin_file: Optional[str] = None,
    ):
        """
        Initialize the seed unit.

        Args:
            body: Callable performing the change; receives the session
                unless it declares no parameters
            kind: Whether the unit comes from code or a data descriptor
            environments: Normalized environment names; empty means all
            origin_file: Path of the file that defined the unit
        """
        self.body = body
        self.kind = kind
        self.environments = environments
        self.origin_file = origin_file
        self._takes_session = _accepts_argument(body)

    @property
    def name(self) -> str:
        return getattr(self.body, "__name__", self.kind.value)

    def applies_to(self, environment: Optional[Label]) -> bool:
        """
        Check if this unit should run in the given environment.

        Args:
            environment: The active environment

        Returns:
            True when the unit is unrestricted or lists the environment
        """
        if not self.environments:
            return True
        if environment is None:
            return False
        return normalize_environment(environment) in self.environments

    def run(self, session: Session) -> None:
        """
        Execute the unit.

        Args:
            session: SQLAlchemy session the change is applied through
        """
        logger.debug(f"Running seed unit {self.name} from {self.origin_file}")
        if self._takes_session:
            self.body(session)
        else:
            self.body()

    def __repr__(self) -> str:
        envs = ", ".join(sorted(self.environments)) or "all"
        return f"<SeedUnit(name={self.name}, kind={self.kind.value}, environments={envs})>"


def _accepts_argument(func: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    for parameter in signature.parameters.values():
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False
