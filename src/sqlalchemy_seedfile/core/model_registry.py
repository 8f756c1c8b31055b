"""
Explicit mapping from entity type names to SQLAlchemy mapped classes.
"""

import logging
from typing import Any, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


def camelize(name: str) -> str:
    """Convert ``exchange_rate`` into ``ExchangeRate``."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


class ModelRegistry:
    """
    Registry of the models data seeds may create.

    Data descriptors only ever reach models that the host application has
    registered here.
    """

    def __init__(self, models: Optional[Dict[str, Type[Any]]] = None):
        self._models: Dict[str, Type[Any]] = {}
        for name, model in (models or {}).items():
            self.register(model, name=name)

    @classmethod
    def from_base(cls, base: Any) -> "ModelRegistry":
        """
        Build a registry from every class mapped on a declarative base.

        Args:
            base: Declarative base (``declarative_base()`` or ``DeclarativeBase``)

        Returns:
            Registry keyed by class name
        """
        registry = cls()
        for mapper in base.registry.mappers:
            registry.register(mapper.class_)
        return registry

    def register(self, model: Type[Any], name: Optional[str] = None) -> None:
        """
        Register a model.

        Args:
            model: The mapped class
            name: Lookup name (defaults to the class name)
        """
        name = name or model.__name__
        if name in self._models and self._models[name] is not model:
            logger.warning(f"Model {name} is already registered, overwriting")
        self._models[name] = model
        logger.debug(f"Registered model: {name}")

    def get(self, name: str) -> Optional[Type[Any]]:
        """Get a model by its exact registered name."""
        return self._models.get(name)

    def resolve(self, name: str) -> Optional[Type[Any]]:
        """
        Resolve a descriptor key or class name to a model.

        Tries the exact name first, then its camel-cased form.
        """
        return self._models.get(name) or self._models.get(camelize(name))

    def names(self) -> List[str]:
        return list(self._models.keys())

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._models)
