"""
Decoding of YAML/JSON data descriptors into entity creation requests.

A descriptor is a mapping, or a list of mappings, such as::

    environment: [development, test]
    user:
      name: rfeynman
    currencies:
      class: Currency
      entries:
        - {abbr: USD, name: United States dollar}
        - {abbr: BRL, name: Brazilian real}

Each mapping becomes one group of creation requests, gated by its optional
``environment`` key.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple, Type, Union

import yaml
from sqlalchemy.orm import Session

from sqlalchemy_seedfile.core.model_registry import ModelRegistry
from sqlalchemy_seedfile.exceptions import (
    DescriptorDecodeError,
    DescriptorError,
    InvalidEntityData,
    UnknownEntityType,
)
from sqlalchemy_seedfile.utils.environment import normalize_environments

logger = logging.getLogger(__name__)

ENVIRONMENT_KEY = "environment"
CLASS_KEY = "class"
ENTRIES_KEY = "entries"

YAML_SUFFIXES = (".yml", ".yaml")
JSON_SUFFIXES = (".json",)


class EntityRequest:
    """A pending creation of one entity; executed only at apply time."""

    def __init__(self, model_name: str, model: Type[Any], attributes: Dict[str, Any]):
        self.model_name = model_name
        self.model = model
        self.attributes = attributes

    def create(self, session: Session) -> Any:
        """
        Build, validate and persist the entity.

        Args:
            session: SQLAlchemy session

        Returns:
            The flushed instance
        """
        unknown = [key for key in self.attributes if not hasattr(self.model, key)]
        if unknown:
            raise InvalidEntityData(
                self.model_name,
                self.attributes,
                f"unknown attribute(s) {', '.join(sorted(unknown))}",
            )

        instance = self.model()
        for key, value in self.attributes.items():
            setattr(instance, key, value)

        validate = getattr(instance, "validate", None)
        if callable(validate):
            try:
                valid = validate()
            except ValueError as e:
                raise InvalidEntityData(self.model_name, self.attributes, str(e)) from e
            if valid is False:
                raise InvalidEntityData(self.model_name, self.attributes, "validation failed")

        session.add(instance)
        session.flush()
        return instance

    def __repr__(self) -> str:
        return f"<EntityRequest(model={self.model_name}, attributes={self.attributes!r})>"


DecodedGroup = Tuple[FrozenSet[str], List[EntityRequest]]


def load_document(path: Union[str, Path], content: Optional[Union[str, bytes]] = None) -> Any:
    """
    Parse a descriptor file as YAML or JSON according to its extension.

    Args:
        path: Descriptor file path
        content: File contents; read from ``path`` when omitted

    Returns:
        The parsed document
    """
    path = Path(path)
    if content is None:
        content = path.read_bytes()

    suffix = path.suffix.lower()
    try:
        if suffix in YAML_SUFFIXES:
            return yaml.safe_load(content)
        if suffix in JSON_SUFFIXES:
            return json.loads(content)
    except (yaml.YAMLError, ValueError) as e:
        raise DescriptorDecodeError(str(path), f"cannot decode descriptor: {e}") from e

    raise DescriptorError(str(path), f"unsupported descriptor format {suffix!r}")


def decode(raw: Any, models: ModelRegistry, path: Optional[str] = None) -> List[DecodedGroup]:
    """
    Turn a parsed descriptor into environment-gated creation requests.

    Args:
        raw: Parsed document: a mapping or a list of mappings
        models: Registry used to resolve entity types
        path: Source file, for error messages

    Returns:
        One ``(environments, requests)`` pair per mapping, in document order
    """
    if raw is None:
        return []

    documents = raw if isinstance(raw, list) else [raw]
    groups: List[DecodedGroup] = []

    for document in documents:
        if not isinstance(document, dict):
            raise DescriptorError(
                path or "<descriptor>",
                f"descriptor document must be a mapping, got {type(document).__name__}",
            )

        environments = _decode_environments(document.get(ENVIRONMENT_KEY), path)
        requests: List[EntityRequest] = []
        for key, value in document.items():
            if key == ENVIRONMENT_KEY:
                continue
            requests.extend(_decode_block(str(key), value, models, path))

        groups.append((environments, requests))

    return groups


def _decode_environments(value: Any, path: Optional[str]) -> FrozenSet[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return normalize_environments([value])
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return normalize_environments(value)
    raise DescriptorError(
        path or "<descriptor>",
        f"'environment' must be a string or a list of strings, got {value!r}",
    )


def _decode_block(key: str, value: Any, models: ModelRegistry, path: Optional[str]) -> List[EntityRequest]:
    if isinstance(value, dict) and ENTRIES_KEY in value:
        class_name = value.get(CLASS_KEY)
        model = (models.resolve(class_name) if class_name else None) or models.resolve(key)
        if model is None:
            raise UnknownEntityType(class_name or key, path)

        entries = value[ENTRIES_KEY]
        if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
            raise DescriptorError(path or "<descriptor>", f"'{key}.entries' must be a list of mappings")
        return [EntityRequest(model.__name__, model, dict(entry)) for entry in entries]

    model = models.resolve(key)
    if model is None:
        raise UnknownEntityType(key, path)

    if isinstance(value, dict):
        return [EntityRequest(model.__name__, model, dict(value))]
    if isinstance(value, list) and all(isinstance(entry, dict) for entry in value):
        return [EntityRequest(model.__name__, model, dict(entry)) for entry in value]

    raise DescriptorError(path or "<descriptor>", f"attributes of '{key}' must be a mapping")


def build_body(requests: List[EntityRequest]) -> Callable[[Session], None]:
    """
    Wrap creation requests into a seed body.

    Args:
        requests: Requests to execute, in order

    Returns:
        Callable creating every entity through the given session
    """

    def create_entities(session: Session) -> None:
        for request in requests:
            request.create(session)
        logger.debug(f"Created {len(requests)} entities")

    return create_entities
