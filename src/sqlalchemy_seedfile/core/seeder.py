"""
Seeder engine: discovers seed files, diffs them against the ledger and
applies the pending ones in order.
"""

import importlib.util
import logging
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sqlalchemy_seedfile.core.base_seed import SeedKind, SeedUnit
from sqlalchemy_seedfile.core.descriptor import build_body, decode, load_document
from sqlalchemy_seedfile.core.model_registry import ModelRegistry
from sqlalchemy_seedfile.core.seed_registry import SeedRegistry, seed
from sqlalchemy_seedfile.exceptions import (
    InvalidDirectory,
    MissingSeedFiles,
    NoSeederAvailable,
    SeedExecutionError,
    SeederError,
    SeedLoadError,
)
from sqlalchemy_seedfile.tracking.ledger import DEFAULT_COLUMN, DEFAULT_TABLE, SeedLedger
from sqlalchemy_seedfile.utils.environment import get_environment, normalize_environment

logger = logging.getLogger(__name__)

SEED_FILE_PATTERN = re.compile(r"\A(\d+)_.+\.(py|ya?ml|json)\Z", re.IGNORECASE)
SEED_SPLITTER = "_"


class SeedFormat(str, Enum):
    """Seed file formats, by extension."""

    CODE = "code"
    YAML = "yaml"
    JSON = "json"

    @classmethod
    def from_extension(cls, extension: str) -> "SeedFormat":
        extension = extension.lower().lstrip(".")
        if extension == "py":
            return cls.CODE
        if extension in ("yml", "yaml"):
            return cls.YAML
        return cls.JSON


class SeedFile(BaseModel):
    """A file named ``<digits>_<name>.<ext>`` in the seed directory."""

    model_config = ConfigDict(frozen=True)

    path: Path
    prefix: int
    format: SeedFormat

    @classmethod
    def parse(cls, path: Union[str, Path]) -> Optional["SeedFile"]:
        """
        Build a SeedFile if the name matches the seed naming convention.

        Args:
            path: Candidate file

        Returns:
            The seed file, or None for non-seed files
        """
        path = Path(path)
        match = SEED_FILE_PATTERN.match(path.name)
        if not match or not path.is_file():
            return None
        return cls(
            path=path,
            prefix=int(path.name.split(SEED_SPLITTER, 1)[0]),
            format=SeedFormat.from_extension(match.group(2)),
        )

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.prefix, self.filename)


def list_seed_files(directory: Union[str, Path]) -> List[SeedFile]:
    """
    List the seed files of a directory ordered by numeric prefix.

    Args:
        directory: Seed directory

    Returns:
        Seed files, ascending prefix, file name as tiebreak
    """
    files = [SeedFile.parse(entry) for entry in Path(directory).iterdir()]
    return sorted((f for f in files if f is not None), key=lambda f: f.sort_key)


class SeederOptions(BaseModel):
    """Options for one seeding run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    table: str = DEFAULT_TABLE
    column: str = DEFAULT_COLUMN
    use_transactions: Optional[bool] = None
    allow_missing_seed_files: bool = False
    environment: Optional[str] = None
    models: ModelRegistry = Field(default_factory=ModelRegistry)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: Any) -> Optional[str]:
        return normalize_environment(value) if value is not None else None


class SeedRunResult(BaseModel):
    """Result of a seeding run."""

    environment: str
    applied: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    duration: float = 0.0


class SeedStatus(BaseModel):
    """Applied, pending and missing seed files of a directory."""

    applied: List[str] = Field(default_factory=list)
    pending: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


def _check_directory(directory: Union[str, Path]) -> Path:
    path = Path(directory)
    if not path.is_dir():
        raise InvalidDirectory(str(directory))
    return path


class Seeder(ABC):
    """
    Base class of the seeding strategies.

    ``Seeder.apply`` picks the strategy matching the files of the directory;
    calling ``apply`` on a concrete strategy uses that strategy directly.
    """

    MINIMUM_TIMESTAMP = 20000101

    @classmethod
    def apply(cls, session: Session, directory: Union[str, Path], **options: Any) -> SeedRunResult:
        """
        Apply the pending seeds of a directory.

        Args:
            session: SQLAlchemy session
            directory: Seed directory
            **options: See ``SeederOptions``

        Returns:
            The run result
        """
        directory = _check_directory(directory)
        return cls.seeder_class(directory)(session, directory, **options).run()

    @classmethod
    def status(cls, session: Session, directory: Union[str, Path], **options: Any) -> SeedStatus:
        """Report applied, pending and missing seed files of a directory."""
        directory = _check_directory(directory)
        return cls.seeder_class(directory)(session, directory, **options).get_status()

    @classmethod
    def seeder_class(cls, directory: Union[str, Path]) -> type:
        """
        Select the seeding strategy for a directory.

        Args:
            directory: Seed directory

        Returns:
            The strategy class
        """
        if cls is not Seeder:
            return cls

        for seed_file in list_seed_files(_check_directory(directory)):
            if seed_file.prefix > cls.MINIMUM_TIMESTAMP:
                return TimestampSeeder

        raise NoSeederAvailable(
            f"seeder not available for files; please check the configured seed directory "
            f"\"{directory}\". Also ensure seed files are in YYYYMMDD_seed_file.<py|yml|json> format."
        )

    def __init__(self, session: Session, directory: Union[str, Path], **options: Any):
        """
        Initialize the seeder.

        Args:
            session: SQLAlchemy session
            directory: Seed directory
            **options: See ``SeederOptions``
        """
        self.session = session
        self.directory = _check_directory(directory)
        self.options = SeederOptions(**options)
        self.files = list_seed_files(self.directory)
        self.ledger = SeedLedger(session, table=self.options.table, column=self.options.column)

    @property
    def environment(self) -> str:
        return self.options.environment or get_environment()

    @property
    def use_transactions(self) -> bool:
        if self.options.use_transactions is None:
            return self.ledger.supports_transactional_ddl()
        return self.options.use_transactions

    @abstractmethod
    def run(self) -> SeedRunResult:
        """Apply the pending seeds."""

    @contextmanager
    def checked_transaction(self) -> Iterator[None]:
        """
        Scope of one seed file.

        With transactions the changes and the ledger row are committed
        together or rolled back together. Without, whatever a failing seed
        already wrote is kept.
        """
        if self.use_transactions:
            try:
                yield
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
        else:
            try:
                yield
            except Exception:
                self._keep_partial_changes()
                raise
            self.session.commit()

    def _keep_partial_changes(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Could not keep partial changes of failed seed: {e}")
            self.session.rollback()

    def load_seed_file(self, seed_file: SeedFile, registry: SeedRegistry) -> List[SeedUnit]:
        """
        Load a seed file, registering the units it defines.

        Args:
            seed_file: File to load
            registry: Registry collecting the units

        Returns:
            Units defined by this file, in definition order
        """
        before = len(registry)
        with registry.loading(str(seed_file.path)):
            if seed_file.format is SeedFormat.CODE:
                self._load_code(seed_file)
            else:
                self._load_descriptor(seed_file, registry)
        return registry.list()[before:]

    def _load_code(self, seed_file: SeedFile) -> None:
        module_name = f"_seed_{re.sub(r'[^0-9a-zA-Z_]', '_', seed_file.path.stem)}"
        spec = importlib.util.spec_from_file_location(module_name, str(seed_file.path))
        if not spec or not spec.loader:
            raise SeedLoadError(str(seed_file.path), "cannot load seed module")

        module = importlib.util.module_from_spec(spec)
        module.seed = seed  # type: ignore[attr-defined]
        try:
            spec.loader.exec_module(module)
        except SeederError:
            raise
        except Exception as e:
            raise SeedLoadError(str(seed_file.path), f"error while loading seed file: {e}") from e

    def _load_descriptor(self, seed_file: SeedFile, registry: SeedRegistry) -> None:
        document = load_document(seed_file.path)
        for environments, requests in decode(document, self.options.models, str(seed_file.path)):
            registry.define(environments, build_body(requests), kind=SeedKind.DATA_DESCRIPTOR)


class TimestampSeeder(Seeder):
    """
    Applies seed files ordered by their numeric (timestamp) prefix.

    Every applied file gets one ledger row, so a file is never applied twice.
    """

    def run(self) -> SeedRunResult:
        """
        Apply every pending seed file in prefix order.

        Returns:
            Applied and environment-skipped file names
        """
        start_time = datetime.now()
        environment = self.environment
        logger.info(f"Applying seeds from {self.directory} (environment: {environment})")

        self._prepare_ledger()
        applied_seeds = self.get_applied_seeds()
        seed_tuples, skipped = self.get_seed_tuples(applied_seeds)

        result = SeedRunResult(environment=environment, skipped=skipped)
        for units, seed_file in seed_tuples:
            self.apply_seed_file(seed_file, units)
            result.applied.append(seed_file.filename)

        result.duration = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Applied {len(result.applied)} seed file(s), "
            f"skipped {len(result.skipped)} (Duration: {result.duration:.2f}s)"
        )
        return result

    def get_status(self) -> SeedStatus:
        self._prepare_ledger()
        applied = self.ledger.select_applied()
        applied_set = set(applied)
        on_disk = {seed_file.filename.lower() for seed_file in self.files}
        return SeedStatus(
            applied=[name for name in applied if name in on_disk],
            pending=[f.filename for f in self.files if f.filename.lower() not in applied_set],
            missing=[name for name in applied if name not in on_disk],
        )

    def get_applied_seeds(self) -> List[str]:
        """
        Read the ledger and check it against the files on disk.

        Returns:
            Lower-cased names of applied files
        """
        applied = self.ledger.select_applied()
        on_disk = {seed_file.filename.lower() for seed_file in self.files}
        missing = [name for name in applied if name not in on_disk]
        if missing:
            if not self.options.allow_missing_seed_files:
                raise MissingSeedFiles(missing)
            logger.warning(f"Applied seed files not in file system: {', '.join(missing)}")
        return applied

    def get_seed_tuples(self, applied_seeds: List[str]) -> Tuple[List[Tuple[List[SeedUnit], SeedFile]], List[str]]:
        """
        Load the pending files into a fresh registry.

        Args:
            applied_seeds: Lower-cased names of applied files

        Returns:
            ``(units, file)`` pairs in apply order, and the pending files
            that defined no unit for the active environment
        """
        registry = SeedRegistry(environment=self.environment)
        registry.clear()
        applied = set(applied_seeds)

        seed_tuples: List[Tuple[List[SeedUnit], SeedFile]] = []
        skipped: List[str] = []
        for seed_file in self.files:
            if seed_file.filename.lower() in applied:
                continue
            units = self.load_seed_file(seed_file, registry)
            if units:
                seed_tuples.append((units, seed_file))
            else:
                logger.debug(f"Skipping seed {seed_file.filename} (nothing for {registry.active_environment})")
                skipped.append(seed_file.filename)

        return seed_tuples, skipped

    def apply_seed_file(self, seed_file: SeedFile, units: List[SeedUnit]) -> None:
        """
        Run the units of one file and record the file in the ledger.

        Args:
            seed_file: The file being applied
            units: Units the file defined
        """
        start_time = datetime.now()
        logger.info(f"Begin applying seed {seed_file.filename}")
        try:
            with self.checked_transaction():
                for unit in units:
                    unit.run(self.session)
                self.ledger.insert_applied(seed_file.filename)
        except Exception as e:
            logger.error(f"Error applying seed {seed_file.filename}: {e}")
            raise SeedExecutionError(seed_file.filename, e) from e

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Finished applying seed {seed_file.filename}, took {duration:.6f} seconds")

    def _prepare_ledger(self) -> None:
        try:
            self.ledger.ensure_schema()
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
