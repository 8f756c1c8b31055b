"""
Custom exceptions for sqlalchemy-seedfile
"""

from typing import Any, Dict, Iterable, Optional


class SeederError(Exception):
    """Base exception for seeder-related errors"""
    pass


class InvalidDirectory(SeederError):
    """Raised when the seed directory does not exist"""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(f"Must supply a valid seed path: {directory!r}")


class NoSeederAvailable(SeederError):
    """Raised when no seeding strategy matches the files of a directory"""
    pass


class MalformedLedger(SeederError):
    """Raised when an existing ledger table lacks the declared column"""
    pass


class MissingSeedFiles(SeederError):
    """Raised when the ledger references seed files absent from disk"""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            f"Applied seed files not in file system: {', '.join(self.missing)}"
        )


class SeedLoadError(SeederError):
    """Raised when a seed file cannot be loaded"""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class DescriptorError(SeedLoadError):
    """Raised when a data descriptor is structurally invalid"""
    pass


class DescriptorDecodeError(DescriptorError):
    """Raised when a YAML/JSON descriptor cannot be parsed"""
    pass


class UnknownEntityType(DescriptorError):
    """Raised when a descriptor references a model that is not registered"""

    def __init__(self, name: str, path: Optional[str] = None):
        self.name = name
        super().__init__(path or "<descriptor>", f"unknown entity type {name!r}")


class InvalidEntityData(SeederError):
    """Raised when a descriptor entry does not build a valid entity"""

    def __init__(self, model_name: str, attributes: Dict[str, Any], reason: str):
        self.model_name = model_name
        self.attributes = attributes
        super().__init__(f"Invalid {model_name} data {attributes!r}: {reason}")


class SeedExecutionError(SeederError):
    """Raised when a seed fails while being applied"""

    def __init__(self, filename: str, error: BaseException):
        self.filename = filename
        self.error = error
        super().__init__(f"Error applying seed {filename}: {error}")
