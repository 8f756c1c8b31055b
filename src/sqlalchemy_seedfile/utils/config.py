"""
Configuration management for sqlalchemy-seedfile.
"""

import json
import logging
import os
from configparser import ConfigParser
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SeederConfig(BaseModel):
    """Main configuration for sqlalchemy-seedfile."""

    # Database configuration
    database_url: Optional[str] = None
    echo_sql: bool = False

    # Seed files
    seeds_path: str = "seeds"

    # Execution settings
    default_environment: Optional[str] = None
    use_transactions: Optional[bool] = None
    allow_missing_seed_files: bool = False

    # Ledger settings
    tracking_table_name: str = "schema_seeds"
    tracking_column_name: str = "filename"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Integration settings
    alembic_config_path: Optional[str] = "alembic.ini"
    integrate_with_alembic: bool = True

    # Custom settings
    custom_settings: Dict[str, Any] = Field(default_factory=dict)


BOOLEAN_KEYS = {
    "echo_sql",
    "use_transactions",
    "allow_missing_seed_files",
    "integrate_with_alembic",
}


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ["true", "1", "yes", "on"]


class Config:
    """
    Configuration manager for sqlalchemy-seedfile.

    Values are loaded, in increasing order of precedence, from:
    - Default values
    - Configuration files (JSON, YAML)
    - Environment variables (optionally from a ``.env`` file)
    - Alembic configuration (only fills values still unset)
    """

    CONFIG_FILE_NAMES = [
        "seeder.config.json",
        "seeder.config.yaml",
        "seeder.config.yml",
        ".seederrc",
        ".seederrc.json",
    ]

    ENV_PREFIX = "SEEDER_"

    def __init__(
        self,
        config_file: Optional[str] = None,
        load_env: bool = True,
        load_alembic: bool = True,
        configure_logging: bool = True,
    ):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file
            load_env: Whether to load from environment variables
            load_alembic: Whether to load from Alembic config
            configure_logging: Whether to configure the root logger
        """
        self._config = SeederConfig()

        if load_env:
            load_dotenv()

        if config_file:
            self._load_from_file(config_file)
        else:
            self._auto_discover_config()

        if load_env:
            self._load_from_env()

        if load_alembic and self._config.integrate_with_alembic:
            self._load_from_alembic()

        if configure_logging:
            self._configure_logging()

    def _auto_discover_config(self) -> None:
        """Auto-discover configuration file in project."""
        for filename in self.CONFIG_FILE_NAMES:
            config_path = Path(filename)
            if config_path.exists():
                logger.info(f"Found configuration file: {filename}")
                self._load_from_file(str(config_path))
                break

    def _load_from_file(self, file_path: str) -> None:
        """
        Load configuration from file.

        Args:
            file_path: Path to configuration file
        """
        path = Path(file_path)

        if not path.exists():
            logger.warning(f"Configuration file not found: {file_path}")
            return

        with open(path) as f:
            if path.suffix in [".yaml", ".yml"]:
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {file_path} must contain a mapping")

        self._update_config(data)
        logger.info(f"Loaded configuration from {file_path}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        env_mapping = {
            "DATABASE_URL": "database_url",
            "SEEDS_PATH": "seeds_path",
            "DEFAULT_ENVIRONMENT": "default_environment",
            "USE_TRANSACTIONS": "use_transactions",
            "ALLOW_MISSING_SEED_FILES": "allow_missing_seed_files",
            "TRACKING_TABLE_NAME": "tracking_table_name",
            "LOG_LEVEL": "log_level",
        }

        for env_var, config_key in env_mapping.items():
            prefixed_var = f"{self.ENV_PREFIX}{env_var}"
            value = os.environ.get(prefixed_var)
            # Unprefixed DATABASE_URL is a common convention
            if value is None and env_var == "DATABASE_URL":
                value = os.environ.get(env_var)

            if value:
                self.set(config_key, _to_bool(value) if config_key in BOOLEAN_KEYS else value)
                logger.debug(f"Loaded {config_key} from environment variable")

    def _load_from_alembic(self) -> None:
        """Load configuration from Alembic config file."""
        if not self._config.alembic_config_path:
            return

        alembic_path = Path(self._config.alembic_config_path)

        if not alembic_path.exists():
            logger.debug(f"Alembic config not found: {alembic_path}")
            return

        parser = ConfigParser()
        parser.read(alembic_path)

        if parser.has_option("alembic", "sqlalchemy.url"):
            url = parser.get("alembic", "sqlalchemy.url")
            if url and not self._config.database_url:
                self._config.database_url = url
                logger.info("Loaded database URL from Alembic config")

        if parser.has_section("seeder"):
            for key, value in parser.items("seeder"):
                if hasattr(self._config, key):
                    self.set(key, _to_bool(value) if key in BOOLEAN_KEYS else value)
                    logger.debug(f"Loaded {key} from Alembic config")

    def _update_config(self, data: Dict[str, Any]) -> None:
        """
        Update configuration with data from dictionary.

        Args:
            data: Configuration data
        """
        for key, value in data.items():
            self.set(key, value)

    def _configure_logging(self) -> None:
        """Set up logging from the configured level and file."""
        level = getattr(logging, self._config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        if self._config.log_file:
            file_handler = logging.FileHandler(self._config.log_file)
            file_handler.setLevel(level)
            logging.getLogger().addHandler(file_handler)

    @property
    def database_url(self) -> Optional[str]:
        """Get the database URL."""
        return self._config.database_url

    @property
    def seeds_path(self) -> str:
        """Get the seeds directory path."""
        return self._config.seeds_path

    @property
    def default_environment(self) -> Optional[str]:
        """Get the default environment."""
        return self._config.default_environment

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if key in SeederConfig.model_fields:
            return getattr(self._config, key)

        return self._config.custom_settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        if key in SeederConfig.model_fields and key != "custom_settings":
            # Re-validate so string values from files/env get coerced
            self._config = SeederConfig.model_validate({**self._config.model_dump(), key: value})
        else:
            self._config.custom_settings[key] = value

    def seeder_options(self) -> Dict[str, Any]:
        """Keyword options for ``Seeder.apply`` derived from this configuration."""
        return {
            "table": self._config.tracking_table_name,
            "column": self._config.tracking_column_name,
            "use_transactions": self._config.use_transactions,
            "allow_missing_seed_files": self._config.allow_missing_seed_files,
        }

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary
        """
        return self._config.model_dump()

    def save(self, file_path: str) -> None:
        """
        Save configuration to file.

        Args:
            file_path: Path to save configuration
        """
        path = Path(file_path)
        data = self.to_dict()

        with open(path, "w") as f:
            if path.suffix in [".yaml", ".yml"]:
                yaml.safe_dump(data, f, sort_keys=False)
            else:
                json.dump(data, f, indent=2)

        logger.info(f"Saved configuration to {file_path}")
