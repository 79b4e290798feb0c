"""
Configuration management for seedsync.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from seedsync.core.options import SeedOptions
from seedsync.utils.environment import EnvironmentConfig

logger = logging.getLogger(__name__)


class SeedsyncConfig(BaseModel):
    """Main configuration for seedsync."""

    # Database configuration
    database_url: Optional[str] = None
    echo_sql: bool = False

    # Seed files
    seeds_path: str = "seeds"

    # Execution settings
    default_environment: str = "development"
    concurrency: int = 50
    dry_run_by_default: bool = False
    no_tracking: bool = False

    # Safety settings
    require_confirmation_prod: bool = True

    # Environments besides development, testing, staging and production
    environments: List[Dict[str, Any]] = Field(default_factory=list)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Custom settings
    custom_settings: Dict[str, Any] = Field(default_factory=dict)


class Config:
    """
    Configuration manager for seedsync.

    Configuration is loaded from, in increasing order of precedence:
    - Default values
    - A configuration file (JSON, YAML, TOML)
    - Environment variables (and a .env file)
    """

    CONFIG_FILE_NAMES = [
        "seedsync.config.json",
        "seedsync.config.yaml",
        "seedsync.config.yml",
        "seedsync.config.toml",
        ".seedsyncrc",
        ".seedsyncrc.json",
    ]

    ENV_PREFIX = "SEEDSYNC_"

    INT_KEYS = {"concurrency"}
    BOOL_KEYS = {"echo_sql", "dry_run_by_default", "no_tracking", "require_confirmation_prod"}

    def __init__(
        self,
        config_file: Optional[str] = None,
        load_env: bool = True,
        configure_logging: bool = True,
    ):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to configuration file
            load_env: Whether to load from environment variables
            configure_logging: Whether to set up logging from the configuration
        """
        self._config = SeedsyncConfig()

        # Load .env file if present
        if load_env:
            load_dotenv()

        if config_file:
            self._load_from_file(config_file)
        else:
            self._auto_discover_config()

        if load_env:
            self._load_from_env()

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
            elif path.suffix == ".toml":
                data = toml.load(f)
            else:
                # JSON, and files without a recognised extension
                data = json.load(f)

        self._update_config(data)
        logger.info(f"Loaded configuration from {file_path}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        env_mapping = {
            "DATABASE_URL": "database_url",
            "SEEDS_PATH": "seeds_path",
            "DEFAULT_ENVIRONMENT": "default_environment",
            "CONCURRENCY": "concurrency",
            "LOG_LEVEL": "log_level",
            "DRY_RUN": "dry_run_by_default",
            "NO_TRACKING": "no_tracking",
        }

        for env_var, config_key in env_mapping.items():
            # Check with prefix
            prefixed_var = f"{self.ENV_PREFIX}{env_var}"
            value = os.environ.get(prefixed_var) or os.environ.get(env_var)

            if value:
                self.set(config_key, self._convert(config_key, value))
                logger.debug(f"Loaded {config_key} from environment variable")

    def _convert(self, key: str, value: str) -> Any:
        if key in self.INT_KEYS:
            return int(value)
        if key in self.BOOL_KEYS:
            return value.lower() in ["true", "1", "yes", "on"]
        return value

    def _update_config(self, data: Dict[str, Any]) -> None:
        """
        Update configuration with data from dictionary.

        Args:
            data: Configuration data
        """
        for key, value in data.items():
            self.set(key, value)

    def _configure_logging(self) -> None:
        """Set up logging from the configuration."""
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
        """Get the seed files directory path."""
        return self._config.seeds_path

    @property
    def default_environment(self) -> str:
        """Get the default environment."""
        return self._config.default_environment

    @property
    def environments(self) -> List[EnvironmentConfig]:
        """Extra environments declared in the configuration."""
        return [EnvironmentConfig.model_validate(item) for item in self._config.environments]

    def seed_options(self, **overrides: Any) -> SeedOptions:
        """
        Build run options from the configuration.

        Args:
            overrides: Option values taking precedence, None values are ignored
        """
        values: Dict[str, Any] = {
            "dry_run": self._config.dry_run_by_default,
            "no_tracking": self._config.no_tracking,
            "concurrency": self._config.concurrency,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return SeedOptions(**values)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        if key in SeedsyncConfig.model_fields:
            return getattr(self._config, key)

        return self._config.custom_settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        if key in SeedsyncConfig.model_fields:
            setattr(self._config, key, value)
        else:
            self._config.custom_settings[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Returns:
            Configuration as dictionary
        """
        return self._config.model_dump()
