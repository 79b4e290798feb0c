"""
Environment detection for seed runs.
"""

import logging
import os
from typing import Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class EnvironmentConfig(BaseModel):
    """Configuration for an environment."""

    name: str
    is_production: bool = False
    require_confirmation: bool = False


class EnvironmentManager:
    """
    Detects the active environment and knows how cautious to be in it.

    The detected name is what seed entries compare their ``$env`` and
    ``synchronize`` lists against. It is passed explicitly into seed files,
    nothing in the seeding engine reads process state itself.
    """

    DEFAULT_ENVIRONMENTS = {
        "development": EnvironmentConfig(name="development"),
        "testing": EnvironmentConfig(name="testing"),
        "staging": EnvironmentConfig(name="staging", require_confirmation=True),
        "production": EnvironmentConfig(
            name="production",
            is_production=True,
            require_confirmation=True,
        ),
    }

    ENV_VARS = [
        "SEEDSYNC_ENV",
        "ENVIRONMENT",
        "ENV",
        "APP_ENV",
        "NODE_ENV",
        "PYTHON_ENV",
    ]

    def __init__(self, default_environment: str = "development"):
        """
        Initialize the environment manager.

        Args:
            default_environment: Used when no environment variable is set
        """
        self._environments: Dict[str, EnvironmentConfig] = dict(self.DEFAULT_ENVIRONMENTS)
        self._current_environment: Optional[str] = None
        self._default_environment = default_environment

        self._detect_environment()

    def _detect_environment(self) -> None:
        """Detect the current environment from environment variables."""
        for var in self.ENV_VARS:
            env_value = os.environ.get(var)
            if env_value:
                self._current_environment = env_value.lower()
                logger.debug(f"Detected environment: {self._current_environment} (from {var})")
                return

        self._current_environment = self._default_environment
        logger.debug(f"No environment detected, defaulting to: {self._default_environment}")

    @property
    def current_environment(self) -> str:
        """Get the current environment name."""
        return self._current_environment or self._default_environment

    @current_environment.setter
    def current_environment(self, value: str) -> None:
        """Set the current environment."""
        if value not in self._environments:
            logger.debug(f"Unknown environment: {value}, creating default config")
            self._environments[value] = EnvironmentConfig(name=value)

        self._current_environment = value
        logger.info(f"Environment set to: {value}")

    def get_config(self, environment: Optional[str] = None) -> EnvironmentConfig:
        env = environment or self.current_environment
        return self._environments.get(env) or EnvironmentConfig(name=env)

    def register_environment(self, config: EnvironmentConfig) -> None:
        self._environments[config.name] = config

    def is_production(self, environment: Optional[str] = None) -> bool:
        return self.get_config(environment).is_production

    def requires_confirmation(self, environment: Optional[str] = None) -> bool:
        return self.get_config(environment).require_confirmation

    def list_environments(self) -> List[str]:
        return list(self._environments.keys())
