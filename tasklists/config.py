"""
Configuration management for tasklists.

Loads settings from settings.ini with environment variable overrides.
"""

import configparser
import os
from pathlib import Path
from typing import Any, Dict, Optional

from tasklists.logging_config import get_logger

logger = get_logger(__name__)

_PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{_PROJECT_ROOT / 'config' / 'tasklists.db'}"


def _env_bool(name: str) -> Optional[bool]:
    """Read a true/false environment variable, None when unset."""
    value = os.getenv(name, '').strip().lower()
    if not value:
        return None
    return value in ('1', 'true', 'yes', 'on')


class Config:
    """Application configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config file, defaults to config/settings.ini
        """
        self.config_path = config_path or self._default_config_path()
        self._config = configparser.ConfigParser()
        self._load()

    def _default_config_path(self) -> Path:
        """Get default config path."""
        env_path = os.getenv('TASKLISTS_CONFIG')
        if env_path:
            return Path(env_path)
        return _PROJECT_ROOT / "config" / "settings.ini"

    def _load(self):
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                self._config.read(self.config_path)
                logger.info(f"Loaded configuration from {self.config_path}")
            except configparser.Error as e:
                logger.warning(f"Failed to read config file: {e}. Using defaults.")
        else:
            logger.debug(f"Config file not found at {self.config_path}. Using defaults.")

    def get_database_config(self) -> Dict[str, Any]:
        """
        Get database configuration with environment overrides.

        Environment variables take precedence over config file:
        - TASKLISTS_DATABASE_URL
        - TASKLISTS_DATABASE_ECHO

        Returns:
            Dictionary with database configuration
        """
        echo = _env_bool('TASKLISTS_DATABASE_ECHO')
        config = {
            'url': os.getenv('TASKLISTS_DATABASE_URL') or
                   self._config.get('database', 'url', fallback=DEFAULT_DATABASE_URL),
            'echo': echo if echo is not None else
                    self._config.getboolean('database', 'echo', fallback=False),
        }

        logger.debug(f"Database config: url={config['url']}, echo={config['echo']}")

        return config

    def get_ordering_config(self) -> Dict[str, Any]:
        """
        Get ordering configuration with environment overrides.

        Environment variables take precedence over config file:
        - TASKLISTS_STRICT_REORDER

        When strict_reorder is enabled a full reorder must name every member
        of the scope being reordered.

        Returns:
            Dictionary with ordering configuration
        """
        strict = _env_bool('TASKLISTS_STRICT_REORDER')
        config = {
            'strict_reorder': strict if strict is not None else
                              self._config.getboolean('ordering', 'strict_reorder', fallback=False),
        }

        logger.debug(f"Ordering config: strict_reorder={config['strict_reorder']}")

        return config

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Get logging configuration with environment overrides.

        Environment variables take precedence over config file:
        - TASKLISTS_LOG_LEVEL

        Returns:
            Dictionary with logging configuration
        """
        return {
            'level': (os.getenv('TASKLISTS_LOG_LEVEL') or
                      self._config.get('logging', 'level', fallback='INFO')).upper(),
        }

    def get(self, section: str, key: str, fallback: Any = None) -> Any:
        """
        Get configuration value with fallback.

        Args:
            section: Config section name
            key: Config key name
            fallback: Default value if not found

        Returns:
            Configuration value or fallback
        """
        return self._config.get(section, key, fallback=fallback)

    def get_bool(self, section: str, key: str, fallback: bool = False) -> bool:
        """Get boolean configuration value."""
        return self._config.getboolean(section, key, fallback=fallback)

    def has_section(self, section: str) -> bool:
        """Check if config section exists."""
        return self._config.has_section(section)

    def sections(self) -> list:
        """Get list of all configuration sections."""
        return self._config.sections()
