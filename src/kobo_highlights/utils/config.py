"""
Configuration management for Kobo highlights.

Handles loading and managing configuration from YAML files and environment variables.
"""

import os
import copy
import yaml
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .secrets import NOTION_TOKEN_KEY, SecretsManager

logger = logging.getLogger(__name__)

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


class Config:
    """Configuration manager for the Kobo to Notion sync."""

    DEFAULT_CONFIG = {
        'kobo': {
            'device_database': None,
            'snapshot_path': 'highlights.sqlite',
        },
        'notion': {
            'api_token': None,
            'database_id': None,
            'title_property': 'Title',
            'flag_property': 'Highlights',
            'author_property': None,
            'verify_ssl': True,
        },
        'sync': {
            'title_delimiter': ':',
            'review_heading': True,
            'nest_highlights': True,
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'file': None,  # None means console only
        },
    }

    ENV_MAPPINGS = {
        'KOBO_DEVICE_DATABASE': ['kobo', 'device_database'],
        'KOBO_SNAPSHOT_PATH': ['kobo', 'snapshot_path'],
        'KOBO_LOG_LEVEL': ['logging', 'level'],
        'KOBO_LOG_FILE': ['logging', 'file'],
        'NOTION_API_TOKEN': ['notion', 'api_token'],
        'NOTION_TOKEN': ['notion', 'api_token'],
        'NOTION_DATABASE_ID': ['notion', 'database_id'],
    }

    # Values kept as strings even when they look like numbers or booleans
    RAW_STRING_KEYS = {'api_token', 'database_id', 'device_database', 'snapshot_path'}

    def __init__(self, config_path: Optional[str] = None, secrets_manager=None):
        """
        Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, looks for config in standard locations.
            secrets_manager: Keyring access used when no token is configured
        """
        self.config_data = copy.deepcopy(self.DEFAULT_CONFIG)
        self.config_path = self._find_config_file(config_path)
        self.secrets_manager = secrets_manager

        if self.config_path:
            self._load_config_file()
        else:
            logger.info("No configuration file found, using defaults")

        # Override with environment variables
        self._load_env_variables()

        logger.debug(f"Configuration loaded from {self.config_path or 'defaults'}")

    def _find_config_file(self, config_path: Optional[str]) -> Optional[Path]:
        """Find the configuration file to use."""
        if config_path:
            path = Path(config_path)
            if path.exists():
                return path
            else:
                logger.warning(f"Specified config file not found: {config_path}")
                return None

        search_paths = [
            Path.cwd() / 'config.yaml',
            Path.cwd() / 'config' / 'config.yaml',
            Path.home() / '.kobo-highlights' / 'config.yaml',
            Path.home() / '.config' / 'kobo-highlights' / 'config.yaml',
        ]

        for path in search_paths:
            if path.exists():
                logger.info(f"Found configuration file: {path}")
                return path

        return None

    def _load_config_file(self):
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config file {self.config_path}: {e}")
            logger.info("Using default configuration")
            return

        self.config_data = self._deep_merge(self.config_data, file_config)
        logger.info(f"Configuration loaded from {self.config_path}")

    def _load_env_variables(self):
        """Load configuration from environment variables."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value:
                self._set_nested_value(self.config_data, config_path, value)
                logger.debug(f"Set config from env var {env_var}")

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _set_nested_value(self, data: Dict, path: list, value: Any):
        """Set a nested value in a dictionary using a path list."""
        current = data
        for key in path[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        # Convert string values to appropriate types
        if isinstance(value, str) and path[-1] not in self.RAW_STRING_KEYS:
            if value.lower() in ('true', 'false'):
                value = value.lower() == 'true'
            elif value.isdigit():
                value = int(value)

        current[path[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'notion.database_id')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.config_data

        for k in key.split('.'):
            if isinstance(current, dict) and k in current:
                current = current[k]
            else:
                return default

        return current

    def set(self, key: str, value: Any):
        """Set configuration value using dot notation."""
        self._set_nested_value(self.config_data, key.split('.'), value)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section."""
        return self.get(section, {})

    def get_notion_token(self) -> Optional[str]:
        """Notion token from the config file or environment, else the keyring."""
        token = self.get('notion.api_token')
        if token:
            return token

        if self.secrets_manager is None:
            self.secrets_manager = SecretsManager()

        return self.secrets_manager.get_secret(NOTION_TOKEN_KEY)

    def save(self, config_path: Optional[str] = None):
        """
        Save current configuration to file.

        Args:
            config_path: Path to save config. If None, uses current config path.
        """
        save_path = Path(config_path) if config_path else self.config_path

        if not save_path:
            save_path = Path.cwd() / 'config.yaml'

        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, 'w') as f:
            yaml.safe_dump(self.config_data, f, default_flow_style=False, indent=2)

        logger.info(f"Configuration saved to {save_path}")
        self.config_path = save_path

    def create_example_config(self, output_path: str):
        """Create an example configuration file with comments."""
        example_config = """
# Kobo highlights configuration

# Kobo e-reader settings
kobo:
  # KoboReader.sqlite on the mounted device
  device_database: null  # e.g., "E:/.kobo/KoboReader.sqlite" or "/Volumes/KOBOeReader/.kobo/KoboReader.sqlite"
  # Local copy that is read during the sync
  snapshot_path: "highlights.sqlite"

# Notion settings
notion:
  api_token: null  # Get from https://developers.notion.com/ (or use 'config token set')
  database_id: null
  # Database property names
  title_property: "Title"
  flag_property: "Highlights"  # checkbox, set once highlights are uploaded
  author_property: null  # optional rich text property
  verify_ssl: true

# Sync behaviour
sync:
  # Titles are matched on the part before this character
  title_delimiter: ":"
  # Add an empty "Review" heading to newly created pages
  review_heading: true
  # Nest quotes inside a toggle "Highlights" heading
  nest_highlights: true

# Logging settings
logging:
  level: "INFO"  # DEBUG, INFO, WARNING, ERROR
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  file: null  # null for console only, or path to log file
"""

        with open(output_path, 'w') as f:
            f.write(example_config.strip() + "\n")

        logger.info(f"Example configuration created at {output_path}")

    def validate(self, require_device: bool = False, check_device: bool = True) -> list:
        """
        Validate configuration and return list of issues.

        Args:
            require_device: Whether a device database path is required
            check_device: Whether a configured device database has to exist

        Returns:
            List of validation error messages
        """
        issues = []

        device_database = self.get('kobo.device_database')
        if require_device and not device_database:
            issues.append("kobo.device_database is required")
        elif check_device and device_database and not os.path.exists(device_database):
            issues.append(f"kobo.device_database does not exist: {device_database}")

        if not self.get('notion.database_id'):
            issues.append("notion.database_id is required")

        if not self.get('notion.title_property') or not self.get('notion.flag_property'):
            issues.append("notion.title_property and notion.flag_property must be set")

        log_level = str(self.get('logging.level')).upper()
        if log_level not in LOG_LEVELS:
            issues.append(f"Invalid logging level: {self.get('logging.level')}")

        return issues

    def __str__(self) -> str:
        return f"Config(path={self.config_path}, database_id={self.get('notion.database_id')})"

    def __repr__(self) -> str:
        return f"Config(config_path={self.config_path}, data_keys={list(self.config_data.keys())})"
