"""
Secure secrets management for Kobo highlights.

Keeps the Notion token in the system keyring instead of a plain text
configuration file.
"""

import keyring
import keyring.errors
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Application identifier for keyring
APP_NAME = "kobo-highlights"

NOTION_TOKEN_KEY = "notion.api_token"


class SecretsManager:
    """Secrets stored in the system keyring."""

    def __init__(self, app_name: str = APP_NAME):
        self.app_name = app_name
        self.logger = logging.getLogger(f"{__name__}.SecretsManager")
        self._keyring_available = self._check_keyring()

    def _check_keyring(self) -> bool:
        """Check that a usable keyring backend is installed."""
        backend = keyring.get_keyring()
        if backend.__class__.__module__.startswith('keyring.backends.fail'):
            self.logger.debug("No system keyring backend available")
            return False
        return True

    @property
    def available(self) -> bool:
        return self._keyring_available

    def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret from the keyring.

        Args:
            key: Secret key name (e.g. 'notion.api_token')

        Returns:
            Secret value or None if not stored
        """
        if not self._keyring_available:
            return None

        try:
            value = keyring.get_password(self.app_name, key)
        except keyring.errors.KeyringError as e:
            self.logger.warning(f"Error retrieving secret from keyring: {e}")
            return None

        if value:
            self.logger.debug(f"Retrieved secret '{key}' from keyring")
        return value

    def set_secret(self, key: str, value: str) -> bool:
        """
        Store a secret in the keyring.

        Returns:
            True if successful, False otherwise
        """
        if not self._keyring_available:
            self.logger.warning(f"Cannot set secret '{key}' - keyring not available")
            return False

        try:
            keyring.set_password(self.app_name, key, value)
            self.logger.info(f"Secret '{key}' stored in keyring")
            return True
        except keyring.errors.KeyringError as e:
            self.logger.error(f"Error storing secret in keyring: {e}")
            return False

    def delete_secret(self, key: str) -> bool:
        """Remove a secret from the keyring."""
        if not self._keyring_available:
            return False

        try:
            keyring.delete_password(self.app_name, key)
            self.logger.info(f"Secret '{key}' deleted from keyring")
            return True
        except keyring.errors.PasswordDeleteError:
            return False
        except keyring.errors.KeyringError as e:
            self.logger.warning(f"Error deleting secret from keyring: {e}")
            return False

    def get_keyring_backend(self) -> str:
        backend = keyring.get_keyring()
        return f"{backend.__class__.__module__}.{backend.__class__.__name__}"
