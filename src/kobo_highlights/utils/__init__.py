"""
Utilities module for Kobo highlights.

Provides configuration and secrets handling used throughout the project.
"""

from .config import Config
from .secrets import SecretsManager

__all__ = ['Config', 'SecretsManager']
