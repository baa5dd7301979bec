"""Configuration loading."""

from .config import Config
from .exceptions import ConfigError, ConfigErrorKind
from .mapping import load_permission_mappings

__all__ = ['Config', 'ConfigError', 'ConfigErrorKind', 'load_permission_mappings']
