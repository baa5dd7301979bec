"""Configuration exceptions."""

from enum import Enum


class ConfigErrorKind(str, Enum):
    """Classification of configuration failures."""

    MALFORMED_MAPPING = 'malformed_mapping'
    MISSING_FILE = 'missing_file'


class ConfigError(Exception):
    """Raised before any side effect when run input is unusable."""

    def __init__(self, kind: ConfigErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
