"""
spectap Common Utilities

Configuration, errors and helpers shared across spectap modules.
"""

from .config import MockGenConfig, load_config, load_config_file
from .errors import SpectapError, ConfigError, SpecLoadError, SchemaGenerationError
from .utils import deep_merge, coerce_number, normalize_headers, utc_timestamp

__all__ = [
    'MockGenConfig',
    'load_config',
    'load_config_file',
    'SpectapError',
    'ConfigError',
    'SpecLoadError',
    'SchemaGenerationError',
    'deep_merge',
    'coerce_number',
    'normalize_headers',
    'utc_timestamp',
]
