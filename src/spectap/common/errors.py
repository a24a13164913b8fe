"""
Exception types shared across spectap.

Startup-time failures are raised as these (or as FileNotFoundError) and
turned into a diagnostic plus non-zero exit by the CLI.
"""


class SpectapError(Exception):
    """Base class for spectap errors."""


class ConfigError(SpectapError, ValueError):
    """Configuration is missing, unreadable or invalid."""


class SpecLoadError(SpectapError, ValueError):
    """The OpenAPI document could not be read or parsed."""


class SchemaGenerationError(SpectapError):
    """Structural generation could not produce a value for a schema."""
