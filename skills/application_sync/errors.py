"""Error types shared by the sync pipeline and its adapters."""

from __future__ import annotations


class TransientError(RuntimeError):
    """Raised for upstream failures worth retrying (network, rate limit, 5xx)."""


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""
