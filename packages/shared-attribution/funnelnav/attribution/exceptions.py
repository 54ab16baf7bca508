"""Custom exceptions for the attribution engine."""

from __future__ import annotations


class AttributionError(Exception):
    """Base exception for attribution errors."""

    pass


class DateParseError(AttributionError, ValueError):
    """Raised when a date string cannot be parsed."""

    pass


class InputShapeError(AttributionError):
    """Raised when an input bundle has an unexpected shape in strict mode."""

    pass


class ConfigError(AttributionError):
    """Raised when attribution configuration is invalid."""

    pass
