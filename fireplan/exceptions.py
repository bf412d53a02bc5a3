"""
Exceptions for fireplan.

Exception hierarchy
-------------------
FireplanError (base)
    ValidationError       - required input missing or malformed; fails only
                            the computation that needed it
    DataUnavailableError  - collaborator data stale or missing; callers
                            substitute a documented fallback
    ConfigurationError    - invalid configuration or doctrine file
"""

from __future__ import annotations


class FireplanError(Exception):
    """Base class for all fireplan errors."""


class ValidationError(FireplanError):
    """
    Raised when a required input field is missing or not a finite number.

    Parameters
    ----------
    field : str
        Dotted name of the offending field (e.g. ``"snapshot.humidity"``).
    message : str, optional
        Extra detail appended to the message.
    """

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        detail = message or "missing or invalid required field"
        super().__init__(f"{detail}: {field}")


class DataUnavailableError(FireplanError):
    """Raised when a data source cannot provide fresh data."""

    def __init__(self, source: str, message: str | None = None):
        self.source = source
        super().__init__(f"{source}: {message or 'data unavailable'}")


class ConfigurationError(FireplanError):
    """Raised when a configuration or doctrine file is invalid."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{message} (in {path})" if path else message)
