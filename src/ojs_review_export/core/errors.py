"""
Error classes for the review export.

Provides structured exceptions for:
- Configuration errors (database settings, command-line arguments)
- Data-completeness errors (a required lookup returned no rows)
- Invalid data errors (stored values that cannot be decoded)
- Template errors (placeholders with no known symbol)
"""

from typing import Any


class ReviewExportError(Exception):
    """Base exception for all review export errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ReviewExportError):
    """Missing or invalid settings (database credentials, arguments)."""


class MissingDataError(ReviewExportError):
    """
    A lookup the export depends on returned no usable row.

    The export assumes referential completeness of the source database, so
    this is fatal for the review being assembled.
    """

    def __init__(self, lookup: str, key: Any, reason: str | None = None):
        self.lookup = lookup
        self.key = key
        message = f"No {lookup} found for {key!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"lookup": lookup, "key": key})


class InvalidDataError(ReviewExportError):
    """A stored value could not be decoded into the shape the report needs."""

    def __init__(self, what: str, key: Any, reason: str):
        self.what = what
        self.key = key
        super().__init__(f"Invalid {what} for {key!r}: {reason}", {"what": what, "key": key})


class TemplateError(ReviewExportError):
    """A template placeholder names no known symbol."""

    def __init__(self, token: str, line: str):
        self.token = token
        super().__init__(f"Unknown template token {token!r}", {"token": token, "line": line})
