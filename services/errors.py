from __future__ import annotations

from typing import Optional


class NetworkInsightsError(Exception):
    """Base exception for import, graph and comparison failures."""


class MalformedInputError(NetworkInsightsError):
    """Raised when a line or file cannot be parsed."""

    def __init__(self, message: str, *, filename: Optional[str] = None, line_no: Optional[int] = None) -> None:
        location = ""
        if filename:
            location = f" ({filename}" + (f":{line_no}" if line_no is not None else "") + ")"
        super().__init__(f"{message}{location}")
        self.filename = filename
        self.line_no = line_no


class NoContactsFoundError(MalformedInputError):
    """Raised when an import yields zero usable contacts across all files."""


class ValidationError(NetworkInsightsError):
    """Raised when a profile is missing a required field."""

    def __init__(self, field: str, record_key: Optional[str] = None) -> None:
        super().__init__(f"Profile missing required field: {field}" + (f" [{record_key}]" if record_key else ""))
        self.field = field
        self.record_key = record_key


class ExternalServiceError(NetworkInsightsError):
    """Raised when the enrichment provider fails or returns unusable data."""


class PersistenceError(NetworkInsightsError):
    """Raised when a storage write fails for a single record or edge."""


class NotFoundError(NetworkInsightsError):
    """Raised when a referenced node, profile, mapping or session is absent."""
