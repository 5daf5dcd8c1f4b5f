"""
DocInsight - Error Types
Exceptions raised by the backend client and controller, plus the Outcome value
returned to the presentation layer for every user intent.
"""

from dataclasses import dataclass
from typing import Any, Optional


class DocInsightError(Exception):
    """Base class for all DocInsight errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DocInsightError):
    """User input rejected before any request was issued."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class TransportError(DocInsightError):
    """A backend call failed: network error, timeout, or non-success status."""

    def __init__(self, operation: str, message: str,
                 status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.operation} failed ({self.status_code}): {self.message}"
        return f"{self.operation} failed: {self.message}"


class UploadError(TransportError):
    """Uploading a cluster failed; the staged batch is kept for retry."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__("upload_cluster", message, status_code)


class CacheError(DocInsightError):
    """A fetched blob could not be written to the local cache."""


@dataclass
class Outcome:
    """
    Result of a controller intent.

    Exactly one of three shapes:
      - success: ok=True, value holds the applied result (may be None)
      - failure: ok=False, error holds the exception
      - stale:   ok=False, stale=True; the result belonged to a superseded
                 generation and was dropped without touching state
    """
    ok: bool
    value: Any = None
    error: Optional[DocInsightError] = None
    stale: bool = False

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DocInsightError) -> "Outcome":
        return cls(ok=False, error=error)

    @classmethod
    def discarded(cls) -> "Outcome":
        return cls(ok=False, stale=True)

    @property
    def message(self) -> str:
        """Human-readable description for status bars and dialogs."""
        if self.error is not None:
            return str(self.error)
        if self.stale:
            return "Superseded by a newer selection."
        return ""
