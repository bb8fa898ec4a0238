"""
Error types and helpers for consistent error reporting.

Every exception raised deliberately by the engine derives
from ``KeksregalError`` so callers at the HTTP boundary can
map them to responses in one place.
"""

from __future__ import annotations


class KeksregalError(Exception):
    """Base class for all engine errors."""


class InvalidRecordError(KeksregalError, ValueError):
    """A cookie record from the store is missing a required field.

    Raised at ingestion; no partial analysis is produced.
    """

    def __init__(self, index: int, detail: str) -> None:
        self.index = index
        self.detail = detail
        super().__init__(f"Invalid cookie record at index {index}: {detail}")


class CookieStoreError(KeksregalError):
    """The record store failed to enumerate or remove cookies."""


class ScanError(KeksregalError):
    """A scan could not be completed; no result was produced."""


class ConfirmationRequiredError(KeksregalError):
    """A destructive removal plan was executed without confirmation."""

    def __init__(self, prompt: str) -> None:
        self.prompt = prompt
        super().__init__(f"Confirmation required: {prompt}")


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
