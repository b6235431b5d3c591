"""Custom exception types for the Opsgenie reports."""

from typing import Optional


class OpsgenieReportsError(Exception):
    """Base exception for all recoverable report errors."""


class ConfigurationError(OpsgenieReportsError):
    """Raised when a credential, identifier or date input is missing or malformed."""


class RemoteServiceError(OpsgenieReportsError):
    """Raised when an Opsgenie API request fails or returns an unexpected response.

    Attributes:
        status: HTTP status code, or ``None`` when no response was received.
        body: Raw response body text, if any.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class NotFoundError(OpsgenieReportsError):
    """Raised when a named resource, such as a schedule, has no match."""
