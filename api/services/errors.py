"""
Error types shared by Rapport services and routes.

Every error carries the HTTP status it maps to. The application's exception
handler renders them as {"error": message} plus "raw" when upstream text is
attached.
"""
from typing import Any, Optional


class RapportError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, raw: Any = None):
        self.message = message
        self.raw = raw
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the JSON error body."""
        body = {"error": self.message}
        if self.raw is not None:
            body["raw"] = self.raw
        return body


class InvalidRequestError(RapportError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFoundError(RapportError):
    """A referenced record does not exist."""

    status_code = 404


class ConfigurationError(RapportError):
    """A required setting (API key, store URL) is missing."""


class UpstreamError(RapportError):
    """The record store or completion API failed or was unreachable."""

    def __init__(self, message: str, raw: Any = None, upstream_status: Optional[int] = None):
        super().__init__(message, raw=raw)
        self.upstream_status = upstream_status


class EmptyResponseError(RapportError):
    """The completion API returned no text."""


class MalformedResponseError(RapportError):
    """The completion text could not be parsed as a JSON object."""
