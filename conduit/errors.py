"""Error types raised by the pipeline stages."""

from typing import Optional


class ConduitError(Exception):
    """Base class for every pipeline failure.

    Subclasses name the stage that failed so callers can report the
    error kind without inspecting messages.
    """

    kind = "ConduitError"

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.identifier = identifier


class HTTPFailure(ConduitError):
    """A failure caused by an HTTP exchange, carrying the raw response."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, identifier)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        text = self.message
        if self.status_code is not None:
            text += f" (HTTP {self.status_code})"
        if self.body:
            text += f"\nResponse: {self.body}"
        return text


class ConfigError(ConduitError):
    """Missing or invalid configuration value."""

    kind = "ConfigError"


class AuthError(HTTPFailure):
    """Token exchange failed or returned no token."""

    kind = "AuthError"


class FetchError(HTTPFailure):
    """Non-JSON or error response from Finicity."""

    kind = "FetchError"


class ValidationError(ConduitError):
    """A persisted JSON file is missing or malformed."""

    kind = "ValidationError"


class TransformError(ConduitError):
    """A transform rule produced output that cannot be persisted."""

    kind = "TransformError"


class UploadError(HTTPFailure):
    """Upload preconditions failed or Ocrolus rejected the bundle."""

    kind = "UploadError"


class StatusFetchError(HTTPFailure):
    """Book status could not be retrieved from Ocrolus."""

    kind = "StatusFetchError"


def missing_variables(names) -> str:
    """Return message listing missing configuration variables."""
    lines = ["Missing required environment variables:"]
    lines.extend(f"  - {name}" for name in names)
    return "\n".join(lines)
