"""Typed error taxonomy shared by the LLM client, retry policy and receipt pipeline.

Every error carries an explicit :class:`ErrorKind` set once at construction.
Callers branch on ``error.kind`` and never on the class name.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    DOMAIN = "domain"
    API = "api"
    UNKNOWN = "unknown"


class AIError(Exception):
    """Base class for all classified errors. Used directly for ``UNKNOWN``."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message = "Unknown error occurred"
    default_status_code: int | None = None

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.status_code = status_code if status_code is not None else self.default_status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, status_code={self.status_code!r})"


class ConfigurationError(AIError):
    kind = ErrorKind.CONFIGURATION
    default_message = "Missing required configuration"


class NetworkError(AIError):
    kind = ErrorKind.NETWORK
    default_message = "Network request failed"


class AITimeoutError(AIError):
    kind = ErrorKind.TIMEOUT
    default_message = "Request timeout after 20 seconds"


class AuthenticationError(AIError):
    kind = ErrorKind.AUTHENTICATION
    default_message = "Invalid API key"
    default_status_code = 401


class RateLimitError(AIError):
    kind = ErrorKind.RATE_LIMIT
    default_message = "Rate limit exceeded"
    default_status_code = 429


class AIValidationError(AIError):
    """Malformed request or unparsable/invalid response."""

    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"
    default_status_code = 400

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.details = details


class APIError(AIError):
    kind = ErrorKind.API
    default_message = "API request failed"

    def __init__(self, message: str | None = None, *, status_code: int) -> None:
        super().__init__(message, status_code=status_code)


def error_kind(error: BaseException) -> ErrorKind | None:
    """Return the kind of a classified error, ``None`` for anything else."""
    if isinstance(error, AIError):
        return error.kind
    return None
