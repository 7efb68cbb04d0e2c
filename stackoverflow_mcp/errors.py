"""Exception taxonomy for the Stack Overflow MCP server."""

import re
from typing import Optional

RATE_LIMIT_STATUS = 429
THROTTLE_ERROR_NAME = "throttle_violation"
_EMBEDDED_429 = re.compile(r"\b429\b")


class StackOverflowMCPError(Exception):
    """Base class for every error raised by the server's core."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(StackOverflowMCPError):
    """Malformed or missing tool arguments. Never retried."""


class UnknownTool(InvalidInput):
    """The requested tool name is not one of the registered tools."""


class PolicyRejected(StackOverflowMCPError):
    """A write precondition failed. Never retried."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ConfigurationError(StackOverflowMCPError):
    """Required credentials are missing for a write operation."""


class RemoteApiError(StackOverflowMCPError):
    """
    The Stack Exchange API returned a structured error.

    The remote ``error_message`` is kept verbatim in ``message``.
    """

    def __init__(
        self,
        code: int,
        message: str,
        status: Optional[int] = None,
        name: Optional[str] = None,
    ):
        self.code = code
        self.status = status
        self.name = name
        super().__init__(message)

    @property
    def is_rate_limited(self) -> bool:
        """True if the remote side is telling us to slow down."""
        if self.status == RATE_LIMIT_STATUS or self.code == RATE_LIMIT_STATUS:
            return True
        return self.name == THROTTLE_ERROR_NAME

    def __str__(self) -> str:
        label = f"{self.code} {self.name}" if self.name else str(self.code)
        return f"Stack Overflow API error ({label}): {self.message}"


class TransportError(StackOverflowMCPError):
    """The request never produced a well-formed API response."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ExhaustedRetries(StackOverflowMCPError):
    """Local throttling kept a call waiting longer than allowed."""


def is_rate_limited(error: BaseException) -> bool:
    """
    Check whether an arbitrary exception signals remote rate limiting.

    Our own ``RemoteApiError`` decides from its status, code and name only;
    other core errors (a ``TransportError`` naming a path such as
    ``/posts/429/...``) never count. Foreign errors with an HTTP ``status``
    attribute (e.g. ``aiohttp.ClientResponseError``) are judged by it, and
    only errors without one fall back to a 429 embedded in the message.
    """
    if isinstance(error, RemoteApiError):
        return error.is_rate_limited
    if isinstance(error, StackOverflowMCPError):
        return False
    status = getattr(error, "status", None)
    if status is not None:
        return status == RATE_LIMIT_STATUS
    return bool(_EMBEDDED_429.search(str(error)))
