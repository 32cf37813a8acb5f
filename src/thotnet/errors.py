"""Application error hierarchy.

Every error raised across a route boundary derives from ThotNetError and
carries the HTTP status it maps to. Route handlers let these propagate;
the exception handlers in thotnet.web.api turn them into the JSON envelope.
"""

from __future__ import annotations

from typing import Any


class ThotNetError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None):
        self.message = message or self.public_message
        self.details = details or []
        super().__init__(self.message)


class ValidationFailed(ThotNetError):
    """Malformed or missing input."""

    status_code = 400
    public_message = "Invalid request"


class AuthenticationRequired(ThotNetError):
    """Missing, unknown or expired session."""

    status_code = 401
    public_message = "Unauthorized"


class NotFound(ThotNetError):
    status_code = 404
    public_message = "Not found"


class Conflict(ThotNetError):
    status_code = 409
    public_message = "Conflict"


class UpstreamError(ThotNetError):
    """Database or LLM provider failure."""

    status_code = 500
    public_message = "Upstream service failed"


class UpstreamTimeout(ThotNetError):
    status_code = 504
    public_message = "Generation took too long - please try again"
