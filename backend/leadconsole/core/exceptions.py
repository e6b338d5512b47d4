"""
Error taxonomy for the lead console.

Every rejected call raises one of these so callers can branch on a stable
``kind`` string. The FastAPI app renders them as JSON error bodies with the
matching HTTP status (see ``main.py``).
"""

from typing import Any, Optional


class ConsoleError(Exception):
    """Base class for all errors surfaced to callers."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(ConsoleError):
    """No verified identity accompanied the call."""

    kind = "unauthenticated"
    status_code = 401


class PermissionDenied(ConsoleError):
    """The caller's role is not in the operation's allow-list."""

    kind = "permission-denied"
    status_code = 403


class InvalidArgument(ConsoleError):
    """A required field is missing or malformed."""

    kind = "invalid-argument"
    status_code = 400


class NotFound(ConsoleError):
    kind = "not-found"
    status_code = 404


class AlreadyExists(ConsoleError):
    """A uniqueness rule (e.g. one lead per phone number) was violated."""

    kind = "already-exists"
    status_code = 409


class Internal(ConsoleError):
    """Unexpected store or provider failure."""

    kind = "internal"
    status_code = 500
