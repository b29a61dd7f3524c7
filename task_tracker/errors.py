from __future__ import annotations

from typing import Mapping, Optional


class TaskTrackerError(RuntimeError):
    """Base class for every failure the client converts into user-facing state."""


class ValidationError(TaskTrackerError):
    """Local, pre-network validation failure."""

    def __init__(self, message: str, *, field_errors: Optional[Mapping[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field_errors: dict[str, str] = dict(field_errors or {})


class NetworkError(TaskTrackerError):
    """Transport failure or timeout while talking to the task service."""


class ApiError(TaskTrackerError):
    """The task service answered with an error status."""

    def __init__(self, message: str, *, status_code: int, server_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.server_message = server_message


class AuthError(TaskTrackerError):
    """Credentials were rejected or the stored session could not be trusted."""


class ConflictError(ApiError):
    """Registration rejected because the username or email is already taken."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        field: Optional[str],
        server_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, status_code=status_code, server_message=server_message)
        self.field = field


def conflict_field(message: str) -> Optional[str]:
    """Attribute a registration conflict to a form field from the server text.

    Best effort only: the server sends free text, so this matches on substrings.
    """

    lowered = message.lower()
    if "username" in lowered:
        return "username"
    if "email" in lowered:
        return "email"
    return None


__all__ = [
    "ApiError",
    "AuthError",
    "ConflictError",
    "NetworkError",
    "TaskTrackerError",
    "ValidationError",
    "conflict_field",
]
