"""
Result types returned by the collaborator clients.

Clients never raise for remote failures; callers branch on the result type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Ok:
    payload: Any


@dataclass(frozen=True)
class Failure:
    message: str
    errors: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NotFound(Failure):
    """Lookup key did not match anything (HTTP 404)."""


@dataclass(frozen=True)
class ValidationFailed(Failure):
    """Request was rejected as malformed or invalid (other HTTP 4xx)."""


@dataclass(frozen=True)
class ServerError(Failure):
    """HTTP 5xx, transport failure or an unreadable response body."""


ServiceResult = Union[Ok, NotFound, ValidationFailed, ServerError]


def failure_for_status(status_code: int, message: str, errors: dict | None = None) -> Failure:
    """Map a non-2xx status code onto the failure taxonomy."""
    errors = errors or {}
    if status_code == 404:
        return NotFound(message, errors)
    if 400 <= status_code < 500:
        return ValidationFailed(message, errors)
    return ServerError(message, errors)
