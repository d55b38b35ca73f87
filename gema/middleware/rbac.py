"""Role-based access checks."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class PermissionDenied(Exception):
    """Raised when the caller's role is not among the allowed ones."""

    status = 403

    def __init__(self, message: str = "insufficient permissions") -> None:
        super().__init__(message)
        self.message = message


def normalize_role_value(value: Any) -> str:
    """Lower-case, trimmed text form of a role value; empty for None."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip().lower()
    return str(value).strip().lower()


def require_role(*roles: str) -> Callable[[Any], str]:
    """Build a check that accepts only the given roles.

    The returned callable takes the caller's role value, returns the
    normalised role when it is allowed and raises PermissionDenied otherwise.
    """
    allowed = frozenset(
        normalized for normalized in (role.strip().lower() for role in roles) if normalized
    )

    def check(role_value: Any) -> str:
        role = normalize_role_value(role_value)
        if role not in allowed:
            raise PermissionDenied()
        return role

    return check