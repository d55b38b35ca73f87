"""Bearer token authentication with HMAC-signed JWTs."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import jwt

_BEARER = "bearer "
_ALGORITHMS = ["HS256", "HS384", "HS512"]
_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": True,
    "verify_nbf": True,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}
_USER_ID_KEYS = ("sub", "user_id", "id")
_ROLE_KEYS = ("role", "roles")
_DIGITS = re.compile(r"[0-9]+")
_UINT64_MAX = 2**64 - 1


class AuthenticationError(Exception):
    """Raised when a request cannot be authenticated."""

    status = 401

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Identity:
    """The caller described by a verified token."""

    user_id: Optional[int]
    role: str
    claims: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


def authenticate(authorization: str | None, secret: str) -> Identity:
    """Verify an ``Authorization: Bearer`` value and return the caller's identity."""
    if not authorization:
        raise AuthenticationError("authorization header missing")
    if not authorization.lower().startswith(_BEARER):
        raise AuthenticationError("invalid authorization header")

    encoded = authorization[len(_BEARER):].strip()
    if not encoded:
        raise AuthenticationError("invalid token")

    try:
        claims = jwt.decode(
            encoded, secret, algorithms=_ALGORITHMS, options=_DECODE_OPTIONS
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError("invalid token") from exc

    if not isinstance(claims, dict):
        raise AuthenticationError("invalid token claims")

    return Identity(
        user_id=extract_user_id(claims),
        role=extract_role(claims),
        claims=claims,
    )


def _normalize_user_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("unsupported subject type")
    if isinstance(value, float):
        if not math.isfinite(value) or value < 0:
            raise ValueError("invalid subject")
        return int(value)
    if isinstance(value, int):
        if value < 0:
            raise ValueError("invalid subject")
        return value
    if isinstance(value, str):
        if not _DIGITS.fullmatch(value):
            raise ValueError("invalid subject")
        parsed = int(value)
        if parsed > _UINT64_MAX:
            raise ValueError("subject out of range")
        return parsed
    raise ValueError("unsupported subject type")


def extract_user_id(claims: Mapping[str, Any]) -> Optional[int]:
    """The first usable user id among ``sub``, ``user_id`` and ``id``."""
    for key in _USER_ID_KEYS:
        if key in claims:
            try:
                return _normalize_user_id(claims[key])
            except ValueError:
                continue
    return None


def _normalize_role(value: Any) -> str:
    if isinstance(value, str):
        return value.strip().lower()
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str):
                role = item.strip().lower()
                if role:
                    return role
    return ""


def extract_role(claims: Mapping[str, Any]) -> str:
    """The first non-empty role among ``role`` and ``roles``, lower-cased."""
    for key in _ROLE_KEYS:
        if key in claims:
            role = _normalize_role(claims[key])
            if role:
                return role
    return ""