import time

import jwt
import pytest

from gema.middleware.auth import (
    AuthenticationError,
    authenticate,
    extract_role,
    extract_user_id,
)

SECRET = "secret"


def _bearer(payload, key=SECRET, algorithm="HS256", scheme="Bearer"):
    encoded = jwt.encode(payload, key, algorithm=algorithm)
    return f"{scheme} {encoded}"


def _message(authorization, secret=SECRET):
    with pytest.raises(AuthenticationError) as info:
        authenticate(authorization, secret)
    assert info.value.status == 401
    return info.value.message


def test_missing_header():
    assert _message(None) == "authorization header missing"
    assert _message("") == "authorization header missing"


def test_wrong_scheme():
    assert _message("Basic token") == "invalid authorization header"


def test_empty_token():
    assert _message("Bearer    ") == "invalid token"


def test_malformed_token():
    assert _message("Bearer token") == "invalid token"


def test_wrong_key_is_rejected():
    assert _message(_bearer({"sub": "1"}, key="placeholder")) == "invalid token"


def test_unsigned_token_is_rejected():
    assert _message(_bearer({"sub": "1"}, key=None, algorithm="none")) == "invalid token"


def test_expired_token_is_rejected():
    header = _bearer({"sub": "1", "exp": int(time.time()) - 60})
    assert _message(header) == "invalid token"


def test_valid_token_yields_identity():
    identity = authenticate(_bearer({"sub": "7", "role": " Admin "}), SECRET)
    assert identity.user_id == 7
    assert identity.role == "admin"
    assert identity.claims["sub"] == "7"


def test_scheme_is_case_insensitive_and_numeric_subject_accepted():
    identity = authenticate(_bearer({"sub": 12, "roles": ["Teacher"]}, scheme="bearer"), SECRET)
    assert identity.user_id == 12
    assert identity.role == "teacher"


def test_token_without_identity_claims():
    identity = authenticate(_bearer({"scope": "read"}), SECRET)
    assert identity.user_id is None
    assert identity.role == ""


def test_extract_user_id_skips_invalid_candidates():
    assert extract_user_id({"sub": -1.0, "user_id": "12"}) == 12
    assert extract_user_id({"sub": "abc", "id": 3.9}) == 3
    assert extract_user_id({"sub": "-4", "user_id": "+5", "id": 9}) == 9


def test_extract_user_id_rejects_unsupported_types():
    assert extract_user_id({"sub": True}) is None
    assert extract_user_id({"sub": None, "id": ["1"]}) is None
    assert extract_user_id({}) is None


def test_extract_role_falls_through_blank_values():
    assert extract_role({"role": "   ", "roles": ["", "Teacher"]}) == "teacher"
    assert extract_role({"roles": [1, " Student "]}) == "student"


def test_extract_role_ignores_unsupported_values():
    assert extract_role({"role": 5}) == ""
    assert extract_role({"roles": [None, 3]}) == ""