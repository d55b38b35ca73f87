"""Correlation identifiers that follow a request through the system."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

_current: ContextVar[str] = ContextVar("correlation_id", default="")


def _header(headers: Mapping[str, str], name: str) -> str:
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            return value or ""
    return ""


def resolve_correlation_id(headers: Mapping[str, str]) -> str:
    """Pick the incoming correlation id, fall back to the request id, else mint one."""
    incoming = _header(headers, CORRELATION_HEADER).strip()
    if not incoming:
        incoming = _header(headers, REQUEST_ID_HEADER).strip()
    if not incoming:
        incoming = str(uuid.uuid4())
    return incoming


def get_correlation_id() -> str:
    """The correlation id bound to the current context, or an empty string."""
    return _current.get()


@contextmanager
def correlation_scope(correlation_id: str | None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block.

    A blank id leaves the current binding untouched.
    """
    cleaned = (correlation_id or "").strip()
    if not cleaned:
        yield _current.get()
        return
    token = _current.set(cleaned)
    try:
        yield cleaned
    finally:
        _current.reset(token)