"""Metrics and structured logging for admin requests."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional, Union

from gema.metrics import get_metrics
from gema.middleware.correlation import get_correlation_id

ADMIN_PREFIX = "/api/admin"

_LATENCY_BUCKETS = (
    (0.025, "<=25ms"),
    (0.050, "<=50ms"),
    (0.100, "<=100ms"),
    (0.250, "<=250ms"),
    (0.500, "<=500ms"),
)

_default_logger = logging.getLogger("gema.admin")


def latency_bucket(seconds: Union[float, timedelta]) -> str:
    """Coarse label for a request duration."""
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()
    for limit, label in _LATENCY_BUCKETS:
        if seconds <= limit:
            return label
    return ">500ms"


def record_admin_request(
    method: str,
    path: str,
    route: str,
    status: int,
    duration: Union[float, timedelta],
    logger: Optional[logging.Logger] = None,
) -> Optional[dict[str, Any]]:
    """Count, time and log a finished request under the admin prefix.

    Returns the logged fields, or None when the path is not an admin path.
    """
    if not path.startswith(ADMIN_PREFIX):
        return None
    if isinstance(duration, timedelta):
        duration = duration.total_seconds()

    template = route or path
    status_label = str(status)
    metrics = get_metrics()
    metrics.admin_requests.inc(method, template, status_label)
    metrics.admin_latency.observe(duration, method, template)
    if status >= 400:
        metrics.admin_errors.inc(method, template, status_label)

    fields: dict[str, Any] = {
        "correlation_id": get_correlation_id(),
        "route": template,
        "method": method,
        "status": status,
        "latency_ms": duration * 1000.0,
        "latency_bucket": latency_bucket(duration),
    }

    log = logger or _default_logger
    if status >= 500:
        log.error("admin request failed", extra=fields)
    elif status >= 400:
        log.warning("admin request completed with client error", extra=fields)
    else:
        log.info("admin request completed", extra=fields)
    return fields