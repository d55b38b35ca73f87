import logging
from datetime import timedelta

import pytest

from gema.metrics import get_metrics
from gema.middleware.correlation import correlation_scope
from gema.middleware.observability import latency_bucket, record_admin_request


@pytest.mark.parametrize(
    "seconds, label",
    [
        (0.0, "<=25ms"),
        (0.025, "<=25ms"),
        (0.04, "<=50ms"),
        (0.1, "<=100ms"),
        (0.2, "<=250ms"),
        (0.5, "<=500ms"),
        (0.75, ">500ms"),
    ],
)
def test_latency_bucket(seconds, label):
    assert latency_bucket(seconds) == label


def test_latency_bucket_accepts_timedelta():
    assert latency_bucket(timedelta(milliseconds=30)) == latency_bucket(0.03)


def test_non_admin_path_is_ignored():
    metrics = get_metrics()
    before = metrics.admin_requests.get("GET", "/api/v1/health", "200")
    result = record_admin_request("GET", "/api/v1/health", "/api/v1/health", 200, 0.01)
    assert result is None
    assert metrics.admin_requests.get("GET", "/api/v1/health", "200") == before


def test_success_counts_request_without_error(caplog):
    metrics = get_metrics()
    route = "/api/admin/obs-success/:id"
    before = metrics.admin_requests.get("GET", route, "200")
    errors_before = metrics.admin_errors.get("GET", route, "200")
    latency_before = metrics.admin_latency.count("GET", route)
    logger = logging.getLogger("test.observability.success")
    with caplog.at_level(logging.INFO, logger="test.observability.success"):
        fields = record_admin_request("GET", "/api/admin/obs-success/3", route, 200, 0.03, logger)
    assert metrics.admin_requests.get("GET", route, "200") == before + 1
    assert metrics.admin_errors.get("GET", route, "200") == errors_before
    assert metrics.admin_latency.count("GET", route) == latency_before + 1
    assert fields["route"] == route
    assert fields["latency_bucket"] == latency_bucket(0.03)
    assert [r.getMessage() for r in caplog.records] == ["admin request completed"]
    assert caplog.records[0].levelname == "INFO"


def test_client_error_is_counted_and_warned(caplog):
    metrics = get_metrics()
    route = "/api/admin/obs-client"
    before = metrics.admin_errors.get("POST", route, "404")
    logger = logging.getLogger("test.observability.client")
    with caplog.at_level(logging.INFO, logger="test.observability.client"):
        record_admin_request("POST", route, route, 404, 0.01, logger)
    assert metrics.admin_errors.get("POST", route, "404") == before + 1
    assert caplog.records[0].levelname == "WARNING"
    assert caplog.records[0].getMessage() == "admin request completed with client error"


def test_server_error_is_logged_as_error(caplog):
    logger = logging.getLogger("test.observability.server")
    with caplog.at_level(logging.INFO, logger="test.observability.server"):
        fields = record_admin_request("DELETE", "/api/admin/obs-server", "", 503, 0.9, logger)
    assert caplog.records[0].levelname == "ERROR"
    assert caplog.records[0].getMessage() == "admin request failed"
    assert caplog.records[0].status == 503
    assert fields["route"] == "/api/admin/obs-server"


def test_fields_carry_correlation_id():
    with correlation_scope("corr-obs"):
        fields = record_admin_request(
            "GET", "/api/admin/obs-corr", "/api/admin/obs-corr", 200, timedelta(milliseconds=5)
        )
    assert fields["correlation_id"] == "corr-obs"
    assert fields["latency_ms"] == pytest.approx(5.0)