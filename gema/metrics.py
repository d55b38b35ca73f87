"""In-process metric collectors with a Prometheus text exposition."""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Iterator, Sequence
from typing import ClassVar, Optional, Union

DEFAULT_BUCKETS: tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0,
)
ADMIN_LATENCY_BUCKETS: tuple[float, ...] = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0)

_LabelKey = tuple[str, ...]


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if math.isnan(value):
        return "NaN"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _label_text(names: Sequence[str], values: Sequence[str]) -> str:
    if not names:
        return ""
    pairs = ",".join(f'{name}="{_escape_label(value)}"' for name, value in zip(names, values))
    return "{" + pairs + "}"


class _Metric:
    kind: ClassVar[str] = "untyped"

    def __init__(self, name: str, help: str, labels: Iterable[str] = ()) -> None:
        self.name = name
        self.help = help
        self.labels: tuple[str, ...] = tuple(labels)
        self._lock = threading.Lock()

    def _key(self, label_values: Sequence[object]) -> _LabelKey:
        if len(label_values) != len(self.labels):
            raise ValueError(
                f"{self.name} expects {len(self.labels)} label values, got {len(label_values)}"
            )
        return tuple(str(value) for value in label_values)

    def _samples(self) -> Iterator[str]:
        raise NotImplementedError

    def render(self) -> list[str]:
        lines = [
            f"# HELP {self.name} {_escape_help(self.help)}",
            f"# TYPE {self.name} {self.kind}",
        ]
        lines.extend(self._samples())
        return lines


class Counter(_Metric):
    """A monotonically increasing count, optionally split by labels."""

    kind = "counter"

    def __init__(self, name: str, help: str, labels: Iterable[str] = ()) -> None:
        super().__init__(name, help, labels)
        self._values: dict[_LabelKey, int] = {}

    def inc(self, *label_values: object) -> None:
        """Add one to the series identified by the label values."""
        key = self._key(label_values)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + 1

    def get(self, *label_values: object) -> int:
        """Current count of the series; zero when it was never incremented."""
        key = self._key(label_values)
        with self._lock:
            return self._values.get(key, 0)

    def _samples(self) -> Iterator[str]:
        with self._lock:
            items = sorted(self._values.items())
        if not self.labels and not items:
            items = [((), 0)]
        for key, value in items:
            yield f"{self.name}{_label_text(self.labels, key)} {_format_number(value)}"


class Gauge(_Metric):
    """A single value that can go up and down."""

    kind = "gauge"

    def __init__(self, name: str, help: str) -> None:
        super().__init__(name, help)
        self._value = 0.0

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def inc(self) -> None:
        with self._lock:
            self._value += 1

    def dec(self) -> None:
        with self._lock:
            self._value -= 1

    def _samples(self) -> Iterator[str]:
        yield f"{self.name} {_format_number(self.value)}"


class _Series:
    __slots__ = ("counts", "total", "count")

    def __init__(self, size: int) -> None:
        self.counts = [0] * size
        self.total = 0.0
        self.count = 0


class Histogram(_Metric):
    """Observations sorted into cumulative upper-bound buckets."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        help: str,
        buckets: Optional[Iterable[float]] = None,
        labels: Iterable[str] = (),
    ) -> None:
        super().__init__(name, help, labels)
        bounds = tuple(float(b) for b in (DEFAULT_BUCKETS if buckets is None else buckets))
        bounds = tuple(b for b in bounds if not math.isinf(b))
        if not bounds:
            raise ValueError("a histogram needs at least one finite bucket")
        if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be strictly increasing")
        self.buckets = bounds
        self._series: dict[_LabelKey, _Series] = {}

    def observe(self, value: float, *label_values: object) -> None:
        """Record one observation in the series identified by the label values."""
        key = self._key(label_values)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = self._series[key] = _Series(len(self.buckets) + 1)
            index = next(
                (i for i, bound in enumerate(self.buckets) if value <= bound),
                len(self.buckets),
            )
            series.counts[index] += 1
            series.total += value
            series.count += 1

    def count(self, *label_values: object) -> int:
        """Number of observations recorded for the series."""
        key = self._key(label_values)
        with self._lock:
            series = self._series.get(key)
            return series.count if series else 0

    def bucket_counts(self, *label_values: object) -> dict[float, int]:
        """Cumulative counts per upper bound, ending with ``math.inf``."""
        key = self._key(label_values)
        with self._lock:
            series = self._series.get(key)
            counts = list(series.counts) if series else [0] * (len(self.buckets) + 1)
        result: dict[float, int] = {}
        running = 0
        for bound, amount in zip((*self.buckets, math.inf), counts):
            running += amount
            result[bound] = running
        return result

    def _samples(self) -> Iterator[str]:
        with self._lock:
            keys = sorted(self._series)
            snapshot = {
                key: (self._series[key].total, self._series[key].count) for key in keys
            }
        if not self.labels and not keys:
            keys = [()]
            snapshot = {(): (0.0, 0)}
        bucket_labels = (*self.labels, "le")
        for key in keys:
            cumulative = self.bucket_counts(*key)
            for bound, amount in cumulative.items():
                labels = _label_text(bucket_labels, (*key, _format_number(bound)))
                yield f"{self.name}_bucket{labels} {amount}"
            total, count = snapshot[key]
            label_text = _label_text(self.labels, key)
            yield f"{self.name}_sum{label_text} {_format_number(total)}"
            yield f"{self.name}_count{label_text} {count}"


class Registry:
    """A named collection of metrics rendered together."""

    def __init__(self) -> None:
        self._metrics: dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def register(self, metric: _Metric) -> _Metric:
        """Add a metric; a second metric with the same name is rejected."""
        with self._lock:
            if metric.name in self._metrics:
                raise ValueError(f"duplicate metric name: {metric.name}")
            self._metrics[metric.name] = metric
        return metric

    def render(self) -> str:
        """All registered metrics in the Prometheus text format."""
        with self._lock:
            metrics = list(self._metrics.values())
        lines: list[str] = []
        for metric in metrics:
            lines.extend(metric.render())
        return "\n".join(lines) + "\n"


class AppMetrics:
    """Every collector the API reports, registered in one registry."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry or Registry()
        add = self.registry.register

        self.admin_requests = add(Counter(
            "admin_requests_total", "Total number of admin API requests served.",
            ("method", "route", "status")))
        self.admin_latency = add(Histogram(
            "admin_latency_seconds", "Latency distribution for admin API requests.",
            ADMIN_LATENCY_BUCKETS, ("method", "route")))
        self.admin_errors = add(Counter(
            "admin_errors_total", "Total number of error responses returned by admin endpoints.",
            ("method", "route", "status")))
        self.chat_connections = add(Counter(
            "chat_connections_total", "Total number of websocket chat connections established."))
        self.chat_disconnects = add(Counter(
            "chat_disconnects_total", "Total number of websocket chat disconnects observed."))
        self.chat_messages_sent = add(Counter(
            "chat_messages_sent", "Total chat messages sent segmented by type.", ("type",)))
        self.sse_clients_active = add(Gauge(
            "sse_clients_active", "Number of active SSE clients streaming notifications."))
        self.notifications_published = add(Counter(
            "notifications_published_total",
            "Total number of notifications published segmented by type.", ("type",)))
        self.realtime_errors = add(Counter(
            "realtime_errors_total",
            "Total number of realtime streaming errors segmented by component and reason.",
            ("component", "reason")))
        self.active_activities_requests = add(Counter(
            "active_activities_requests_total",
            "Total number of active activity feed requests.", ("result",)))
        self.active_activities_latency = add(Histogram(
            "active_activities_latency_seconds",
            "Latency distribution for active activities endpoint."))
        self.announcements_requests = add(Counter(
            "announcements_requests_total",
            "Total number of announcements requests served.", ("result",)))
        self.announcements_latency = add(Histogram(
            "announcements_latency_seconds", "Latency distribution for announcements endpoint."))
        self.gallery_requests = add(Counter(
            "gallery_requests_total", "Total number of gallery requests served.", ("result",)))
        self.gallery_latency = add(Histogram(
            "gallery_latency_seconds", "Latency distribution for gallery endpoint."))
        self.contact_submissions = add(Counter(
            "contact_submissions_total",
            "Total number of contact submissions processed.", ("status",)))
        self.upload_requests = add(Counter(
            "upload_requests_total",
            "Total number of upload requests processed by type.", ("type",)))
        self.upload_rejected = add(Counter(
            "upload_rejected_total",
            "Total number of upload rejections segmented by reason.", ("reason",)))
        self.upload_latency = add(Histogram(
            "upload_latency_seconds", "Latency distribution for upload endpoint."))


_instance: Optional[AppMetrics] = None
_instance_lock = threading.Lock()


def get_metrics() -> AppMetrics:
    """The process-wide metrics, created on first use."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = AppMetrics()
        return _instance