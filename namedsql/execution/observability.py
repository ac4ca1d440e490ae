from dataclasses import asdict, dataclass, field
import json
import logging
from typing import Any, Callable, Mapping

# ==================================================
# Observability Types
# ==================================================

QueryObserveHook = Callable[["QueryObservation"], None]
EventObserveHook = Callable[["ExecutionEvent"], None]
LabelMap = Mapping[str, str]


@dataclass(frozen=True)
class ObservabilitySettings:
    """
    Hooks notified about statements and handle lifecycle events.
    """

    query_observer: QueryObserveHook | None = None
    event_observer: EventObserveHook | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryObservation:
    """
    One executed statement.
    """

    operation: str
    sql: str
    param_count: int
    duration_ms: float
    succeeded: bool
    in_transaction: bool
    metadata: Mapping[str, Any] = field(default_factory=dict)
    error_type: str | None = None
    error_message: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class ExecutionEvent:
    """
    Structured pool, connection, query or transaction lifecycle event.
    """

    timestamp: str
    event: str
    handle: str
    success: bool
    metadata: Mapping[str, Any] = field(default_factory=dict)
    operation: str | None = None
    query_id: str | None = None
    transaction_id: str | None = None
    connection_id: str | None = None
    duration_ms: float | None = None
    error_type: str | None = None
    error_code: str | None = None
    error_message: str | None = None


def execution_event_to_dict(event: ExecutionEvent) -> dict[str, Any]:
    """
    Converts an ExecutionEvent into a JSON-safe dictionary.
    """
    payload = asdict(event)
    payload["metadata"] = dict(event.metadata)
    return payload


def make_json_event_logger(
    *,
    logger: logging.Logger,
    level: int = logging.INFO,
) -> EventObserveHook:
    """
    Builds an EventObserveHook that emits one JSON log line per ExecutionEvent.
    """

    def _log_event(event: ExecutionEvent) -> None:
        payload = execution_event_to_dict(event)
        logger.log(level, json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str))

    return _log_event


def compose_event_observers(*observers: EventObserveHook) -> EventObserveHook:
    """
    Composes multiple event observers into a single observer.
    """

    def _composed(event: ExecutionEvent) -> None:
        for observer in observers:
            observer(event)

    return _composed


# ==================================================
# In-Memory Metrics
# ==================================================


def _normalize_label(value: str | None, *, fallback: str) -> str:
    if value is None:
        return fallback
    stripped = value.strip()
    return stripped if stripped else fallback


def _event_labels(event: ExecutionEvent) -> dict[str, str]:
    return {
        "handle": _normalize_label(event.handle, fallback="unknown"),
        "operation": _normalize_label(event.operation, fallback="unknown"),
        "error_type": _normalize_label(event.error_type, fallback="none"),
    }


def _labels_key(labels: LabelMap) -> tuple[tuple[str, str], ...]:
    return tuple(sorted((str(key), str(value)) for key, value in labels.items()))


@dataclass(frozen=True)
class MetricPoint:
    """
    Single metric point lookup result.
    """

    name: str
    labels: Mapping[str, str]
    value: int | float


class InMemoryMetricsAdapter:
    """
    Event observer that aggregates ExecutionEvent streams into counters and histograms.
    """

    def __init__(self) -> None:
        self._counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}
        self._histograms: dict[tuple[str, tuple[tuple[str, str], ...]], list[float]] = {}

    def __call__(self, event: ExecutionEvent) -> None:
        labels = _event_labels(event)
        if event.event == "query.end":
            self._inc("namedsql_queries_total", labels, 1)
            if not event.success:
                self._inc("namedsql_query_failures_total", labels, 1)
            if event.duration_ms is not None:
                self._observe("namedsql_query_duration_ms", labels, event.duration_ms)
            return

        if event.event in {"txn.commit", "txn.rollback"}:
            self._inc(f"namedsql_{event.event.replace('.', '_')}_total", labels, 1)
            if not event.success:
                self._inc("namedsql_txn_failures_total", labels, 1)
            if event.duration_ms is not None:
                self._observe("namedsql_txn_duration_ms", labels, event.duration_ms)
            return

        if event.event == "connection.acquire.end" and event.duration_ms is not None:
            self._observe("namedsql_connection_acquire_ms", labels, event.duration_ms)

    def _inc(self, metric: str, labels: LabelMap, delta: int) -> None:
        key = (metric, _labels_key(labels))
        self._counters[key] = self._counters.get(key, 0) + delta

    def _observe(self, metric: str, labels: LabelMap, value: float) -> None:
        key = (metric, _labels_key(labels))
        self._histograms.setdefault(key, []).append(value)

    def counter_value(self, metric: str, labels: LabelMap) -> int:
        return self._counters.get((metric, _labels_key(labels)), 0)

    def histogram_values(self, metric: str, labels: LabelMap) -> list[float]:
        return list(self._histograms.get((metric, _labels_key(labels)), []))

    def counters(self) -> list[MetricPoint]:
        return [
            MetricPoint(name=name, labels=dict(label_key), value=value)
            for (name, label_key), value in self._counters.items()
        ]

    def histograms(self) -> list[MetricPoint]:
        points: list[MetricPoint] = []
        for (name, label_key), values in self._histograms.items():
            for value in values:
                points.append(MetricPoint(name=name, labels=dict(label_key), value=value))
        return points
