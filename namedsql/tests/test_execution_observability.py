import json
import logging
from unittest.mock import MagicMock

import pytest

from namedsql.execution.database import Database
from namedsql.execution.observability import (
    ExecutionEvent,
    InMemoryMetricsAdapter,
    ObservabilitySettings,
    QueryObservation,
    compose_event_observers,
    execution_event_to_dict,
    make_json_event_logger,
)
from namedsql.execution.transaction import Transaction


class _FakeDriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.asyncio
async def test_query_observer_receives_success(mock_pool: MagicMock) -> None:
    observations: list[QueryObservation] = []
    db = await Database.connect(
        "postgresql://localhost/app",
        observability_settings=ObservabilitySettings(
            query_observer=observations.append,
            metadata={"service": "unit-test"},
        ),
    )

    await db.named_query("insert into t (id, value) values ($id, $value)", {"id": 1, "value": "x"})

    assert len(observations) == 1
    observation = observations[0]
    assert observation.operation == "named_query"
    assert observation.sql == "insert into t (id, value) values ($1, $2)"
    assert observation.param_count == 2
    assert observation.succeeded is True
    assert observation.in_transaction is False
    assert observation.duration_ms >= 0
    assert observation.metadata["service"] == "unit-test"
    assert observation.error_type is None


@pytest.mark.asyncio
async def test_query_observer_receives_failure_with_sqlstate(
    mock_pool: MagicMock, mock_connection: MagicMock
) -> None:
    observations: list[QueryObservation] = []
    mock_connection.execute.side_effect = _FakeDriverError("relation does not exist", "42P01")
    db = await Database.connect(
        "postgresql://localhost/app",
        observability_settings=ObservabilitySettings(query_observer=observations.append),
    )

    with pytest.raises(_FakeDriverError):
        await db.query("select * from missing")

    assert len(observations) == 1
    failed = observations[0]
    assert failed.operation == "query"
    assert failed.succeeded is False
    assert failed.error_type == "_FakeDriverError"
    assert failed.error_code == "42P01"


@pytest.mark.asyncio
async def test_event_stream_for_transaction(mock_pool: MagicMock) -> None:
    events: list[ExecutionEvent] = []
    db = await Database.connect(
        "postgresql://localhost/app",
        observability_settings=ObservabilitySettings(event_observer=events.append),
    )

    async def work(tx: Transaction) -> None:
        await tx.query("select 1")

    await db.transaction(work)

    assert [event.event for event in events] == [
        "pool.open",
        "connection.acquire.start",
        "connection.acquire.end",
        "txn.begin",
        "query.start",
        "query.end",
        "txn.commit",
        "connection.release",
    ]
    tx_ids = {event.transaction_id for event in events if event.event.startswith("txn.")}
    assert len(tx_ids) == 1
    query_ids = {event.query_id for event in events if event.event.startswith("query.")}
    assert len(query_ids) == 1
    assert all(event.success for event in events)


@pytest.mark.asyncio
async def test_failed_rollback_is_emitted_as_event(mock_pool: MagicMock, mock_connection: MagicMock) -> None:
    events: list[ExecutionEvent] = []

    async def execute(sql, params=None):
        if sql == "rollback":
            raise _FakeDriverError("connection lost", "08006")
        return MagicMock(description=None, rowcount=0)

    mock_connection.execute.side_effect = execute
    db = await Database.connect(
        "postgresql://localhost/app",
        observability_settings=ObservabilitySettings(event_observer=events.append),
    )

    async def work(tx: Transaction) -> None:
        raise ValueError("work failed")

    with pytest.raises(ValueError):
        await db.transaction(work)

    rollback = [event for event in events if event.event == "txn.rollback"]
    assert len(rollback) == 1
    assert rollback[0].success is False
    assert rollback[0].error_code == "08006"
    assert events[-1].event == "connection.release"


def test_json_event_logger_emits_structured_payload(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("namedsql.observability.test")
    event_logger = make_json_event_logger(logger=logger, level=logging.INFO)
    event = ExecutionEvent(
        timestamp="2026-01-01T00:00:00+00:00",
        event="query.end",
        handle="Database",
        success=True,
        metadata={"service": "api"},
        operation="query",
        duration_ms=1.5,
    )

    with caplog.at_level(logging.INFO, logger=logger.name):
        event_logger(event)

    payload = json.loads(caplog.records[-1].message)
    assert payload == execution_event_to_dict(event)
    assert payload["metadata"] == {"service": "api"}
    assert payload["handle"] == "Database"


def test_compose_event_observers_calls_each_in_order() -> None:
    seen: list[str] = []
    observer = compose_event_observers(
        lambda event: seen.append(f"a:{event.event}"),
        lambda event: seen.append(f"b:{event.event}"),
    )

    observer(ExecutionEvent(timestamp="t", event="pool.open", handle="Database", success=True))

    assert seen == ["a:pool.open", "b:pool.open"]


@pytest.mark.asyncio
async def test_metrics_adapter_aggregates_queries_and_transactions(mock_pool: MagicMock) -> None:
    metrics = InMemoryMetricsAdapter()
    db = await Database.connect(
        "postgresql://localhost/app",
        observability_settings=ObservabilitySettings(event_observer=metrics),
    )

    await db.query("select 1")
    await db.query("select 2")

    async def work(tx: Transaction) -> None:
        await tx.query("select 3")

    await db.transaction(work)

    assert metrics.counter_value(
        "namedsql_queries_total",
        {"handle": "Database", "operation": "query", "error_type": "none"},
    ) == 2
    assert metrics.counter_value(
        "namedsql_queries_total",
        {"handle": "Transaction", "operation": "query", "error_type": "none"},
    ) == 1
    assert metrics.counter_value(
        "namedsql_txn_commit_total",
        {"handle": "Transaction", "operation": "unknown", "error_type": "none"},
    ) == 1
    assert len(metrics.histogram_values(
        "namedsql_connection_acquire_ms",
        {"handle": "Database", "operation": "unknown", "error_type": "none"},
    )) == 3
    assert {point.name for point in metrics.counters()} == {"namedsql_queries_total", "namedsql_txn_commit_total"}
    assert len(metrics.histograms()) == 7
