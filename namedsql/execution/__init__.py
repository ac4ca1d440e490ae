from namedsql.execution.base import QueryExecutor, RowSet
from namedsql.execution.connection import ConnectionSettings
from namedsql.execution.constraints import ConstraintViolationMapper
from namedsql.execution.database import Database
from namedsql.execution.transaction import Transaction, TransactionState
from namedsql.execution.observability import (
    ExecutionEvent,
    InMemoryMetricsAdapter,
    MetricPoint,
    ObservabilitySettings,
    QueryObservation,
    compose_event_observers,
    execution_event_to_dict,
    make_json_event_logger,
)
from namedsql.execution.errors import (
    ResourceClosedError,
    ExecutionError,
    TransientExecutionError,
    DeadlockError,
    SerializationError,
    LockTimeoutError,
    ConnectionTimeoutError,
    IntegrityConstraintError,
    ProgrammingExecutionError,
    normalize_execution_error,
)

__all__ = [
    "QueryExecutor",
    "RowSet",
    "ConnectionSettings",
    "ConstraintViolationMapper",
    "Database",
    "Transaction",
    "TransactionState",
    "ObservabilitySettings",
    "QueryObservation",
    "ExecutionEvent",
    "MetricPoint",
    "InMemoryMetricsAdapter",
    "compose_event_observers",
    "execution_event_to_dict",
    "make_json_event_logger",
    "ResourceClosedError",
    "ExecutionError",
    "TransientExecutionError",
    "DeadlockError",
    "SerializationError",
    "LockTimeoutError",
    "ConnectionTimeoutError",
    "IntegrityConstraintError",
    "ProgrammingExecutionError",
    "normalize_execution_error",
]
