from namedsql.compiler import (
    UNSET,
    CompiledQuery,
    MissingArgumentError,
    NamedCompiler,
    compile_named,
)
from namedsql.execution import (
    ConnectionSettings,
    ConstraintViolationMapper,
    Database,
    InMemoryMetricsAdapter,
    ObservabilitySettings,
    QueryExecutor,
    ResourceClosedError,
    RowSet,
    Transaction,
    TransactionState,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "UNSET",
    "CompiledQuery",
    "MissingArgumentError",
    "NamedCompiler",
    "compile_named",
    "ConnectionSettings",
    "ConstraintViolationMapper",
    "Database",
    "InMemoryMetricsAdapter",
    "ObservabilitySettings",
    "QueryExecutor",
    "ResourceClosedError",
    "RowSet",
    "Transaction",
    "TransactionState",
]
