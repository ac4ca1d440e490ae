from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# ==================================================
# Lifecycle Errors
# ==================================================


class ResourceClosedError(RuntimeError):
    """
    Raised when a handle is used after disconnect() or release().
    """


# ==================================================
# Normalized Execution Errors
# ==================================================


@dataclass(slots=True)
class ExecutionErrorDetails:
    """
    Structured metadata for normalized execution errors.
    """

    operation: str
    sqlstate: str | None
    constraint_name: str | None
    original_message: str


class ExecutionError(Exception):
    """
    Base normalized execution error type.
    """

    def __init__(self, details: ExecutionErrorDetails, original_exception: Exception) -> None:
        self.details = details
        self.original_exception = original_exception
        super().__init__(f"[{details.operation}] {self.__class__.__name__}: {details.original_message}")


class TransientExecutionError(ExecutionError):
    """
    Base type for errors that a caller may choose to retry.
    """


class DeadlockError(TransientExecutionError):
    pass


class SerializationError(TransientExecutionError):
    pass


class LockTimeoutError(TransientExecutionError):
    pass


class ConnectionTimeoutError(TransientExecutionError):
    pass


class IntegrityConstraintError(ExecutionError):
    @property
    def constraint_name(self) -> str | None:
        return self.details.constraint_name


class ProgrammingExecutionError(ExecutionError):
    pass


def extract_sqlstate(exc: BaseException) -> str | None:
    """
    Returns the five-character SQLSTATE of a driver error, if it carries one.
    """
    sqlstate = getattr(exc, "sqlstate", None)
    if isinstance(sqlstate, str) and sqlstate:
        return sqlstate.upper()

    pgcode = getattr(exc, "pgcode", None)
    if isinstance(pgcode, str) and pgcode:
        return pgcode.upper()

    return None


def extract_constraint_name(exc: BaseException) -> str | None:
    """
    Returns the violated constraint name reported by psycopg diagnostics.
    """
    diag: Any = getattr(exc, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if isinstance(name, str) and name:
        return name
    return None


def normalize_execution_error(*, operation: str, exc: Exception) -> ExecutionError:
    """
    Maps a driver exception to the normalized execution error taxonomy.
    """
    sqlstate = extract_sqlstate(exc)
    message = str(exc).lower()
    details = ExecutionErrorDetails(
        operation=operation,
        sqlstate=sqlstate,
        constraint_name=extract_constraint_name(exc),
        original_message=str(exc),
    )

    if sqlstate == "40P01" or "deadlock" in message:
        return DeadlockError(details, exc)

    if sqlstate == "40001" or "could not serialize" in message:
        return SerializationError(details, exc)

    if sqlstate in {"55P03", "57014"} or "lock timeout" in message:
        return LockTimeoutError(details, exc)

    if (
        (sqlstate is not None and sqlstate.startswith("08"))
        or "timed out" in message
        or "could not connect" in message
        or "connection refused" in message
    ):
        return ConnectionTimeoutError(details, exc)

    if sqlstate and sqlstate.startswith("23"):
        return IntegrityConstraintError(details, exc)
    if "unique constraint" in message or "foreign key constraint" in message or "duplicate key" in message:
        return IntegrityConstraintError(details, exc)

    if sqlstate and sqlstate.startswith("42"):
        return ProgrammingExecutionError(details, exc)
    if "syntax error" in message:
        return ProgrammingExecutionError(details, exc)

    return ExecutionError(details, exc)
