from enum import Enum
import logging
import time
from typing import Any, Sequence
from uuid import uuid4

from namedsql.compiler.named_compiler import NamedCompiler
from namedsql.execution.base import QueryExecutor, RowSet, run_statement
from namedsql.execution.errors import ResourceClosedError, extract_sqlstate
from namedsql.execution.observability import ObservabilitySettings

logger = logging.getLogger(__name__)

# ==================================================
# Transaction Handle
# ==================================================


class TransactionState(str, Enum):
    ACQUIRED = "acquired"
    BEGAN = "began"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    RELEASED = "released"


class Transaction(QueryExecutor):
    """
    A unit of work bound to one connection checked out from the pool.

    The connection is owned exclusively until `release()` hands it back.
    Statements run one at a time in the order they are awaited.
    """

    def __init__(
        self,
        connection: Any,
        pool: Any,
        compiler: NamedCompiler | None = None,
        observability_settings: ObservabilitySettings | None = None,
    ) -> None:
        self.connection = connection
        self.pool = pool
        self.compiler = compiler or NamedCompiler()
        self.observability_settings = observability_settings or ObservabilitySettings()
        self.transaction_id = uuid4().hex
        self._state = TransactionState.ACQUIRED
        self._started_at: float | None = None

    @property
    def state(self) -> TransactionState:
        return self._state

    def _in_transaction(self) -> bool:
        return self._state is TransactionState.BEGAN

    def _ensure_not_released(self) -> None:
        if self._state is TransactionState.RELEASED:
            raise ResourceClosedError("Transaction connection has been released.")

    def _require_active(self) -> Any:
        self._ensure_not_released()
        if self._state is not TransactionState.BEGAN:
            raise RuntimeError(f"Transaction is not active (state: {self._state.value}).")
        return self.connection

    async def _execute(self, *, operation: str, sql: str, params: Sequence[Any]) -> RowSet:
        conn = self._require_active()
        return await self._observe_query(
            operation=operation,
            sql=sql,
            params=params,
            run=lambda: run_statement(conn, sql, params),
        )

    def _elapsed_ms(self) -> float | None:
        if self._started_at is None:
            return None
        return (time.perf_counter() - self._started_at) * 1000

    async def begin(self) -> None:
        self._ensure_not_released()
        if self._state is not TransactionState.ACQUIRED:
            raise RuntimeError("Transaction already started.")
        await self.connection.execute("begin")
        self._state = TransactionState.BEGAN
        self._started_at = time.perf_counter()
        self._emit_event("txn.begin", success=True, transaction_id=self.transaction_id)

    async def commit(self) -> None:
        conn = self._require_active()
        try:
            await conn.execute("commit")
        except Exception as exc:
            self._emit_event(
                "txn.commit",
                success=False,
                transaction_id=self.transaction_id,
                duration_ms=self._elapsed_ms(),
                error_type=type(exc).__name__,
                error_code=extract_sqlstate(exc),
                error_message=str(exc),
            )
            raise
        self._state = TransactionState.COMMITTED
        self._emit_event(
            "txn.commit",
            success=True,
            transaction_id=self.transaction_id,
            duration_ms=self._elapsed_ms(),
        )

    async def rollback(self) -> None:
        self._ensure_not_released()
        if self._state is TransactionState.ROLLED_BACK:
            return
        if self._state is not TransactionState.BEGAN:
            raise RuntimeError(f"Transaction is not active (state: {self._state.value}).")
        try:
            await self.connection.execute("rollback")
        except Exception as exc:
            self._emit_event(
                "txn.rollback",
                success=False,
                transaction_id=self.transaction_id,
                duration_ms=self._elapsed_ms(),
                error_type=type(exc).__name__,
                error_code=extract_sqlstate(exc),
                error_message=str(exc),
            )
            raise
        self._state = TransactionState.ROLLED_BACK
        self._emit_event(
            "txn.rollback",
            success=True,
            transaction_id=self.transaction_id,
            duration_ms=self._elapsed_ms(),
        )

    async def rollback_after_failure(self, original: BaseException) -> None:
        """
        Rolls back after `original` was raised, logging a rollback failure
        instead of letting it replace the original error.
        """
        if self._state is not TransactionState.BEGAN:
            return
        try:
            await self.rollback()
        except Exception as exc:
            logger.warning(
                "Rollback of transaction %s failed after %s: %s",
                self.transaction_id,
                type(original).__name__,
                exc,
                exc_info=exc,
            )

    async def release(self) -> None:
        """
        Returns the connection to the pool. Only the first call has an effect.
        """
        if self._state is TransactionState.RELEASED:
            return
        self._state = TransactionState.RELEASED
        conn = self.connection
        self.connection = None
        await self.pool.putconn(conn)
        self._emit_event(
            "connection.release",
            success=True,
            transaction_id=self.transaction_id,
            connection_id=str(id(conn)),
        )
