from contextlib import asynccontextmanager
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence, TypeVar

from namedsql.compiler.named_compiler import NamedCompiler
from namedsql.execution.base import QueryExecutor, RowSet, run_statement
from namedsql.execution.connection import ConnectionSettings
from namedsql.execution.errors import ResourceClosedError
from namedsql.execution.observability import ObservabilitySettings
from namedsql.execution.transaction import Transaction, TransactionState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ==================================================
# Database Handle
# ==================================================


class Database(QueryExecutor):
    """
    Owns a psycopg connection pool for one PostgreSQL database.

    Every `query`/`named_query` call checks out its own connection, so a single
    Database can be shared by concurrent tasks. Multi-statement work goes through
    `transaction()` or `begin()`, which pin one connection for the whole unit.

    The pool is created here and opened by `open()`; `disconnect()` is terminal.
    """

    def __init__(
        self,
        settings: ConnectionSettings | str,
        compiler: NamedCompiler | None = None,
        observability_settings: ObservabilitySettings | None = None,
    ) -> None:
        if isinstance(settings, str):
            settings = ConnectionSettings(url=settings)
        self.settings = settings
        self.compiler = compiler or NamedCompiler()
        self.observability_settings = observability_settings or ObservabilitySettings()
        self._pool = self._create_pool()
        self._opened = False
        self._closed = False

    @classmethod
    async def connect(
        cls,
        settings: ConnectionSettings | str,
        compiler: NamedCompiler | None = None,
        observability_settings: ObservabilitySettings | None = None,
    ) -> "Database":
        """
        Builds a Database and opens its pool.
        """
        db = cls(settings, compiler=compiler, observability_settings=observability_settings)
        await db.open()
        return db

    def _create_pool(self) -> Any:
        """
        Builds the (still closed) async pool with `$n`-style raw cursors.
        """
        try:
            from psycopg import AsyncRawCursor
            from psycopg.rows import dict_row
            from psycopg_pool import AsyncConnectionPool
        except ImportError:
            raise ImportError(
                "The 'psycopg' and 'psycopg_pool' libraries are required for Database. "
                "Install them with 'pip install \"psycopg[binary,pool]\"'."
            )

        kwargs = self.settings.connection_kwargs()
        kwargs["cursor_factory"] = AsyncRawCursor
        kwargs["row_factory"] = dict_row
        return AsyncConnectionPool(
            self.settings.url,
            min_size=self.settings.min_pool_size,
            max_size=self.settings.max_pool_size,
            timeout=self.settings.acquire_timeout_seconds,
            kwargs=kwargs,
            open=False,
        )

    # ==================================================
    # Lifecycle Controls
    # ==================================================

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> Any:
        if self._closed:
            raise ResourceClosedError("Database is disconnected.")
        if not self._opened:
            raise RuntimeError("Database is not open. Call open() first.")
        return self._pool

    async def open(self) -> None:
        if self._closed:
            raise ResourceClosedError("Database is disconnected and cannot be reopened.")
        if self._opened:
            return
        await self._pool.open()
        self._opened = True
        logger.info(
            "Opened connection pool (min_size=%s, max_size=%s)",
            self.settings.min_pool_size,
            self.settings.max_pool_size,
        )
        self._emit_event("pool.open", success=True)

    async def disconnect(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._opened:
            await self._pool.close()
        logger.info("Closed connection pool")
        self._emit_event("pool.close", success=True)

    async def __aenter__(self) -> "Database":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        _ = exc_type
        _ = exc
        _ = tb
        await self.disconnect()

    async def ping(self) -> bool:
        """
        Returns True when a trivial round-trip returns exactly one row.
        """
        result = await self.query("select 1")
        return result.row_count == 1

    # ==================================================
    # Query Execution
    # ==================================================

    async def _acquire(self, timeout: float | None = None) -> Any:
        pool = self._ensure_open()
        self._emit_event("connection.acquire.start", success=True)
        started = time.perf_counter()
        conn = await pool.getconn(timeout=timeout)
        self._emit_event(
            "connection.acquire.end",
            success=True,
            connection_id=str(id(conn)),
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return conn

    async def _execute(self, *, operation: str, sql: str, params: Sequence[Any]) -> RowSet:
        return await self._observe_query(
            operation=operation,
            sql=sql,
            params=params,
            run=lambda: self._execute_pooled(sql, params),
        )

    async def _execute_pooled(self, sql: str, params: Sequence[Any]) -> RowSet:
        pool = self._ensure_open()
        conn = await self._acquire()
        try:
            return await run_statement(conn, sql, params)
        finally:
            await pool.putconn(conn)
            self._emit_event("connection.release", success=True, connection_id=str(id(conn)))

    # ==================================================
    # Transactions
    # ==================================================

    @asynccontextmanager
    async def begin(self, *, acquire_timeout_seconds: float | None = None) -> AsyncIterator[Transaction]:
        """
        Runs the enclosed block as one transaction on a dedicated connection.

        The block's normal exit commits; an exception rolls back and propagates.
        The connection is returned to the pool in every case.
        """
        conn = await self._acquire(acquire_timeout_seconds)
        tx = Transaction(
            conn,
            self._pool,
            compiler=self.compiler,
            observability_settings=self.observability_settings,
        )
        try:
            await tx.begin()
            try:
                yield tx
            except BaseException as exc:
                await tx.rollback_after_failure(exc)
                raise
            if tx.state is not TransactionState.BEGAN:
                return
            try:
                await tx.commit()
            except BaseException as exc:
                await tx.rollback_after_failure(exc)
                raise
        finally:
            await tx.release()

    async def transaction(
        self,
        work: Callable[[Transaction], Awaitable[T]],
        *,
        acquire_timeout_seconds: float | None = None,
    ) -> T:
        """
        Awaits `work(tx)` inside a transaction and returns its result.
        """
        async with self.begin(acquire_timeout_seconds=acquire_timeout_seconds) as tx:
            return await work(tx)
