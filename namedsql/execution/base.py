from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
import time
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar
from uuid import uuid4

from namedsql.compiler.named_compiler import NamedArgs, NamedCompiler
from namedsql.execution.errors import extract_sqlstate
from namedsql.execution.observability import ExecutionEvent, ObservabilitySettings, QueryObservation

T = TypeVar("T")

# ==================================================
# Result Rows
# ==================================================


@dataclass(frozen=True)
class RowSet:
    """
    Tabular result of a statement: the affected/returned row count plus row data.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    columns: tuple[str, ...] = ()

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


async def run_statement(connection: Any, sql: str, params: Sequence[Any] | None) -> RowSet:
    """
    Executes one statement on a psycopg async connection and collects the rows.
    """
    cur = await connection.execute(sql, list(params) if params else None)
    if cur.description:
        rows = await cur.fetchall()
        columns = tuple(column.name for column in cur.description)
    else:
        rows = []
        columns = ()
    return RowSet(rows=list(rows), row_count=cur.rowcount, columns=columns)


# ==================================================
# Query Executor Contract
# ==================================================


class QueryExecutor(ABC):
    """
    Shared contract of Database and Transaction handles.

    Callers written against `query`/`named_query` work with either handle.
    """

    compiler: NamedCompiler
    observability_settings: ObservabilitySettings

    @abstractmethod
    async def _execute(self, *, operation: str, sql: str, params: Sequence[Any]) -> RowSet:
        """
        Runs a positional statement on a connection owned by the handle.
        """
        pass

    async def query(self, sql: str, params: Sequence[Any] = ()) -> RowSet:
        """
        Executes a statement with positional (`$1`, `$2`, ...) parameters.
        """
        return await self._execute(operation="query", sql=sql, params=params)

    async def named_query(self, template: str, args: NamedArgs) -> RowSet:
        """
        Compiles a `$name` template and executes the positional result.
        """
        compiled = self.compiler.compile(template, args)
        return await self._execute(operation="named_query", sql=compiled.sql, params=compiled.params)

    # ==================================================
    # Observability Helpers
    # ==================================================

    def _in_transaction(self) -> bool:
        return False

    def _metadata(self, override: Mapping[str, Any] | None = None) -> dict[str, Any]:
        base = dict(self.observability_settings.metadata)
        if override:
            base.update(override)
        return base

    def _emit_event(self, event: str, *, success: bool, **kwargs: Any) -> None:
        observer = self.observability_settings.event_observer
        if observer is None:
            return

        observer(
            ExecutionEvent(
                timestamp=datetime.now(timezone.utc).isoformat(),
                event=event,
                handle=self.__class__.__name__,
                success=success,
                metadata=self._metadata(),
                **kwargs,
            )
        )

    async def _observe_query(
        self,
        *,
        operation: str,
        sql: str,
        params: Sequence[Any],
        run: Callable[[], Awaitable[T]],
    ) -> T:
        settings = self.observability_settings
        if settings.query_observer is None and settings.event_observer is None:
            return await run()

        query_id = uuid4().hex
        self._emit_event("query.start", success=True, operation=operation, query_id=query_id)

        started = time.perf_counter()
        error: BaseException | None = None
        try:
            return await run()
        except BaseException as exc:
            error = exc
            raise
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            error_type = type(error).__name__ if error is not None else None
            error_message = str(error) if error is not None else None
            error_code = extract_sqlstate(error) if error is not None else None

            if settings.query_observer is not None:
                settings.query_observer(
                    QueryObservation(
                        operation=operation,
                        sql=sql,
                        param_count=len(params),
                        duration_ms=duration_ms,
                        succeeded=error is None,
                        in_transaction=self._in_transaction(),
                        metadata=self._metadata(),
                        error_type=error_type,
                        error_message=error_message,
                        error_code=error_code,
                    )
                )
            self._emit_event(
                "query.end",
                success=error is None,
                operation=operation,
                query_id=query_id,
                duration_ms=duration_ms,
                error_type=error_type,
                error_code=error_code,
                error_message=error_message,
            )
