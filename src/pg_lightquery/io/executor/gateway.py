"""
Execution gateway: runs finished QueryObjects against PostgreSQL.

Statements arrive with ``$n`` placeholders and are converted to psycopg2's
named pyformat parameters just before execution. The gateway owns the
connection pool, connection acquisition retries and transaction boundaries;
errors raised by the driver itself are logged and re-raised unchanged.
"""

import time
import uuid
from typing import Any, Dict, List, Optional, Protocol, Sequence

from psycopg2 import errors as pg_errors
from psycopg2.extras import Json, RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from pg_lightquery.config import get_settings
from pg_lightquery.exceptions import ExecutionError
from pg_lightquery.infrastructure.sql.core.parameters import to_pyformat
from pg_lightquery.infrastructure.sql.core.query import QueryObject
from pg_lightquery.utils.logging import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]


class Gateway(Protocol):
    """Contract the statement builders rely on."""

    def execute(self, sql_text: str, values: Sequence[Any] = ()) -> List[Row]: ...
    def execute_transaction(self, queries: Sequence[QueryObject]) -> List[List[Row]]: ...


def _adapt_param(v: Any) -> Any:
    """
    Adapt dict/list parameters for JSONB columns.

    Args:
        v: Parameter value

    Returns:
        psycopg2.extras.Json wrapped value for dict/list, otherwise unchanged
    """
    if isinstance(v, (dict, list)):
        return Json(v)
    return v


def _is_unique_violation(exc: BaseException) -> bool:
    return isinstance(exc, pg_errors.UniqueViolation) or "violates unique constraint" in str(exc)


class PostgresGateway:
    """Pooled PostgreSQL executor for ``$n``-parameterized statements."""

    def __init__(
        self,
        connection_url: Optional[str] = None,
        pool_size: Optional[int] = None,
        connect_timeout: Optional[int] = None,
        retry_attempts: Optional[int] = None,
        retry_backoff_ms: Optional[int] = None,
    ):
        settings = get_settings()
        self.connection_url = connection_url or settings.get_database_connection_string()
        self.pool_size = pool_size or settings.DB_POOL_SIZE
        self.connect_timeout = connect_timeout or settings.DB_CONNECT_TIMEOUT
        self.retry_attempts = retry_attempts or settings.DB_RETRY_ATTEMPTS
        self.retry_backoff_ms = (
            settings.DB_RETRY_BACKOFF_MS if retry_backoff_ms is None else retry_backoff_ms
        )
        self._pool: Optional[ThreadedConnectionPool] = None
        self._logger = logger

        self._logger.info(
            "database.gateway.initialized",
            pool_size=self.pool_size,
            retry_attempts=self.retry_attempts,
        )

    def __enter__(self) -> "PostgresGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection pool."""
        if self._pool:
            self._pool.closeall()
            self._pool = None
            self._logger.info("database.gateway.closed")

    def health_check(self) -> None:
        """Validate pool connectivity with a lightweight query."""
        try:
            conn = self._get_connection_with_retry()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
            self._pool.putconn(conn)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(f"Database connection failed: {e}") from e

    def _ensure_pool(self) -> ThreadedConnectionPool:
        if not self.connection_url:
            raise ExecutionError(
                "No database URL configured; set DATABASE_URL or pass connection_url"
            )
        if self._pool is None or self._pool.closed:
            try:
                self._pool = ThreadedConnectionPool(
                    minconn=1,
                    maxconn=self.pool_size,
                    dsn=self.connection_url,
                    connect_timeout=self.connect_timeout,
                )
            except Exception as e:
                raise ExecutionError(f"Failed to create pool: {e}") from e
        return self._pool

    def _get_connection_with_retry(self):
        """Acquire a connection from the pool with retry on transient errors."""
        pool = self._ensure_pool()

        last_error = None
        for attempt in range(self.retry_attempts):
            try:
                # getconn() can fail if pool is exhausted or connections broken
                return pool.getconn()
            except Exception as e:
                last_error = e
                wait_ms = self.retry_backoff_ms * (2**attempt)
                self._logger.warning(
                    "database.connection.retry",
                    attempt=attempt + 1,
                    wait_ms=wait_ms,
                    error=str(e),
                )
                time.sleep(wait_ms / 1000)

        raise ExecutionError(
            f"Failed to acquire connection after retries: {last_error}"
        ) from last_error

    def _run(self, cursor, sql_text: str, values: Sequence[Any]) -> List[Row]:
        query, params = to_pyformat(sql_text, [_adapt_param(v) for v in values])
        cursor.execute(query, params)
        if cursor.description is None:
            return []
        return [dict(row) for row in cursor.fetchall()]

    def execute(self, sql_text: str, values: Sequence[Any] = ()) -> List[Row]:
        """
        Execute one statement in its own transaction.

        Returns:
            Result rows as dicts (empty when the statement returns none)

        Raises:
            ExecutionError: Pool or connection failures
            psycopg2.Error: Driver errors, unmodified
        """
        execution_id = uuid.uuid4().hex
        conn = self._get_connection_with_retry()
        start_time = time.perf_counter()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                rows = self._run(cursor, sql_text, values)
            conn.commit()
        except Exception as exc:
            try:
                conn.rollback()
            except Exception as rollback_exc:
                self._logger.error(
                    "database.rollback.failed",
                    execution_id=execution_id,
                    error=str(rollback_exc),
                )
            self._log_failure("database.query.failed", exc, execution_id, start_time)
            raise
        finally:
            self._pool.putconn(conn)

        self._logger.debug(
            "database.query.executed",
            execution_id=execution_id,
            parameter_count=len(values),
            row_count=len(rows),
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return rows

    def execute_query(self, query: QueryObject) -> List[Row]:
        return self.execute(query.sql_text, query.values)

    def execute_transaction(self, queries: Sequence[QueryObject]) -> List[List[Row]]:
        """
        Execute several statements atomically.

        Statements run in order inside one transaction which is committed
        only after all of them succeed. On any failure the transaction is
        rolled back; a failed rollback is logged and the original error is
        re-raised.

        Returns:
            One row list per statement, in order
        """
        execution_id = uuid.uuid4().hex
        conn = self._get_connection_with_retry()
        start_time = time.perf_counter()
        results: List[List[Row]] = []

        self._logger.debug(
            "database.transaction.started",
            execution_id=execution_id,
            statement_count=len(queries),
        )
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                for query in queries:
                    results.append(self._run(cursor, query.sql_text, query.values))
            conn.commit()
        except Exception as exc:
            try:
                conn.rollback()
                self._logger.info(
                    "database.transaction.rolled_back", execution_id=execution_id
                )
            except Exception as rollback_exc:
                self._logger.error(
                    "database.rollback.failed",
                    execution_id=execution_id,
                    error=str(rollback_exc),
                )
            self._log_failure("database.transaction.failed", exc, execution_id, start_time)
            raise
        finally:
            self._pool.putconn(conn)

        self._logger.debug(
            "database.transaction.committed",
            execution_id=execution_id,
            statement_count=len(queries),
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return results

    def _log_failure(
        self, event: str, exc: BaseException, execution_id: str, start_time: float
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        if _is_unique_violation(exc):
            self._logger.warning(
                "database.unique_violation",
                execution_id=execution_id,
                error=str(exc),
            )
        self._logger.error(
            event,
            execution_id=execution_id,
            duration_ms=duration_ms,
            error=str(exc),
        )


__all__ = ["Gateway", "PostgresGateway"]
