"""
Database operations for the JSON assistant.

This module provides the analytical store used on the large-file path:
1. An ephemeral in-memory DuckDB connection per request
2. Statement execution with bound parameters and row fetching
3. Executing model generated SQL and capturing the error text for repair
4. Running store work off the event loop, interruptible on cancellation
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import duckdb

from json_assistant.guardrails import quote_identifier, validate_statement_types
from json_assistant.services.error_handler import RequestCancelled

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "The query is empty; expected a single SELECT statement"


class DuckDBStore:
    """
    In-process DuckDB store holding the table for one request.

    Usage:
        with DuckDBStore() as store:
            store.execute("CREATE TABLE t (x INTEGER)")
            store.execute("INSERT INTO t VALUES (?)", [1])
            rows = store.query("SELECT * FROM t")
    """

    def __init__(self, database: str = ":memory:"):
        self.database = database
        self._conn: Optional[duckdb.DuckDBPyConnection] = None

    def connect(self) -> None:
        if self._conn is not None:
            return
        self._conn = duckdb.connect(database=self.database)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _ensure_connected(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self.connect()
        return self._conn

    def execute(self, statement: str, params: Optional[Sequence[Any]] = None) -> None:
        """Execute a statement that does not return rows."""
        conn = self._ensure_connected()
        if params:
            conn.execute(statement, list(params))
        else:
            conn.execute(statement)

    def query(self, statement: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute a statement and return its rows as a list of dicts."""
        conn = self._ensure_connected()
        if params:
            result = conn.execute(statement, list(params))
        else:
            result = conn.execute(statement)

        columns = [desc[0] for desc in result.description] if result.description else []
        if not columns:
            return []
        return [dict(zip(columns, row)) for row in result.fetchall()]

    def describe_columns(self, table: str) -> List[Tuple[str, str]]:
        """Return (name, type) pairs for a table from the catalog, in column order."""
        rows = self.query(
            "SELECT column_name, data_type FROM information_schema.columns "
            "WHERE table_name = ? ORDER BY ordinal_position",
            [table],
        )
        return [(row["column_name"], row["data_type"]) for row in rows]

    def column_values(self, table: str, column: str) -> List[Any]:
        """Return every value of one column."""
        rows = self.query(f"SELECT {quote_identifier(column)} AS value FROM {quote_identifier(table)}")
        return [row["value"] for row in rows]

    def statement_types(self, sql: str) -> List[str]:
        """Parse SQL without running it and return the type name of each statement."""
        conn = self._ensure_connected()
        return [statement.type.name for statement in conn.extract_statements(sql)]

    def interrupt(self) -> None:
        """Abort the statement currently running on this connection, if any."""
        if self._conn is not None:
            self._conn.interrupt()

    def transaction_begin(self) -> None:
        self.execute("BEGIN TRANSACTION")

    def transaction_commit(self) -> None:
        self.execute("COMMIT")

    def transaction_rollback(self) -> None:
        self.execute("ROLLBACK")


def execute_sql_query(store: DuckDBStore, sql: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
    """
    Execute model generated SQL and capture failures as text.

    Args:
        store: Store holding the loaded table
        sql: Candidate SQL statement

    Returns:
        Tuple of (rows, error_message); error_message is None on success
        and holds the store's verbatim error text otherwise
    """
    if not sql or not sql.strip():
        return [], EMPTY_QUERY_MESSAGE

    try:
        is_valid, error = validate_statement_types(store.statement_types(sql))
        if not is_valid:
            logger.warning("Rejected generated SQL: %s", error)
            return [], error
        return store.query(sql), None
    except duckdb.Error as query_error:
        logger.warning("Query execution error: %s", query_error)
        return [], str(query_error)


T = TypeVar("T")


async def run_in_thread(store: DuckDBStore, func: Callable[..., T], *args: Any,
                        cancel_event: Optional[asyncio.Event] = None) -> T:
    """
    Run blocking store work in a worker thread.

    If the calling task is cancelled or cancel_event is set first, the running
    statement is interrupted and the worker is waited for, so the store is
    never closed while a statement is still using it.

    Raises:
        RequestCancelled: If cancel_event was set before the work finished
        asyncio.CancelledError: If the calling task was cancelled
    """
    if cancel_event is not None and cancel_event.is_set():
        raise RequestCancelled("Store work cancelled")

    work = asyncio.ensure_future(asyncio.to_thread(func, *args))
    watcher = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
    try:
        waiting = {work, watcher} if watcher is not None else {work}
        done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
        if work in done:
            return work.result()
        logger.info("Request cancelled, interrupting running statement")
        await _interrupt_and_wait(store, work)
        raise RequestCancelled("Store work cancelled")
    except asyncio.CancelledError:
        await _interrupt_and_wait(store, work)
        raise
    finally:
        if watcher is not None:
            watcher.cancel()


async def _interrupt_and_wait(store: DuckDBStore, work: asyncio.Future) -> None:
    store.interrupt()
    await asyncio.gather(work, return_exceptions=True)
