"""
Unit tests for the DuckDB store and generated query execution.
"""
import asyncio
import time

import pytest

from json_assistant.services.db_operations import EMPTY_QUERY_MESSAGE, DuckDBStore, execute_sql_query, run_in_thread
from json_assistant.services.error_handler import RequestCancelled

# Runs for tens of seconds unless interrupted
SLOW_QUERY = "SELECT sum(hash(a.range)) AS total FROM range(5000000000) a"

def test_store_context_closes_connection():
    with DuckDBStore() as store:
        assert store.query("SELECT 42 AS answer") == [{"answer": 42}]
    assert store._conn is None

def test_stores_are_isolated():
    with DuckDBStore() as first, DuckDBStore() as second:
        first.execute("CREATE TABLE t (x INTEGER)")
        assert second.describe_columns("t") == []
        assert first.describe_columns("t") == [("x", "INTEGER")]

def test_query_with_parameters(store):
    store.execute("CREATE TABLE t (x INTEGER, y VARCHAR)")
    store.execute("INSERT INTO t VALUES (?, ?)", [1, "a"])
    assert store.query("SELECT * FROM t WHERE x = ?", [1]) == [{"x": 1, "y": "a"}]

def test_statement_types(store):
    assert store.statement_types("SELECT 1") == ["SELECT"]
    assert store.statement_types("SELECT 1; DROP TABLE t") == ["SELECT", "DROP"]

def test_execute_sql_query_success(store):
    rows, error = execute_sql_query(store, "SELECT 1 AS one")
    assert error is None
    assert rows == [{"one": 1}]

def test_execute_sql_query_returns_store_error(store):
    store.execute("CREATE TABLE t (x INTEGER)")
    rows, error = execute_sql_query(store, "SELECT y FROM t")
    assert rows == []
    assert '"y"' in error

def test_execute_sql_query_syntax_error(store):
    rows, error = execute_sql_query(store, "this is not sql")
    assert rows == []
    assert error

def test_execute_sql_query_rejects_writes(store):
    store.execute("CREATE TABLE t (x INTEGER)")
    rows, error = execute_sql_query(store, "INSERT INTO t VALUES (1)")
    assert rows == []
    assert "Only SELECT" in error
    assert store.query("SELECT COUNT(*) AS n FROM t") == [{"n": 0}]

def test_execute_sql_query_empty(store):
    assert execute_sql_query(store, "   ") == ([], EMPTY_QUERY_MESSAGE)

@pytest.mark.asyncio
async def test_store_work_does_not_block_event_loop(store):
    """Test that other coroutines keep running while store work is in progress."""
    ticks = []

    async def ticker():
        while True:
            ticks.append(time.monotonic())
            await asyncio.sleep(0.01)

    def slow_work(duckdb_store):
        time.sleep(0.3)
        return duckdb_store.query("SELECT 1 AS one")

    ticking = asyncio.ensure_future(ticker())
    try:
        rows = await run_in_thread(store, slow_work, store)
    finally:
        ticking.cancel()
    assert rows == [{"one": 1}]
    assert len(ticks) >= 10

@pytest.mark.asyncio
async def test_cancel_event_interrupts_running_query(store):
    cancel_event = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0.2)
        cancel_event.set()

    canceller = asyncio.ensure_future(cancel_soon())
    started = time.monotonic()
    with pytest.raises(RequestCancelled):
        await run_in_thread(store, execute_sql_query, store, SLOW_QUERY, cancel_event=cancel_event)
    await canceller

    assert time.monotonic() - started < 10
    assert store.query("SELECT 1 AS one") == [{"one": 1}]

@pytest.mark.asyncio
async def test_task_cancellation_interrupts_running_query(store):
    task = asyncio.ensure_future(run_in_thread(store, store.query, SLOW_QUERY))
    await asyncio.sleep(0.2)
    started = time.monotonic()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert time.monotonic() - started < 10
    assert store.query("SELECT 1 AS one") == [{"one": 1}]

@pytest.mark.asyncio
async def test_already_cancelled_work_never_starts(store):
    cancel_event = asyncio.Event()
    cancel_event.set()
    calls = []

    with pytest.raises(RequestCancelled):
        await run_in_thread(store, calls.append, 1, cancel_event=cancel_event)
    assert calls == []
