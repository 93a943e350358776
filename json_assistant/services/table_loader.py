"""
Loading of JSON records into the analytical store.

Records are inserted in batches of multi-row INSERT statements. When a batch
fails, it is rolled back and its records are inserted one at a time so that a
single bad record only costs that record.
"""
import json
import logging
from typing import Any, Dict, List, Sequence, Tuple

import duckdb

from json_assistant.guardrails import quote_identifier
from json_assistant.schemas.table import InferredColumn, LoadReport
from json_assistant.services.db_operations import DuckDBStore
from json_assistant.services.error_handler import UnsupportedShape

logger = logging.getLogger(__name__)

SQL_TYPES = {
    "text": "VARCHAR",
    "double": "DOUBLE",
    "integer": "BIGINT",
    "boolean": "BOOLEAN",
}

DEFAULT_BATCH_SIZE = 500

BIGINT_MIN = -2 ** 63
BIGINT_MAX = 2 ** 63 - 1

# Errors that cost a single record rather than the whole load
RECORD_ERRORS = (duckdb.Error, TypeError, ValueError, OverflowError)


class RecordError(ValueError):
    """A record cannot be converted to a row of the inferred table."""


def build_create_table_sql(table: str, columns: Sequence[InferredColumn]) -> str:
    column_defs = ", ".join(
        f"{quote_identifier(column.name)} {SQL_TYPES[column.column_type]}" for column in columns
    )
    return f"CREATE TABLE IF NOT EXISTS {quote_identifier(table)} ({column_defs})"


def create_table(store: DuckDBStore, table: str, columns: Sequence[InferredColumn]) -> None:
    """Create the table for the inferred columns if it does not exist yet."""
    sql = build_create_table_sql(table, columns)
    logger.debug("Creating table: %s", sql)
    store.execute(sql)


def serialize_value(value: Any) -> Any:
    """Bind scalars as-is; nested objects and arrays become JSON text."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return value


def validate_value(value: Any, column_type: str) -> Tuple[bool, str]:
    """
    Check that a field value can be stored in its column without loss.

    Strings bound to numeric or boolean columns are left to the store's own
    cast, which rejects anything it cannot convert exactly.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or column_type == "text":
        return True, ""
    if isinstance(value, (dict, list)):
        return False, f"nested value does not fit a {column_type} column"

    if column_type == "boolean":
        if not isinstance(value, bool):
            return False, f"{value!r} is not a boolean"
    elif column_type == "integer":
        if isinstance(value, bool):
            return False, f"{value!r} is not an integer"
        if isinstance(value, float) and not value.is_integer():
            return False, f"{value!r} is not an integer"
        if isinstance(value, (int, float)) and not BIGINT_MIN <= value <= BIGINT_MAX:
            return False, f"{value!r} is out of range for a BIGINT column"
    elif column_type == "double":
        if isinstance(value, bool):
            return False, f"{value!r} is not a number"
    return True, ""


def record_to_row(record: Dict[str, Any], columns: Sequence[InferredColumn]) -> List[Any]:
    """
    Convert a record to parameter values in column order.

    Fields missing from the record are bound as NULL.

    Raises:
        RecordError: If the record has fields outside the inferred schema
            or a field cannot be stored in its column without loss
    """
    known = {column.name.lower() for column in columns}
    unknown = [key for key in record if not isinstance(key, str) or key.lower() not in known]
    if unknown:
        raise RecordError(f"fields outside the inferred schema: {', '.join(map(str, unknown))}")

    by_name = {key.lower(): value for key, value in record.items()}
    if len(by_name) != len(record):
        raise RecordError("field names differ only by case")
    row = []
    for column in columns:
        value = by_name.get(column.name.lower())
        is_valid, error = validate_value(value, column.column_type)
        if not is_valid:
            raise RecordError(f"field {column.name}: {error}")
        try:
            row.append(serialize_value(value))
        except (TypeError, ValueError) as e:
            raise RecordError(f"failed to serialize field {column.name}: {e}") from e
    return row


def _insert_sql(table: str, columns: Sequence[InferredColumn], row_count: int) -> str:
    column_list = ", ".join(quote_identifier(column.name) for column in columns)
    placeholders = "(" + ", ".join("?" for _ in columns) + ")"
    values = ", ".join(placeholders for _ in range(row_count))
    return f"INSERT INTO {quote_identifier(table)} ({column_list}) VALUES {values}"


def _insert_rows(store: DuckDBStore, table: str, columns: Sequence[InferredColumn], rows: List[List[Any]]) -> None:
    params = [value for row in rows for value in row]
    store.execute(_insert_sql(table, columns, len(rows)), params)


def _insert_batch(store, table, columns, batch, report: LoadReport) -> None:
    """Insert a batch atomically, falling back to single inserts on failure."""
    rows = [row for _, row in batch]
    store.transaction_begin()
    try:
        _insert_rows(store, table, columns, rows)
    except duckdb.InterruptException:
        store.transaction_rollback()
        raise
    except RECORD_ERRORS as batch_error:
        store.transaction_rollback()
        logger.info("Batch insert failed (%s); retrying %d records one by one", batch_error, len(batch))
    else:
        store.transaction_commit()
        report.inserted += len(batch)
        return

    for index, row in batch:
        try:
            _insert_rows(store, table, columns, [row])
            report.inserted += 1
        except duckdb.InterruptException:
            raise
        except RECORD_ERRORS as e:
            _skip(report, index, f"Error inserting entry {index}: {e}")


def _skip(report: LoadReport, index: int, message: str) -> None:
    logger.warning("Skipping entry %d: %s", index, message)
    report.skipped += 1
    report.errors.append(message)


def load_records(
    store: DuckDBStore,
    table: str,
    json_value: Any,
    columns: Sequence[InferredColumn],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> LoadReport:
    """
    Insert every record of a JSON document into the table.

    Loading is not atomic: records that are not objects or that fail to insert
    are skipped with a warning and loading continues.

    Args:
        store: Store holding the table
        table: Table created by create_table
        json_value: Parsed JSON document (array of objects or a single object)
        columns: Columns the table was created with
        batch_size: Number of records per INSERT statement

    Returns:
        LoadReport with inserted/skipped counts
    """
    if isinstance(json_value, dict):
        records = [json_value]
    elif isinstance(json_value, list):
        records = json_value
    else:
        raise UnsupportedShape(f"Unsupported JSON structure for insertion: {type(json_value).__name__}")

    report = LoadReport()
    batch = []
    for index, item in enumerate(records):
        if not isinstance(item, dict):
            _skip(report, index, f"unexpected type in JSON array, expected object, got {type(item).__name__}")
            continue
        try:
            batch.append((index, record_to_row(item, columns)))
        except RecordError as e:
            _skip(report, index, str(e))
            continue
        if len(batch) >= batch_size:
            _insert_batch(store, table, columns, batch, report)
            batch = []

    if batch:
        _insert_batch(store, table, columns, batch, report)

    if records and report.inserted == 0:
        logger.warning("No records were loaded into %s (%d skipped)", table, report.skipped)
    else:
        logger.info("Loaded %d records into %s (%d skipped)", report.inserted, table, report.skipped)
    return report
