"""
Schema description of the loaded table, used as model context.

Besides the column catalog, text columns are mined for JSON objects so the
model also sees the dot-notation paths of fields nested inside them.
"""
import json
import logging
from typing import Any, Dict, List, Set

from json_assistant.services.db_operations import DuckDBStore

logger = logging.getLogger(__name__)

TEXT_TYPES = ("VARCHAR", "TEXT", "STRING")


def describe_schema(store: DuckDBStore, table: str) -> str:
    """Render the table's columns as 'name type, name type, ...'."""
    columns = store.describe_columns(table)
    return ", ".join(f"{name} {column_type}" for name, column_type in columns)


def flatten_json_fields(data: Dict[str, Any], prefix: str = "") -> Set[str]:
    """
    Collect the dot-notation paths of a JSON object's leaf fields.

    Nested objects are descended into; every other value (arrays included)
    is a leaf.
    """
    fields = set()
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            fields |= flatten_json_fields(value, path)
        else:
            fields.add(path)
    return fields


def _parse_json_object(value: Any):
    if not isinstance(value, str):
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def describe_nested_fields(store: DuckDBStore, table: str) -> Dict[str, List[str]]:
    """
    Find the nested field paths held in the text columns of a table.

    Values that are not JSON objects are skipped; most text columns simply
    hold plain strings.

    Returns:
        Mapping of column name to its sorted distinct nested paths; columns
        without any JSON object values are omitted
    """
    nested = {}
    for name, column_type in store.describe_columns(table):
        if not column_type.upper().startswith(TEXT_TYPES):
            continue
        fields = set()
        for value in store.column_values(table, name):
            parsed = _parse_json_object(value)
            if parsed is not None:
                fields |= flatten_json_fields(parsed)
        if fields:
            nested[name] = sorted(fields)
    return nested


def format_nested_fields(nested: Dict[str, List[str]]) -> str:
    lines = []
    for column, fields in nested.items():
        lines.append(f"Column: {column}")
        lines.extend(f"  - {field}" for field in fields)
    return "\n".join(lines)


def build_schema_description(store: DuckDBStore, table: str) -> str:
    """Combine the column catalog with the nested field report."""
    description = "Table Schema:\n" + describe_schema(store, table)
    nested = describe_nested_fields(store, table)
    if nested:
        description += "\n\nExpanded Fields from JSON Columns:\n" + format_nested_fields(nested)
    logger.debug("Schema description for %s:\n%s", table, description)
    return description
