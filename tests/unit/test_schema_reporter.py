"""
Unit tests for the schema description of the loaded table.
"""
from json_assistant.services.schema_inference import infer_columns
from json_assistant.services.schema_reporter import (
    build_schema_description,
    describe_nested_fields,
    describe_schema,
    flatten_json_fields,
    format_nested_fields,
)
from json_assistant.services.table_loader import create_table, load_records

TABLE = "json_data"

def _load(store, records):
    columns = infer_columns(records)
    create_table(store, TABLE, columns)
    load_records(store, TABLE, records, columns)

def test_flatten_json_fields():
    data = {"a": {"b": 1, "c": {"d": [1, 2]}}, "e": None}
    assert flatten_json_fields(data) == {"a.b", "a.c.d", "e"}

def test_flatten_arrays_are_leaves():
    assert flatten_json_fields({"items": [{"x": 1}]}) == {"items"}

def test_describe_schema(store):
    _load(store, [{"id": 1, "name": "a"}])
    assert describe_schema(store, TABLE) == "id BIGINT, name VARCHAR"

def test_nested_fields_union_across_rows(store):
    """Test that paths seen in different rows are all reported."""
    _load(store, [{"payload": {"a": {"b": 1}}}, {"payload": {"a": {"c": 2}}}])
    assert describe_nested_fields(store, TABLE) == {"payload": ["a.b", "a.c"]}

def test_plain_text_columns_are_not_reported(store):
    _load(store, [
        {"name": "plain", "meta": {"author": {"id": 1}}},
        {"name": "[1, 2]", "meta": "not json"},
        {"name": "42", "meta": None},
    ])
    assert describe_nested_fields(store, TABLE) == {"meta": ["author.id"]}

def test_format_nested_fields():
    text = format_nested_fields({"meta": ["author.id", "tags"]})
    assert text == "Column: meta\n  - author.id\n  - tags"

def test_schema_description_without_nested_fields(store):
    _load(store, [{"id": 1}])
    assert build_schema_description(store, TABLE) == "Table Schema:\nid BIGINT"

def test_schema_description_with_nested_fields(store):
    _load(store, [{"id": 1, "meta": {"author": "x"}}])
    description = build_schema_description(store, TABLE)
    assert description.startswith("Table Schema:\nid BIGINT, meta VARCHAR")
    assert "\n\nExpanded Fields from JSON Columns:\nColumn: meta\n  - author" in description
