"""
Unit tests for schema inference.

Tests how the column set is derived from the representative record.
"""
import pytest

from json_assistant.services.error_handler import EmptyInput, InvalidIdentifier, UnsupportedShape
from json_assistant.services.schema_inference import (
    determine_field_type,
    infer_columns,
    select_representative_record,
)

def _as_set(columns):
    return {(column.name, column.column_type) for column in columns}

def test_field_type_mapping():
    """Test the semantic type of every JSON value kind."""
    assert determine_field_type("abc") == "text"
    assert determine_field_type(1.5) == "double"
    assert determine_field_type(42) == "integer"
    assert determine_field_type(True) == "boolean"
    assert determine_field_type(False) == "boolean"
    assert determine_field_type({"a": 1}) == "text"
    assert determine_field_type([1, 2]) == "text"
    assert determine_field_type(None) == "text"

def test_infer_columns_from_array():
    columns = infer_columns([
        {"id": 1, "name": "a", "score": 2.5, "active": True, "tags": ["x"], "meta": {"k": "v"}},
    ])
    assert _as_set(columns) == {
        ("id", "integer"),
        ("name", "text"),
        ("score", "double"),
        ("active", "boolean"),
        ("tags", "text"),
        ("meta", "text"),
    }

def test_first_record_wins():
    """Test that only the first record defines the columns."""
    columns = infer_columns([{"id": 1}, {"id": "x", "extra": 2}])
    assert _as_set(columns) == {("id", "integer")}

def test_bare_object():
    columns = infer_columns({"title": "report", "pages": 3})
    assert _as_set(columns) == {("title", "text"), ("pages", "integer")}

def test_empty_array():
    with pytest.raises(EmptyInput):
        infer_columns([])

def test_empty_object():
    with pytest.raises(EmptyInput):
        infer_columns({})

def test_first_element_not_object():
    with pytest.raises(UnsupportedShape) as exc_info:
        infer_columns([1, {"id": 1}])
    assert "number" in str(exc_info.value)

def test_scalar_and_null_documents():
    for value in ["text", 12, 1.5, True, None]:
        with pytest.raises(UnsupportedShape):
            select_representative_record(value)

def test_unsafe_field_name():
    with pytest.raises(InvalidIdentifier):
        infer_columns([{"first name": "Ada"}])
