"""
Schema inference for uploaded JSON documents.

The column set is derived from a single representative record (the first
element of a top-level array, or the object itself) and applied to every
record of the document. Later records are not inspected.
"""
from typing import Any, Dict, List

from json_assistant.guardrails import validate_field_names
from json_assistant.schemas.table import ColumnType, InferredColumn
from json_assistant.services.error_handler import EmptyInput, UnsupportedShape


def determine_field_type(value: Any) -> ColumnType:
    """Map the dynamic type of a JSON value to a semantic column type."""
    if isinstance(value, str):
        return "text"
    # bool is a subclass of int, so it has to be checked before the numbers
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float):
        return "double"
    if isinstance(value, int):
        return "integer"
    # Nested objects and arrays are stored as serialized JSON text
    return "text"


def select_representative_record(json_value: Any) -> Dict[str, Any]:
    """
    Pick the record whose fields define the table.

    Raises:
        EmptyInput: If the document is an empty array or an object without fields
        UnsupportedShape: If the document is a scalar, null, or an array whose
            first element is not an object
    """
    if isinstance(json_value, list):
        if not json_value:
            raise EmptyInput("JSON array is empty")
        first_item = json_value[0]
        if not isinstance(first_item, dict):
            raise UnsupportedShape(
                f"Unexpected structure: expected an object as first array element, got {_json_type(first_item)}"
            )
        record = first_item
    elif isinstance(json_value, dict):
        record = json_value
    else:
        raise UnsupportedShape(f"Unsupported JSON structure: {_json_type(json_value)}")

    if not record:
        raise EmptyInput("Representative JSON object has no fields")
    return record


def infer_columns(json_value: Any) -> List[InferredColumn]:
    """
    Infer the relational column set of a JSON document.

    Args:
        json_value: Parsed JSON document

    Returns:
        One InferredColumn per field of the representative record

    Raises:
        EmptyInput, UnsupportedShape: If no representative record can be chosen
        InvalidIdentifier: If a field name is not a safe column identifier
    """
    record = select_representative_record(json_value)
    validate_field_names(record.keys())
    return [
        InferredColumn(name=name, column_type=determine_field_type(value))
        for name, value in record.items()
    ]


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return type(value).__name__
