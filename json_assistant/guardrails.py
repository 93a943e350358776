"""
Guardrails for the JSON assistant.

This module provides validation and quoting of identifiers that come from
uploaded JSON documents, and the read-only check applied to model generated SQL.
"""
import re
from typing import Iterable, List, Sequence, Tuple

from json_assistant.services.error_handler import InvalidIdentifier

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 255

# Statement types the model is allowed to run against the loaded table
ALLOWED_STATEMENT_TYPES = {"SELECT"}


def validate_identifier(name: str) -> Tuple[bool, str]:
    """
    Validate a single field name against the identifier allow-list.

    Args:
        name: Field name taken from a JSON object

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(name, str) or not name:
        return False, "Field name must be a non-empty string"
    if len(name) > MAX_IDENTIFIER_LENGTH:
        return False, f"Field name is longer than {MAX_IDENTIFIER_LENGTH} characters: {name[:40]}..."
    if not IDENTIFIER_PATTERN.match(name):
        return False, f"Field name contains unsupported characters: {name!r}"
    return True, ""


def validate_field_names(names: Iterable[str]) -> List[str]:
    """
    Validate every field name of the representative record.

    Names must be safe identifiers and must stay distinct when compared
    case-insensitively, since DuckDB column names are case-insensitive.

    Raises:
        InvalidIdentifier: If any name is rejected
    """
    names = list(names)
    problems = []
    seen = {}
    for name in names:
        is_valid, error = validate_identifier(name)
        if not is_valid:
            problems.append(error)
            continue
        folded = name.lower()
        if folded in seen:
            problems.append(f"Field names {seen[folded]!r} and {name!r} differ only by case")
        else:
            seen[folded] = name

    if problems:
        raise InvalidIdentifier("; ".join(problems))
    return names


def quote_identifier(name: str) -> str:
    """Quote an identifier for use in generated SQL."""
    return '"' + name.replace('"', '""') + '"'


def validate_statement_types(statement_types: Sequence[str]) -> Tuple[bool, str]:
    """
    Check that model generated SQL is a single read-only statement.

    Args:
        statement_types: Statement type names reported by the store's parser

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not statement_types:
        return False, "The query is empty; expected a single SELECT statement"
    if len(statement_types) > 1:
        return False, f"Expected a single SELECT statement, got {len(statement_types)} statements"
    statement_type = statement_types[0].upper()
    if statement_type not in ALLOWED_STATEMENT_TYPES:
        return False, f"Only SELECT statements are allowed, got a {statement_type} statement"
    return True, ""
