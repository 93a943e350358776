"""
Text helpers shared by the pipeline stages.
"""
import re
from typing import Any, Dict, List

# Opening fence with an optional language tag, e.g. ```sql or ```duckdb
_OPENING_FENCE = re.compile(
    r"^```(?:(?:sql|duckdb|postgresql|postgres)\b|[A-Za-z0-9_-]*(?=[ \t]*\n))?",
    re.IGNORECASE,
)
_CLOSING_FENCE = re.compile(r"```$")


def get_json_preview(json_text: str, preview_length: int, marker: str = "...") -> str:
    """Return the first preview_length characters, marked when truncated."""
    if len(json_text) > preview_length:
        return json_text[:preview_length] + marker
    return json_text


def clean_sql_generation(sql: str) -> str:
    """Strip Markdown code-fence wrapping from a model reply, if present."""
    sql = sql.strip()
    sql = _OPENING_FENCE.sub("", sql, count=1)
    sql = _CLOSING_FENCE.sub("", sql, count=1)
    return sql.strip()


def results_to_string(rows: List[Dict[str, Any]]) -> str:
    """Render rows as one 'column: value, column: value' line per row."""
    lines = []
    for row in rows:
        lines.append(", ".join(f"{key}: {value}" for key, value in row.items()))
    return "".join(line + "\n" for line in lines)


def format_query_round(sql: str, results_text: str, leading_newline: bool = False) -> str:
    block = f"Query Run: {sql}\nQuery Results: {results_text}\n"
    return "\n" + block if leading_newline else block
