"""
Prompt construction for the JSON assistant.

Every model call of the pipeline gets its system instruction and user
message from here.
"""
from typing import List

from json_assistant.schemas.messages import ChatMessage

_SQL_RESULT_SIZE_RULE = (
    "The rows returned by your query are sent back to a language model to answer the user's "
    "question, so keep the result small: aim for results that fit in 1000 or fewer tokens "
    "(use aggregates, filters, DISTINCT and LIMIT where they help)."
)

SQL_GENERATION_SYSTEM_PROMPT = (
    "You are an assistant that writes SQL queries for DuckDB. "
    "You answer with a single DuckDB SELECT statement and nothing else: "
    "no explanations, no comments, no Markdown. "
    + _SQL_RESULT_SIZE_RULE
)

EXPLORATION_SYSTEM_PROMPT = (
    "You are an assistant that writes exploratory SQL queries for DuckDB. "
    "Your query gathers additional context from a large JSON document that was loaded into a table, "
    "beyond what a direct answer query would return. "
    "You answer with a single DuckDB SELECT statement and nothing else: "
    "no explanations, no comments, no Markdown. "
    + _SQL_RESULT_SIZE_RULE
)

ANSWER_SYSTEM_PROMPT = (
    "You are an assistant that helps users understand their JSON data. "
    "You are given information that was extracted from the user's JSON file and the user's question. "
    "Answer the question from that information only. Never mention databases, tables, SQL or queries; "
    "answer as if you simply knew the information."
)

SCHEMA_VALIDATION_SYSTEM_PROMPT = (
    "You decide whether a user's question can be answered, inferred, or at least attempted using a JSON file. "
    "You are given the file's schema and a preview of its data. Match the terms of the question to fields of "
    "the data, including closely related fields and synonyms, and make logical inferences when terms do not "
    "match exactly."
)

JSON_VALIDATION_SYSTEM_PROMPT = (
    "You decide whether a user's question can be answered, inferred, or at least attempted using a JSON file. "
    "You are given the full file. Match the terms of the question to fields of the data, including closely "
    "related fields and synonyms, and make logical inferences when terms do not match exactly."
)

JSON_ANSWER_SYSTEM_PROMPT = (
    "You are an assistant that helps users answer questions about their JSON data. "
    "Analyze the JSON you are given and answer the user's question."
)

_VALIDATION_REPLY_RULES = (
    "[Reply Format]\n"
    "Lean toward '1' unless the question is completely unrelated to the data.\n"
    "Reply with exactly '1' if the question could be answered, inferred, attempted, or even guessed at.\n"
    "Reply with '0' followed by the reason only if you are certain the data is irrelevant to the question."
)


def build_sql_prompt(question: str, table_name: str, schema: str, json_preview: str) -> str:
    """User message asking for a query that answers the question."""
    return (
        f"User question: \"{question}\"\n\n"
        "Write a SQL query that answers this question, or that retrieves the information needed to answer it.\n\n"
        f"[Table]\nTable name: {table_name}\n{schema}\n\n"
        f"[JSON Preview]\nThe beginning of the JSON document the table was loaded from:\n{json_preview}\n\n"
        "[Requirements]\n"
        f"1. Query only the {table_name} table\n"
        "2. Columns listed under 'Expanded Fields from JSON Columns' hold JSON text; read nested fields with "
        "DuckDB JSON functions such as json_extract_string(column, '$.path')\n"
        "3. Return only the SQL statement; it is executed as-is and its rows are given to another model "
        "to answer the question\n"
    )


def build_exploration_prompt(question: str, table_name: str, schema: str, json_preview: str) -> str:
    """User message asking for a query that retrieves supporting context for the question."""
    return (
        f"User question: \"{question}\"\n\n"
        "Write a SQL query that retrieves the relevant information from this large JSON document that would "
        "help answer the question: related records, breakdowns, or details a direct answer would leave out.\n\n"
        f"[Table]\nTable name: {table_name}\n{schema}\n\n"
        f"[JSON Preview]\nThe beginning of the JSON document the table was loaded from:\n{json_preview}\n\n"
        "[Requirements]\n"
        f"1. Query only the {table_name} table\n"
        "2. Columns listed under 'Expanded Fields from JSON Columns' hold JSON text; read nested fields with "
        "DuckDB JSON functions such as json_extract_string(column, '$.path')\n"
        "3. Return only the SQL statement; it is executed as-is and its rows are given to another model "
        "to answer the question\n"
    )


def build_error_correction_prompt(sql: str, error: str) -> str:
    return (
        f"The query you generated: '{sql}' resulted in the following error: {error}\n"
        "Please fix the query. Return only the corrected SQL statement."
    )


def build_answer_messages(results: str, question: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=ANSWER_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                "The following information was extracted from the user's large JSON file:\n"
                f"{results}\n"
                "Using this information, answer the user's question in a kind and friendly way. "
                "Do not mention the database or the queries in your answer.\n\n"
                f"User question: {question}"
            ),
        ),
    ]


def build_schema_validation_messages(question: str, schema: str, json_preview: str, json_name: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=SCHEMA_VALIDATION_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                f"The JSON file is called \"{json_name}\".\n\n"
                f"[JSON Preview]\n{json_preview}\n\n"
                f"[Schema]\nThe file was loaded into a DuckDB table with this schema:\n{schema}\n\n"
                f"[Question]\n\"{question}\"\n\n"
                "Could this question be answered, inferred, or at least attempted from this JSON? Relevant data "
                "may be nested inside JSON columns such as 'metadata'. Before answering '0', ask yourself whether "
                "you could write a SQL query that explores this data to attempt an answer; only if you cannot, "
                "answer '0'.\n\n"
                f"{_VALIDATION_REPLY_RULES}"
            ),
        ),
    ]


def build_json_validation_messages(question: str, json_text: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=JSON_VALIDATION_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                f"[JSON]\n{json_text}\n\n"
                f"[Question]\n\"{question}\"\n\n"
                "Could this question be answered, inferred, or at least attempted from this JSON?\n\n"
                f"{_VALIDATION_REPLY_RULES}"
            ),
        ),
    ]


def build_json_answer_messages(json_text: str, question: str) -> List[ChatMessage]:
    return [
        ChatMessage(role="system", content=JSON_ANSWER_SYSTEM_PROMPT),
        ChatMessage(
            role="user",
            content=(
                f"Using the following JSON:\n{json_text}\n\n"
                "Please answer the user's question in a kind and friendly way. "
                f"The user asked:\n{question}"
            ),
        ),
    ]
