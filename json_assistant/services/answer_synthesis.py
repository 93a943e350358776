"""
Answer synthesis and question validation for the JSON assistant.
"""
import logging

from json_assistant.services.llm_provider import ChatClient
from json_assistant.services.prompts import (
    build_answer_messages,
    build_json_answer_messages,
    build_json_validation_messages,
    build_schema_validation_messages,
)

logger = logging.getLogger(__name__)

VALID_QUESTION_REPLY = "1"


async def answer_from_results(client: ChatClient, results: str, question: str) -> str:
    """
    Compose the final answer from the collected query results.

    There is no retry: a failed model call is fatal to the request.
    """
    answer = await client.complete(build_answer_messages(results, question))
    return answer.strip()


async def answer_from_json(client: ChatClient, json_text: str, question: str) -> str:
    """Answer a question about a small document from its raw text."""
    answer = await client.complete(build_json_answer_messages(json_text, question))
    return answer.strip()


def _is_valid_reply(reply: str) -> bool:
    if reply.strip() == VALID_QUESTION_REPLY:
        return True
    logger.info("Question rejected by validation: %s", reply.strip())
    return False


async def validate_question_against_schema(client: ChatClient, question: str, schema: str,
                                           json_preview: str, json_name: str = "") -> bool:
    """Ask the model whether the loaded table can answer the question."""
    reply = await client.complete(build_schema_validation_messages(question, schema, json_preview, json_name))
    return _is_valid_reply(reply)


async def validate_question_against_json(client: ChatClient, question: str, json_text: str) -> bool:
    """Ask the model whether the raw document can answer the question."""
    reply = await client.complete(build_json_validation_messages(question, json_text))
    return _is_valid_reply(reply)
