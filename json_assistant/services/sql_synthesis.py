"""
Query synthesis for the JSON assistant.

This module drives the generate, execute and repair loop:
1. Asking the model for a SQL statement against the loaded table
2. Executing the cleaned statement on the request's store
3. Feeding the verbatim error back to the model until a statement runs
   or the attempt budget is spent
"""
import asyncio
import logging
from enum import Enum
from typing import List, Optional

from json_assistant.schemas.messages import ChatMessage
from json_assistant.schemas.responses import SynthesisResult
from json_assistant.services.db_operations import DuckDBStore, execute_sql_query, run_in_thread
from json_assistant.services.error_handler import RequestCancelled, SynthesisExhausted
from json_assistant.services.formatting import clean_sql_generation, results_to_string
from json_assistant.services.llm_provider import ChatClient, converse
from json_assistant.services.prompts import (
    EXPLORATION_SYSTEM_PROMPT,
    SQL_GENERATION_SYSTEM_PROMPT,
    build_error_correction_prompt,
    build_exploration_prompt,
    build_sql_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10


class SynthesisState(str, Enum):
    PROMPTING = "prompting"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class QuerySynthesisLoop:
    """
    Bounded retry loop that turns a question into an executable query.

    Each attempt submits the whole conversation, so the model sees every
    statement it tried and the error each one raised.
    """

    def __init__(self, client: ChatClient, store: DuckDBStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.store = store
        self.max_attempts = max_attempts
        self.state = SynthesisState.PROMPTING
        self.attempts = 0

    async def run(self, system_prompt: str, user_prompt: str,
                  cancel_event: Optional[asyncio.Event] = None) -> SynthesisResult:
        """
        Run the loop until a statement executes.

        Args:
            system_prompt: Instruction constraining the model to emit only SQL
            user_prompt: Question, schema description and JSON preview
            cancel_event: Checked before every attempt; also interrupts a running query

        Returns:
            SynthesisResult with the successful statement and its rows

        Raises:
            SynthesisExhausted: If no statement ran within max_attempts
            RequestCancelled: If cancel_event was set
            ModelUnavailable: If the model call itself failed
        """
        messages: List[ChatMessage] = [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=user_prompt),
        ]
        self.state = SynthesisState.PROMPTING
        self.attempts = 0
        last_error = None

        while self.attempts < self.max_attempts:
            if cancel_event is not None and cancel_event.is_set():
                self.state = SynthesisState.FAILED
                raise RequestCancelled("Query synthesis cancelled")

            self.attempts += 1
            reply = await converse(self.client, messages)
            sql = clean_sql_generation(reply)
            logger.info("Generated SQL (attempt %d/%d): %s", self.attempts, self.max_attempts, sql)

            self.state = SynthesisState.EXECUTING
            try:
                rows, error = await run_in_thread(self.store, execute_sql_query, self.store, sql,
                                                  cancel_event=cancel_event)
            except RequestCancelled:
                self.state = SynthesisState.FAILED
                raise
            if error is None:
                self.state = SynthesisState.SUCCEEDED
                return SynthesisResult(
                    sql=sql,
                    rows=rows,
                    results_text=results_to_string(rows),
                    attempts=self.attempts,
                    messages=messages,
                )

            last_error = error
            logger.warning("Attempt %d failed: %s", self.attempts, error)
            messages.append(ChatMessage(role="user", content=build_error_correction_prompt(sql, error)))
            self.state = SynthesisState.PROMPTING

        self.state = SynthesisState.FAILED
        logger.error("No executable query after %d attempts; last error: %s", self.attempts, last_error)
        raise SynthesisExhausted(self.attempts, last_error)


async def generate_primary_query(client: ChatClient, store: DuckDBStore, question: str, table_name: str,
                                 schema: str, json_preview: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                 cancel_event: Optional[asyncio.Event] = None) -> SynthesisResult:
    """Round 1: a query that answers the question."""
    loop = QuerySynthesisLoop(client, store, max_attempts)
    return await loop.run(
        SQL_GENERATION_SYSTEM_PROMPT,
        build_sql_prompt(question, table_name, schema, json_preview),
        cancel_event,
    )


async def retrieve_relevant_information(client: ChatClient, store: DuckDBStore, question: str, table_name: str,
                                        schema: str, json_preview: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                                        cancel_event: Optional[asyncio.Event] = None) -> SynthesisResult:
    """Round 2: an exploratory query gathering supporting context."""
    loop = QuerySynthesisLoop(client, store, max_attempts)
    return await loop.run(
        EXPLORATION_SYSTEM_PROMPT,
        build_exploration_prompt(question, table_name, schema, json_preview),
        cancel_event,
    )
