"""
Question-answering pipeline for the JSON assistant.

This module ties the stages together:
1. Routing a document to the small-file or large-file path by its token estimate
2. Small files: validating and answering from the raw JSON text
3. Large files: inferring a schema, loading an in-memory DuckDB table,
   describing it, running the query rounds and synthesizing the answer
4. A request boundary that turns failures into user-friendly responses
"""
import asyncio
import json
import logging
from typing import Any, Callable, List, Optional, Tuple

from json_assistant.schemas.responses import AnswerResponse
from json_assistant.schemas.table import InferredColumn, LoadReport
from json_assistant.services.answer_synthesis import (
    answer_from_json,
    answer_from_results,
    validate_question_against_json,
    validate_question_against_schema,
)
from json_assistant.services.config import AssistantConfig, load_config
from json_assistant.services.db_operations import DuckDBStore, run_in_thread
from json_assistant.services.error_handler import (
    EmptyQuestion,
    InvalidJson,
    get_error_type,
    get_user_friendly_error,
)
from json_assistant.services.formatting import get_json_preview
from json_assistant.services.llm_provider import ChatClient, create_chat_client
from json_assistant.services.schema_inference import infer_columns
from json_assistant.services.schema_reporter import build_schema_description
from json_assistant.services.sql_synthesis import generate_primary_query, retrieve_relevant_information
from json_assistant.services.table_loader import create_table, load_records
from json_assistant.services.token_budget import TokenBudgetCoordinator, TokenBudgetPolicy, TokenEstimator

logger = logging.getLogger(__name__)

INVALID_QUESTION_RESPONSE = "I cannot answer the query using the information from the file"


def prepare_table(store: DuckDBStore, table: str, json_value: Any, columns: List[InferredColumn],
                  batch_size: int) -> Tuple[LoadReport, str]:
    """Create and load the table, then describe it for the model."""
    create_table(store, table, columns)
    load_report = load_records(store, table, json_value, columns, batch_size)
    return load_report, build_schema_description(store, table)


class JsonQuestionPipeline:
    """
    Answers natural-language questions about one JSON document.

    Args:
        config: Pipeline tunables
        client: Language model used for validation, query synthesis and answers
        estimator: Token estimator for routing and the result budget
        store_factory: Builds the per-request analytical store
    """

    def __init__(self, config: AssistantConfig, client: ChatClient,
                 estimator: Optional[TokenEstimator] = None,
                 store_factory: Callable[[], DuckDBStore] = DuckDBStore):
        self.config = config
        self.client = client
        self.policy = TokenBudgetPolicy.from_config(config, estimator)
        self.store_factory = store_factory

    async def answer(self, question: str, json_text: str, json_name: str = "",
                     cancel_event: Optional[asyncio.Event] = None) -> AnswerResponse:
        """
        Answer a question about a JSON document.

        Raises:
            EmptyQuestion: If the question is blank
            InvalidJson: If the document does not parse
            JsonAssistantError: Any fatal failure of a pipeline stage
        """
        if not question or not question.strip():
            raise EmptyQuestion("Question is empty")
        try:
            json_value = json.loads(json_text)
        except (TypeError, ValueError) as e:
            raise InvalidJson(f"Failed to parse JSON: {e}") from e

        file_tokens = self.policy.estimate(json_text)
        if file_tokens < self.config.small_file_token_threshold:
            logger.info("Answering from raw JSON (%d estimated tokens)", file_tokens)
            return await self._answer_small(question, json_text)

        logger.info("Answering through the analytical store (%d estimated tokens)", file_tokens)
        return await self._answer_large(question, json_text, json_value, json_name, cancel_event)

    async def _answer_small(self, question: str, json_text: str) -> AnswerResponse:
        if not await validate_question_against_json(self.client, question, json_text):
            return AnswerResponse(answer=INVALID_QUESTION_RESPONSE, path="small", is_valid_question=False)

        answer = await answer_from_json(self.client, json_text, question)
        return AnswerResponse(answer=answer, path="small")

    async def _answer_large(self, question: str, json_text: str, json_value: Any, json_name: str,
                            cancel_event: Optional[asyncio.Event]) -> AnswerResponse:
        config = self.config
        table = config.table_name
        columns = infer_columns(json_value)
        json_preview = get_json_preview(json_text, config.json_preview_chars, config.preview_truncation_marker)

        with self.store_factory() as store:
            load_report, schema = await run_in_thread(
                store, prepare_table, store, table, json_value, columns, config.insert_batch_size,
                cancel_event=cancel_event,
            )

            if not await validate_question_against_schema(self.client, question, schema, json_preview, json_name):
                return AnswerResponse(
                    answer=INVALID_QUESTION_RESPONSE,
                    path="large",
                    is_valid_question=False,
                    load_report=load_report,
                )

            async def run_first_round():
                return await generate_primary_query(
                    self.client, store, question, table, schema, json_preview,
                    config.max_sql_attempts, cancel_event,
                )

            async def run_second_round():
                return await retrieve_relevant_information(
                    self.client, store, question, table, schema, json_preview,
                    config.max_sql_attempts, cancel_event,
                )

            collected = await TokenBudgetCoordinator(self.policy).collect(run_first_round, run_second_round)

        answer = await answer_from_results(self.client, collected.results_text, question)
        return AnswerResponse(
            answer=answer,
            path="large",
            queries=collected.queries,
            results=collected.results_text,
            load_report=load_report,
        )


async def ask_json_assistant(question: str, json_text: str, json_name: str = "",
                             config: Optional[AssistantConfig] = None,
                             client: Optional[ChatClient] = None,
                             cancel_event: Optional[asyncio.Event] = None) -> AnswerResponse:
    """
    Process a question about a JSON document end-to-end.

    Never raises: failures are logged with their details and the response
    carries a user-friendly message instead.
    """
    logger.info("Processing question: '%s'", question)
    try:
        config = config or load_config()
        client = client or create_chat_client(config)
        pipeline = JsonQuestionPipeline(config, client)
        return await pipeline.answer(question, json_text, json_name, cancel_event)
    except Exception as e:
        logger.exception("Failed to answer question: %s: %s", type(e).__name__, e)
        return AnswerResponse(
            answer=get_user_friendly_error(e),
            error=True,
            error_type=get_error_type(e),
        )
