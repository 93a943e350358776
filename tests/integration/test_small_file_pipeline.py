"""
Integration tests for the small-file path and the request boundary.
"""
import asyncio
import json
import pytest

from json_assistant.services.pipeline import (
    INVALID_QUESTION_RESPONSE,
    JsonQuestionPipeline,
    ask_json_assistant,
)
from json_assistant.services.prompts import JSON_ANSWER_SYSTEM_PROMPT

SMALL_JSON = json.dumps([
    {"id": 1, "name": "Ada", "role": "engineer"},
    {"id": 2, "name": "Grace", "role": "admiral"},
])

@pytest.mark.asyncio
async def test_small_file_returns_synthesized_answer(scripted_client, config):
    """Test that the success branch returns the model's answer."""
    client = scripted_client(["1", " Grace is an admiral. "])
    response = await JsonQuestionPipeline(config, client).answer("What is Grace's role?", SMALL_JSON)

    assert response.path == "small"
    assert response.is_valid_question
    assert response.answer == "Grace is an admiral."
    assert response.queries == []
    assert response.load_report is None

    assert SMALL_JSON in client.calls[0][1].content
    assert client.calls[1][0].content == JSON_ANSWER_SYSTEM_PROMPT
    assert SMALL_JSON in client.calls[1][1].content
    assert "What is Grace's role?" in client.calls[1][1].content

@pytest.mark.asyncio
async def test_small_file_unanswerable(scripted_client, config):
    client = scripted_client(["0 nothing about weather"])
    response = await JsonQuestionPipeline(config, client).answer("Will it rain?", SMALL_JSON)

    assert response.answer == INVALID_QUESTION_RESPONSE
    assert not response.is_valid_question
    assert len(client.calls) == 1

@pytest.mark.asyncio
async def test_validation_reply_must_be_exactly_one(scripted_client, config):
    client = scripted_client(["1. Yes, it can be answered"])
    response = await JsonQuestionPipeline(config, client).answer("Who?", SMALL_JSON)
    assert not response.is_valid_question

@pytest.mark.asyncio
async def test_small_documents_accept_scalars(scripted_client, config):
    client = scripted_client(["1", "It is 42."])
    response = await JsonQuestionPipeline(config, client).answer("What number is it?", "42")
    assert response.answer == "It is 42."

@pytest.mark.asyncio
async def test_threshold_routes_to_store(scripted_client, config):
    config = config.model_copy(update={"small_file_token_threshold": 1})
    client = scripted_client(["1", "SELECT name FROM json_data WHERE id = 2", "SELECT 1 AS one", "Grace."])
    response = await JsonQuestionPipeline(config, client).answer("Who is 2?", SMALL_JSON)

    assert response.path == "large"
    assert "name: Grace" in response.results

@pytest.mark.asyncio
async def test_empty_question(scripted_client, config):
    client = scripted_client()
    response = await ask_json_assistant("   ", SMALL_JSON, config=config, client=client)
    assert response.error
    assert response.error_type == "empty_question"
    assert client.calls == []

@pytest.mark.asyncio
async def test_invalid_json(scripted_client, config):
    response = await ask_json_assistant("Who?", "{not json", config=config, client=scripted_client())
    assert response.error
    assert response.error_type == "invalid_json"
    assert "cannot process this file" in response.answer

@pytest.mark.asyncio
async def test_empty_array_on_large_path(scripted_client, config):
    config = config.model_copy(update={"small_file_token_threshold": 0})
    response = await ask_json_assistant("Who?", "[]", config=config, client=scripted_client())
    assert response.error_type == "empty_input"

@pytest.mark.asyncio
async def test_model_unavailable_on_validation(scripted_client, config):
    client = scripted_client([ConnectionError("timed out")])
    response = await ask_json_assistant("Who?", SMALL_JSON, config=config, client=client)
    assert response.error
    assert response.error_type == "model_unavailable"

@pytest.mark.asyncio
async def test_cancelled_request(scripted_client, config):
    config = config.model_copy(update={"small_file_token_threshold": 0})
    cancel_event = asyncio.Event()
    cancel_event.set()
    client = scripted_client(["1"])
    response = await ask_json_assistant("Who?", SMALL_JSON, config=config, client=client, cancel_event=cancel_event)

    assert response.error_type == "request_cancelled"
    assert client.calls == []

@pytest.mark.asyncio
async def test_missing_configuration(monkeypatch, config):
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    for key in ["OPENAI_API_KEY", "ANTHROPIC_API_KEY", "MISTRAL_API_KEY", "DEEPSEEK_API_KEY"]:
        monkeypatch.delenv(key, raising=False)
    response = await ask_json_assistant("Who?", SMALL_JSON, config=config)
    assert response.error_type == "configuration_error"
