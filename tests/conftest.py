"""
Test configuration and fixtures for the JSON assistant.

This module provides common test fixtures for both unit and integration tests:
a scripted chat client standing in for the language model, an in-memory
DuckDB store and the default configuration.
"""
import os
import pytest

from json_assistant.services.config import AssistantConfig
from json_assistant.services.db_operations import DuckDBStore
from json_assistant.services.llm_provider import ChatClient


class ScriptedChatClient(ChatClient):
    """
    Chat client replaying canned replies.

    Each reply is either a string or an exception to raise. Once the script
    runs out, `default` is returned if set.
    """
    provider = "scripted"

    def __init__(self, replies=None, default=None):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []

    async def _complete(self, messages):
        # Snapshot: the synthesis loop keeps appending to the same list
        self.calls.append([message.model_copy() for message in messages])
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError("ScriptedChatClient ran out of replies")
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def scripted_client():
    """Factory for scripted chat clients."""
    return ScriptedChatClient


@pytest.fixture
def store():
    """In-memory DuckDB store, closed after the test."""
    with DuckDBStore() as duckdb_store:
        yield duckdb_store


@pytest.fixture
def config():
    return AssistantConfig()


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    if not os.environ.get("OPENAI_API_KEY"):
        os.environ["OPENAI_API_KEY"] = "dummy_key_for_tests"
