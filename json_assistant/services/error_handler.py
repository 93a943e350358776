"""
Error handling utilities for the JSON assistant.

This module provides:
1. The exception taxonomy raised by the question-answering pipeline
2. Generating user-friendly error messages that never leak store or model internals
"""
from typing import Optional

TROUBLE_MSG = "I'm having trouble processing your question. Could you please try again or rephrase it?"


class JsonAssistantError(Exception):
    """Base exception for every failure the pipeline surfaces to its caller."""
    error_type = "internal_error"
    user_message = TROUBLE_MSG

    def __init__(self, message: str = ""):
        self.message = message or self.user_message
        super().__init__(self.message)


class EmptyQuestion(JsonAssistantError):
    error_type = "empty_question"
    user_message = "Please ask a question."


class InvalidJson(JsonAssistantError):
    error_type = "invalid_json"
    user_message = "I cannot process this file because it is not valid JSON."


class EmptyInput(JsonAssistantError):
    error_type = "empty_input"
    user_message = "I cannot process this file because it does not contain any records."


class UnsupportedShape(JsonAssistantError):
    error_type = "unsupported_shape"
    user_message = (
        "I cannot process this file. It must contain a JSON object or an array of JSON objects."
    )


class InvalidIdentifier(JsonAssistantError):
    error_type = "invalid_identifier"
    user_message = (
        "I cannot process this file because some of its field names contain unsupported characters."
    )


class SynthesisExhausted(JsonAssistantError):
    """The model could not produce an executable query within the attempt budget."""
    error_type = "synthesis_exhausted"
    user_message = (
        "I couldn't build a valid query to answer your question from this file. "
        "Please try rephrasing it."
    )

    def __init__(self, attempts: int, last_error: Optional[str] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to generate a valid SQL query after {attempts} attempts")


class ModelUnavailable(JsonAssistantError):
    error_type = "model_unavailable"
    user_message = "The language model is currently unavailable. Please try again later."

    def __init__(self, message: str = "", provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class RequestCancelled(JsonAssistantError):
    error_type = "request_cancelled"
    user_message = "Your request was cancelled."


class ConfigurationError(JsonAssistantError):
    error_type = "configuration_error"


def get_user_friendly_error(error: BaseException) -> str:
    """Generate a user-friendly message for any exception raised while answering."""
    if isinstance(error, JsonAssistantError):
        return error.user_message
    return TROUBLE_MSG


def get_error_type(error: BaseException) -> str:
    if isinstance(error, JsonAssistantError):
        return error.error_type
    return JsonAssistantError.error_type
