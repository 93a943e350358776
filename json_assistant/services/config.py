"""
Configuration for the JSON assistant.

Defaults are read from assistant_config.yaml next to this module. The
resulting AssistantConfig is passed explicitly to the pipeline; nothing in
the pipeline reads configuration from module-level state.
"""
import os
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from json_assistant.guardrails import validate_identifier
from json_assistant.services.error_handler import ConfigurationError

load_dotenv()

SERVICES_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_CONFIG_FILE = os.path.join(SERVICES_DIR, "assistant_config.yaml")

SUPPORTED_PROVIDERS = ("openai", "anthropic", "mistral", "deepseek")

DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-latest",
    "mistral": "mistral-large-latest",
    "deepseek": "deepseek-chat",
}


class AssistantConfig(BaseModel):
    """Tunables of the question-answering pipeline."""
    llm_provider: Optional[str] = None
    llm_model: Optional[str] = None
    models: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MODELS))
    request_timeout_seconds: float = Field(60.0, gt=0)
    max_sql_attempts: int = Field(10, ge=1)
    max_result_tokens: int = Field(18000, ge=0)
    max_total_tokens: int = Field(25000, ge=0)
    small_file_token_threshold: int = Field(2000, ge=0)
    json_preview_chars: int = Field(5000, ge=0)
    preview_truncation_marker: str = "..."
    table_name: str = "json_data"
    insert_batch_size: int = Field(500, ge=1)

    @field_validator("llm_provider")
    @classmethod
    def _check_provider(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        if value not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unknown provider: {value}")
        return value

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        is_valid, error = validate_identifier(value)
        if not is_valid:
            raise ValueError(error)
        return value

    @model_validator(mode="after")
    def _check_budgets(self) -> "AssistantConfig":
        if self.max_result_tokens > self.max_total_tokens:
            raise ValueError(
                f"max_result_tokens ({self.max_result_tokens}) must not exceed "
                f"max_total_tokens ({self.max_total_tokens})"
            )
        return self

    def model_for(self, provider: str) -> str:
        """Model name to use with the given provider."""
        if self.llm_model:
            return self.llm_model
        return self.models.get(provider) or DEFAULT_MODELS[provider]


def load_yaml_config(filepath: str) -> dict:
    """Load a YAML configuration file with error handling."""
    try:
        with open(filepath, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {filepath}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {filepath}: {str(e)}")

    if config is None:
        raise ConfigurationError(f"Empty configuration file: {filepath}")
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration in {filepath} must be a mapping, got {type(config).__name__}")
    return config


def load_config(filepath: Optional[str] = None) -> AssistantConfig:
    """
    Build the assistant configuration.

    Args:
        filepath: YAML file to read. Defaults to JSON_ASSISTANT_CONFIG or the packaged defaults.

    Returns:
        Validated AssistantConfig

    Raises:
        ConfigurationError: If the file is missing, malformed or holds invalid values
    """
    filepath = filepath or os.getenv("JSON_ASSISTANT_CONFIG") or DEFAULT_CONFIG_FILE
    raw = load_yaml_config(filepath)
    settings = raw.get("assistant", raw)
    if not isinstance(settings, dict):
        raise ConfigurationError(f"'assistant' section in {filepath} must be a mapping")
    settings = dict(settings)

    provider = os.getenv("LLM_PROVIDER", "").strip()
    if provider:
        settings["llm_provider"] = provider
    model = os.getenv("LLM_MODEL", "").strip()
    if model:
        settings["llm_model"] = model

    try:
        return AssistantConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {filepath}: {e}") from e
