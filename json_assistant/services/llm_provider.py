"""
LLM provider utilities for the JSON assistant.

This module handles interactions with the different LLM providers behind a
single ChatClient interface: a conversation goes in, the reply text comes out.
"""
import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import anthropic
import httpx
from mistralai import Mistral
from openai import AsyncOpenAI

from json_assistant.schemas.messages import ChatMessage
from json_assistant.services.error_handler import ConfigurationError, ModelUnavailable

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"

# Provider name -> API key variable, in auto-detection order
PROVIDER_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
}


class ChatClient(ABC):
    """A language model that completes role-tagged conversations."""
    provider = "unknown"

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """
        Submit a conversation and return the model's reply.

        Raises:
            ModelUnavailable: On any transport, authentication or provider failure
        """
        try:
            reply = await self._complete(list(messages))
        except ModelUnavailable:
            raise
        except Exception as e:
            logger.error("%s chat completion failed: %s", self.provider, e)
            raise ModelUnavailable(f"{self.provider} error: {str(e)}", provider=self.provider) from e
        return reply or ""

    @abstractmethod
    async def _complete(self, messages: List[ChatMessage]) -> Optional[str]:
        ...


class OpenAIChatClient(ChatClient):
    """OpenAI chat completions; also serves OpenAI-compatible APIs such as DeepSeek."""
    provider = "openai"

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 timeout: float = 60.0, provider: Optional[str] = None):
        self.model = model
        if provider:
            self.provider = provider
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(timeout=timeout)
        )

    async def _complete(self, messages: List[ChatMessage]) -> Optional[str]:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[message.model_dump() for message in messages],
        )
        return response.choices[0].message.content


class AnthropicChatClient(ChatClient):
    provider = "anthropic"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0, max_tokens: int = 4096):
        self.model = model
        self.max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def _complete(self, messages: List[ChatMessage]) -> Optional[str]:
        # The messages API takes the system prompt separately
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        conversation = [m.model_dump() for m in messages if m.role != "system"]
        kwargs = {"system": system} if system else {}
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=conversation,
            **kwargs
        )
        return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")


class MistralChatClient(ChatClient):
    provider = "mistral"

    def __init__(self, api_key: str, model: str, timeout: float = 60.0):
        self.model = model
        self._client = Mistral(api_key=api_key, timeout_ms=int(timeout * 1000))

    async def _complete(self, messages: List[ChatMessage]) -> Optional[str]:
        response = await self._client.chat.complete_async(
            model=self.model,
            messages=[message.model_dump() for message in messages],
        )
        return response.choices[0].message.content


def get_available_llm_providers() -> List[str]:
    return [provider for provider, key in PROVIDER_API_KEYS.items() if os.getenv(key, "").strip()]


def get_llm_provider(config=None) -> str:
    """Configured provider, or the first provider whose API key is set."""
    provider = getattr(config, "llm_provider", None) or os.getenv("LLM_PROVIDER", "").strip()
    if provider:
        return provider.lower()
    available = get_available_llm_providers()
    if available:
        return available[0]
    raise ConfigurationError(
        "No LLM API key found. Please set at least one of: " + ", ".join(PROVIDER_API_KEYS.values())
    )


def create_chat_client(config) -> ChatClient:
    """
    Build the chat client for the configured provider.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing
    """
    provider = get_llm_provider(config)
    if provider not in PROVIDER_API_KEYS:
        raise ConfigurationError(f"Unknown provider: {provider}")

    api_key = os.getenv(PROVIDER_API_KEYS[provider], "").strip()
    if not api_key:
        raise ConfigurationError(f"{PROVIDER_API_KEYS[provider]} is not set in environment variables.")

    model = config.model_for(provider)
    timeout = config.request_timeout_seconds
    logger.info("Using %s model %s", provider, model)

    if provider == "openai":
        return OpenAIChatClient(api_key, model, timeout=timeout)
    elif provider == "deepseek":
        return OpenAIChatClient(api_key, model, base_url=DEEPSEEK_BASE_URL, timeout=timeout, provider="deepseek")
    elif provider == "anthropic":
        return AnthropicChatClient(api_key, model, timeout=timeout)
    else:
        return MistralChatClient(api_key, model, timeout=timeout)


async def converse(client: ChatClient, messages: List[ChatMessage]) -> str:
    """Send the conversation and record the model's reply in it."""
    reply = await client.complete(messages)
    messages.append(ChatMessage(role="assistant", content=reply))
    return reply
