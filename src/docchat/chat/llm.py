"""Chat-completion client — single place to swap providers.

The NVIDIA integrate API exposes an OpenAI-compatible
``/v1/chat/completions`` endpoint, so ``ChatOpenAI`` works unchanged when
pointed at ``settings.nvidia_base_url``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from docchat.config import Settings
from docchat.errors import ConfigurationError, RemoteAPIError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Chat"


def get_llm(settings: Settings) -> ChatOpenAI:
    """Return the configured streaming chat model."""
    if not settings.nvidia_chat_model:
        raise ConfigurationError("Chat model name not configured")
    if not settings.nvidia_api_key:
        raise ConfigurationError("Chat API key not configured")

    kwargs: dict[str, Any] = {
        "model": settings.nvidia_chat_model,
        "base_url": settings.nvidia_base_url,
        "api_key": settings.nvidia_api_key,
        "streaming": True,
        "timeout": settings.request_timeout_seconds,
        "max_retries": settings.chat_max_retries,
    }
    if settings.chat_temperature is not None:
        kwargs["temperature"] = settings.chat_temperature

    logger.info("Using chat model %s at %s", settings.nvidia_chat_model, settings.nvidia_base_url)
    return ChatOpenAI(**kwargs)


class ChatClient:
    """Stream the text of a completion for a single-message prompt."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> ChatClient:
        return cls(get_llm(settings))

    def stream(self, prompt: str) -> Iterator[str]:
        """Yield text fragments as the model produces them.

        Raises
        ------
        RemoteAPIError
            The provider rejected the request or could not be reached.
        """
        try:
            for chunk in self._llm.stream([HumanMessage(content=prompt)]):
                if isinstance(chunk.content, str) and chunk.content:
                    yield chunk.content
        except openai.APIStatusError as exc:
            raise RemoteAPIError(SERVICE_NAME, exc.status_code, exc.response.text) from exc
        except openai.APIConnectionError as exc:
            raise RemoteAPIError(SERVICE_NAME, None, str(exc)) from exc
