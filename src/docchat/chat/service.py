"""Retrieval-augmented chat turn: retrieve, assemble, stream."""

from __future__ import annotations

import logging
from typing import Iterator

from docchat.chat.llm import ChatClient
from docchat.chat.messages import ChatMessage
from docchat.chat.prompts import build_rag_prompt
from docchat.errors import BadRequest
from docchat.retrieval.retriever import ContextRetriever

logger = logging.getLogger(__name__)


class ChatService:
    """Answer the latest message using the requesting user's documents.

    Parameters
    ----------
    retriever:
        Per-user context retriever.
    chat_client:
        Streaming chat-completion client.
    top_k:
        Number of chunks placed in the prompt.
    """

    def __init__(self, retriever: ContextRetriever, chat_client: ChatClient, *, top_k: int = 5) -> None:
        self._retriever = retriever
        self._chat = chat_client
        self.top_k = top_k

    def build_prompt(self, user_id: str, messages: list[ChatMessage]) -> str:
        """Retrieve context for the latest message and fill the RAG template."""
        question = messages[-1].content if messages else ""
        if not question or not question.strip():
            raise BadRequest("No message content found")

        results = self._retriever.search_for_user(question, user_id, k=self.top_k)
        logger.info(
            "Chat turn for user %s: %d context chunks, %d prior messages",
            user_id,
            len(results),
            len(messages) - 1,
        )
        return build_rag_prompt(question, results, messages[:-1])

    def stream_answer(self, user_id: str, messages: list[ChatMessage]) -> Iterator[str]:
        """Yield the model's answer fragment by fragment.

        Nothing runs until the first fragment is requested, so callers can
        pull one fragment to surface retrieval and provider errors before
        committing to a streamed response.
        """
        prompt = self.build_prompt(user_id, messages)
        yield from self._chat.stream(prompt)
