"""
Chat — retrieval-augmented answers over a user's documents.

Public API
----------
- :class:`ChatService` — run one chat turn and stream the answer.
- :class:`ChatClient` — streaming chat-completion client.
- :class:`ChatMessage`, :class:`MessageRole` — conversation state.
- :func:`build_rag_prompt` — fill the prompt template.
"""

from docchat.chat.llm import ChatClient, get_llm
from docchat.chat.messages import ChatMessage, MessageRole, format_history, render_message
from docchat.chat.prompts import NO_CONTEXT, NO_HISTORY, build_rag_prompt
from docchat.chat.service import ChatService

__all__ = [
    "NO_CONTEXT",
    "NO_HISTORY",
    "ChatClient",
    "ChatMessage",
    "ChatService",
    "MessageRole",
    "build_rag_prompt",
    "format_history",
    "get_llm",
    "render_message",
]
