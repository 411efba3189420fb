"""Chat messages and their rendering into prompt history lines."""

from __future__ import annotations

import enum
from typing import Callable

from pydantic import BaseModel


class MessageRole(str, enum.Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"
    TOOL = "tool"
    DATA = "data"
    OTHER = "other"

    @classmethod
    def parse(cls, role: str) -> MessageRole:
        """Map a client-supplied role to a variant; unknown roles are ``OTHER``."""
        try:
            return cls(role.strip().lower())
        except ValueError:
            return cls.OTHER


class ChatMessage(BaseModel):
    """One turn of client-side conversation state."""

    role: str
    content: str = ""

    @property
    def kind(self) -> MessageRole:
        return MessageRole.parse(self.role)


def _labelled(label: str) -> Callable[[ChatMessage], str]:
    return lambda message: f"{label}: {message.content}"


_RENDERERS: dict[MessageRole, Callable[[ChatMessage], str]] = {
    MessageRole.SYSTEM: _labelled("system"),
    MessageRole.USER: _labelled("user"),
    MessageRole.ASSISTANT: _labelled("assistant"),
    MessageRole.FUNCTION: _labelled("function"),
    MessageRole.TOOL: _labelled("tool"),
    MessageRole.DATA: _labelled("data"),
}


def render_message(message: ChatMessage) -> str:
    """Render *message* as a ``role: content`` history line."""
    renderer = _RENDERERS.get(message.kind)
    if renderer is None:
        # OTHER keeps whatever role the client sent.
        return f"{message.role}: {message.content}"
    return renderer(message)


def format_history(messages: list[ChatMessage]) -> str:
    """Render prior turns, one per line."""
    return "\n".join(render_message(m) for m in messages)
