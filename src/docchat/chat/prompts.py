"""Prompt template for retrieval-augmented answers.

The whole turn is sent to the model as one synthetic user message built
from this template: retrieved context, rendered chat history, and the
current question.
"""

from __future__ import annotations

from langchain_core.prompts import PromptTemplate

from docchat.chat.messages import ChatMessage, format_history
from docchat.retrieval.models import RetrievalResult

NO_CONTEXT = "No relevant context found in documents."
NO_HISTORY = "No previous messages."

RAG_PROMPT_TEMPLATE = """\
You are a helpful AI assistant. Use the following context retrieved from uploaded documents to answer the user's question. If the context doesn't contain the answer, state that you couldn't find the information in the provided documents.

Context:
---
{context}
---

Chat History:
---
{chat_history}
---

User Question: {question}

Answer:"""

RAG_PROMPT = PromptTemplate.from_template(RAG_PROMPT_TEMPLATE)


def format_context(results: list[RetrievalResult]) -> str:
    """Join retrieved chunk texts with a blank line, in retrieval order."""
    return "\n\n".join(r.content for r in results if r.content)


def build_rag_prompt(
    question: str,
    results: list[RetrievalResult],
    history: list[ChatMessage],
) -> str:
    """Assemble the prompt text for one chat turn.

    Parameters
    ----------
    question:
        Content of the latest message.
    results:
        Retrieved chunks, most similar first.
    history:
        Every message before the latest one.
    """
    return RAG_PROMPT.format(
        context=format_context(results) or NO_CONTEXT,
        chat_history=format_history(history) or NO_HISTORY,
        question=question,
    )
