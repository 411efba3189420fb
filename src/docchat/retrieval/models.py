"""Domain models for vector records, query matches, and citations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class MetadataFilter(BaseModel):
    """Exact-match metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"userId"``, ``"documentId"``).
    value:
        The value the key must equal.
    """

    field: str
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, value=value)

    @classmethod
    def for_user(cls, user_id: str) -> MetadataFilter:
        """Restrict results to vectors owned by *user_id*."""
        return cls.equals("userId", user_id)


class VectorRecord(BaseModel):
    """One embedded chunk, keyed ``{documentId}-chunk-{index}``."""

    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @staticmethod
    def make_id(document_id: str, chunk_index: int) -> str:
        return f"{document_id}-chunk-{chunk_index}"


class QueryMatch(BaseModel):
    """A single nearest-neighbour hit returned by a vector store."""

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its document.

    Attributes
    ----------
    citation_id:
        Unique identifier for this citation instance.
    vector_id:
        The vector-store ID of the chunk.
    document_id:
        Identifier of the uploaded document the chunk came from.
    filename:
        Original filename of that document.
    chunk_index:
        Ordinal position of the chunk within the document.
    score:
        Similarity score returned by the vector store.
    metadata:
        The full metadata stored with the vector.
    retrieved_at:
        UTC timestamp of when the retrieval happened.
    """

    citation_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    vector_id: str | None = None
    document_id: str | None = None
    filename: str = "unknown"
    chunk_index: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation
