"""
Retrieval — vector storage, per-user search, and citations.

This module wraps the vector store behind a clean interface so that the
ingestion pipeline and the chat service never need to know which DB is
backing retrieval.

Public surface
--------------
- :class:`ContextRetriever` — per-user retrieval with citations.
- :class:`VectorStoreBase` — abstract backend.
- :class:`PineconeVectorStore` — default Pinecone backend.
- :class:`ChromaVectorStore` — self-hosted Chroma backend.
- :class:`VectorRecord`, :class:`QueryMatch`, :class:`Citation`,
  :class:`RetrievalResult`, :class:`MetadataFilter` — data models.
"""

from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import (
    Citation,
    MetadataFilter,
    QueryMatch,
    RetrievalResult,
    VectorRecord,
)
from docchat.retrieval.retriever import ContextRetriever

__all__ = [
    "ChromaVectorStore",
    "Citation",
    "ContextRetriever",
    "MetadataFilter",
    "PineconeVectorStore",
    "QueryMatch",
    "RetrievalResult",
    "VectorRecord",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import backends so only the configured SDK is loaded."""
    if name == "ChromaVectorStore":
        from docchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    if name == "PineconeVectorStore":
        from docchat.retrieval.pinecone_store import PineconeVectorStore

        return PineconeVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
