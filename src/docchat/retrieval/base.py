"""Abstract base class for vector-store backends.

Adding a new backend (Weaviate, Qdrant …) only requires subclassing
:class:`VectorStoreBase` and implementing the abstract methods.  The
ingestion pipeline and the retriever are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from docchat.retrieval.models import MetadataFilter, QueryMatch, VectorRecord


def build_filter_expression(filters: list[MetadataFilter] | None) -> dict[str, Any] | None:
    """Convert equality filters to ``{"field": {"$eq": value}}`` clauses.

    Both Pinecone and Chroma accept this syntax, with several clauses
    combined under ``{"$and": [...]}``.
    """
    if not filters:
        return None

    clauses = [{f.field: {"$eq": f.value}} for f in filters]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    index_name:
        Logical name of the index / collection.
    dimension:
        Vector dimensionality the index is created with.
    metric:
        Similarity metric (``cosine`` by default).
    """

    def __init__(self, index_name: str, *, dimension: int, metric: str = "cosine") -> None:
        self.index_name = index_name
        self.dimension = dimension
        self.metric = metric

    @abstractmethod
    def ensure_index(self) -> None:
        """Create the index if it does not exist and block until it is ready.

        Must be idempotent: calling it repeatedly never fails with
        "already exists" and never creates a second index.
        """
        ...

    @abstractmethod
    def upsert(self, records: list[VectorRecord]) -> int:
        """Write *records*, overwriting existing identifiers.

        Large inputs are split into backend-sized batches; every record is
        written. Returns the number of records written.
        """
        ...

    @abstractmethod
    def query(
        self,
        vector: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
        include_metadata: bool = True,
    ) -> list[QueryMatch]:
        """Return the *top_k* nearest records that match *filters*.

        Results are ordered by descending similarity score.
        """
        ...

