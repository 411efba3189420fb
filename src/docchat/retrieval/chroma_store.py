"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import chromadb
import httpx
from chromadb.errors import ChromaError

from docchat.errors import RemoteAPIError
from docchat.retrieval.base import VectorStoreBase, build_filter_expression
from docchat.retrieval.models import MetadataFilter, QueryMatch, VectorRecord
from docchat.retry import call_with_retries

logger = logging.getLogger(__name__)

SERVICE_NAME = "Chroma"

T = TypeVar("T")


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Chunk text is stored both as the Chroma document and in the ``text``
    metadata key so that matches look the same as Pinecone's.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host / port:
        Chroma server address. Ignored when *client* is given.
    dimension / metric:
        Index shape; the metric is stored as ``hnsw:space``.
    upsert_batch_size:
        Max records per upsert call (Chroma cap ≈ 41 666).
    client:
        Pre-built Chroma client (injected in tests).
    """

    def __init__(
        self,
        collection_name: str,
        *,
        host: str = "localhost",
        port: int = 8000,
        dimension: int = 1024,
        metric: str = "cosine",
        upsert_batch_size: int = 5000,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        client: Any = None,
    ) -> None:
        super().__init__(collection_name, dimension=dimension, metric=metric)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._upsert_batch_size = max(1, upsert_batch_size)
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._collection: Any = None

    # -- VectorStoreBase overrides --------------------------------------------

    def ensure_index(self) -> None:
        self._collection = self._call(
            lambda: self._client.get_or_create_collection(
                name=self.index_name,
                metadata={"hnsw:space": self.metric},
            ),
            "get_or_create_collection",
        )

    def upsert(self, records: list[VectorRecord]) -> int:
        collection = self._require_collection()
        written = 0
        for start in range(0, len(records), self._upsert_batch_size):
            batch = records[start : start + self._upsert_batch_size]
            self._call(
                lambda batch=batch: collection.upsert(
                    ids=[r.id for r in batch],
                    embeddings=[r.values for r in batch],
                    documents=[r.metadata.get("text", "") for r in batch],
                    metadatas=[r.metadata for r in batch],
                ),
                f"upsert batch at {start}",
            )
            written += len(batch)
        logger.info("Upserted %d vectors into Chroma collection %s", written, self.index_name)
        return written

    def query(
        self,
        vector: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
        include_metadata: bool = True,
    ) -> list[QueryMatch]:
        collection = self._require_collection()
        results = self._call(
            lambda: collection.query(
                query_embeddings=[vector],
                n_results=top_k,
                where=build_filter_expression(filters),
                include=["metadatas", "distances"],
            ),
            "query",
        )

        ids = results.get("ids", [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        matches: list[QueryMatch] = []
        for vector_id, meta, dist in zip(ids, metas, distances):
            matches.append(
                QueryMatch(
                    id=vector_id,
                    score=self._similarity(dist),
                    metadata=dict(meta or {}) if include_metadata else {},
                )
            )
        return matches

    # -- internals ------------------------------------------------------------

    def _require_collection(self) -> Any:
        if self._collection is None:
            self.ensure_index()
        return self._collection

    def _similarity(self, distance: float) -> float:
        # Chroma returns distances; convert to "higher is more similar".
        if self.metric == "cosine":
            return 1.0 - distance
        return 1.0 / (1.0 + distance)

    def _call(self, fn: Callable[[], T], description: str) -> T:
        def attempt() -> T:
            try:
                return fn()
            except httpx.HTTPStatusError as exc:
                raise RemoteAPIError(
                    SERVICE_NAME, exc.response.status_code, exc.response.text
                ) from exc
            except httpx.TransportError as exc:
                raise RemoteAPIError(SERVICE_NAME, None, str(exc)) from exc
            except ChromaError as exc:
                raise RemoteAPIError(SERVICE_NAME, exc.code(), exc.message()) from exc

        return call_with_retries(
            attempt,
            description=f"Chroma {description}",
            max_attempts=self._max_attempts,
            backoff_seconds=self._backoff_seconds,
        )
