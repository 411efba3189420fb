"""Per-user semantic retrieval with citation tracking.

Every search is scoped to one user: the store is queried with a mandatory
``userId`` filter, and any hit that still carries another user's id is
dropped before it can reach a prompt.

Usage::

    retriever = ContextRetriever(store, query_embedder)
    results   = retriever.search_for_user("What is our refund policy?", user_id="u1")
    for r in results:
        print(r.citation.filename, r.citation.chunk_index, r.content[:80])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import Citation, MetadataFilter, QueryMatch, RetrievalResult

if TYPE_CHECKING:
    from docchat.ingestion.embedder import EmbeddingClient

logger = logging.getLogger(__name__)


class ContextRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embedder:
        Client used to embed queries.
    default_k:
        Default number of results returned by :meth:`search_for_user`.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        *,
        default_k: int = 5,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k

    # -- public API -----------------------------------------------------------

    def search_for_user(
        self, query: str, user_id: str, *, k: int | None = None
    ) -> list[RetrievalResult]:
        """Embed *query* and return the user's most similar chunks.

        Parameters
        ----------
        query:
            Natural-language query string.
        user_id:
            Owner whose vectors may be returned.
        k:
            Number of results (defaults to ``self.default_k``).

        Returns
        -------
        list[RetrievalResult]
            Results in the order the store ranked them.
        """
        embedding = self._embedder.embed_query(query)
        return self.search_by_embedding(embedding, user_id, k=k)

    def search_by_embedding(
        self, embedding: list[float], user_id: str, *, k: int | None = None
    ) -> list[RetrievalResult]:
        """Same as :meth:`search_for_user` but accepts a pre-computed embedding."""
        k = k or self.default_k
        matches = self._store.query(
            embedding,
            top_k=k,
            filters=[MetadataFilter.for_user(user_id)],
            include_metadata=True,
        )
        results = self._to_results(matches, user_id)
        logger.info("Retrieved %d chunks for user %s", len(results), user_id)
        return results

    # -- internals ------------------------------------------------------------

    def _to_results(self, matches: list[QueryMatch], user_id: str) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for match in matches:
            meta = match.metadata
            if meta.get("userId") != user_id:
                logger.warning("Dropping vector %s owned by another user", match.id)
                continue
            text = meta.get("text")
            if not text:
                continue

            citation = Citation(
                vector_id=match.id,
                document_id=meta.get("documentId"),
                filename=meta.get("filename", "unknown"),
                chunk_index=meta.get("chunkIndex"),
                score=match.score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=text, citation=citation))
        return results
