"""Unit tests for the retrieval layer — models and ContextRetriever."""

from __future__ import annotations

from typing import Any

import pytest

from conftest import FakeEmbedder, FakeVectorStore
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import Citation, MetadataFilter, QueryMatch, VectorRecord
from docchat.retrieval.retriever import ContextRetriever


# ── Canned vector store for deterministic ranking ───────────────────────


class CannedVectorStore(VectorStoreBase):
    """Returns fixed matches regardless of the query."""

    def __init__(self, hits: list[dict[str, Any]] | None = None) -> None:
        super().__init__("test-index", dimension=16)
        self._hits = [QueryMatch(**h) for h in hits or []]
        self.last_filters: list[MetadataFilter] | None = None
        self.last_top_k: int | None = None

    def ensure_index(self) -> None:
        pass

    def upsert(self, records: list[VectorRecord]) -> int:
        return len(records)

    def query(
        self,
        vector: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
        include_metadata: bool = True,
    ) -> list[QueryMatch]:
        self.last_filters = filters
        self.last_top_k = top_k
        return self._hits[:top_k]


SAMPLE_HITS: list[dict[str, Any]] = [
    {
        "id": "doc-a-chunk-3",
        "score": 0.92,
        "metadata": {
            "documentId": "doc-a",
            "userId": "u1",
            "filename": "handbook.pdf",
            "text": "Refunds are issued within 14 days.",
            "chunkIndex": 3,
        },
    },
    {
        "id": "doc-b-chunk-0",
        "score": 0.87,
        "metadata": {
            "documentId": "doc-b",
            "userId": "u1",
            "filename": "faq.txt",
            "text": "Shipping is free above 50 EUR.",
            "chunkIndex": 0,
        },
    },
    {
        "id": "doc-c-chunk-1",
        "score": 0.45,
        "metadata": {"documentId": "doc-c", "userId": "u1", "filename": "misc.txt", "text": "Misc.", "chunkIndex": 1},
    },
]


@pytest.fixture()
def canned_store() -> CannedVectorStore:
    return CannedVectorStore(hits=SAMPLE_HITS)


@pytest.fixture()
def retriever(canned_store: CannedVectorStore) -> ContextRetriever:
    return ContextRetriever(canned_store, FakeEmbedder(), default_k=5)


# ── Citation model tests ───────────────────────────────────────────────


class TestCitation:
    def test_default_filename_is_unknown(self) -> None:
        assert Citation().filename == "unknown"

    def test_citation_id_is_populated(self) -> None:
        assert len(Citation().citation_id) == 12


class TestVectorRecord:
    def test_make_id(self) -> None:
        assert VectorRecord.make_id("abc", 7) == "abc-chunk-7"


# ── ContextRetriever tests ─────────────────────────────────────────────


class TestContextRetriever:
    def test_search_is_scoped_to_user(
        self, canned_store: CannedVectorStore, retriever: ContextRetriever
    ) -> None:
        retriever.search_for_user("refunds?", "u1")
        assert canned_store.last_filters == [MetadataFilter.for_user("u1")]

    def test_results_keep_store_order(self, retriever: ContextRetriever) -> None:
        results = retriever.search_for_user("refunds?", "u1")
        assert [r.citation.vector_id for r in results] == [h["id"] for h in SAMPLE_HITS]

    def test_citations_populated(self, retriever: ContextRetriever) -> None:
        first = retriever.search_for_user("refunds?", "u1")[0]
        assert first.content == "Refunds are issued within 14 days."
        assert first.citation.document_id == "doc-a"
        assert first.citation.filename == "handbook.pdf"
        assert first.citation.chunk_index == 3
        assert first.citation.score == 0.92

    def test_explicit_k_overrides_default(
        self, canned_store: CannedVectorStore, retriever: ContextRetriever
    ) -> None:
        assert len(retriever.search_for_user("q", "u1", k=1)) == 1
        assert canned_store.last_top_k == 1

    def test_foreign_hits_are_dropped(self) -> None:
        leaked = dict(SAMPLE_HITS[0], metadata=dict(SAMPLE_HITS[0]["metadata"], userId="u2"))
        store = CannedVectorStore(hits=[leaked, SAMPLE_HITS[1]])
        results = ContextRetriever(store, FakeEmbedder()).search_for_user("q", "u1")
        assert [r.citation.document_id for r in results] == ["doc-b"]

    def test_hits_without_text_are_skipped(self) -> None:
        store = CannedVectorStore(hits=[{"id": "x", "score": 0.8, "metadata": {"userId": "u1"}}])
        assert ContextRetriever(store, FakeEmbedder()).search_for_user("q", "u1") == []

    def test_empty_store_returns_empty(self) -> None:
        assert ContextRetriever(CannedVectorStore(), FakeEmbedder()).search_for_user("q", "u1") == []


class TestUserIsolation:
    """Two users with similar documents only ever see their own chunks."""

    def test_each_user_sees_only_own_vectors(self) -> None:
        embedder = FakeEmbedder()
        store = FakeVectorStore()
        for user, doc in (("alice", "doc-a"), ("bob", "doc-b")):
            text = "the refund policy allows returns within thirty days"
            store.upsert(
                [
                    VectorRecord(
                        id=VectorRecord.make_id(doc, 0),
                        values=embedder.embed_query(text),
                        metadata={"documentId": doc, "userId": user, "filename": "p.txt", "text": text, "chunkIndex": 0},
                    )
                ]
            )

        retriever = ContextRetriever(store, embedder)
        alice = retriever.search_for_user("refund policy", "alice")
        bob = retriever.search_for_user("refund policy", "bob")

        assert [r.citation.document_id for r in alice] == ["doc-a"]
        assert [r.citation.document_id for r in bob] == ["doc-b"]
        assert retriever.search_for_user("refund policy", "carol") == []
