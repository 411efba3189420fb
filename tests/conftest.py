"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import math
import zlib
from typing import Iterator

import pytest

from docchat.documents.models import Document, DocumentStatus
from docchat.documents.repository import SQLDocumentRepository, create_engine_from_url
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import MetadataFilter, QueryMatch, VectorRecord

DIM = 16


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ──────────────────────────────────────────────────────────────


class FakeEmbedder:
    """Deterministic bag-of-words embedder."""

    def __init__(self, dimension: int = DIM) -> None:
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self.embed([text])[0]

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for word in text.lower().split():
            vector[zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
        return vector


class FakeVectorStore(VectorStoreBase):
    """In-memory cosine index that honours equality filters."""

    def __init__(self) -> None:
        super().__init__("test-index", dimension=DIM)
        self.records: dict[str, VectorRecord] = {}
        self.ensure_calls = 0
        self.last_filters: list[MetadataFilter] | None = None

    def ensure_index(self) -> None:
        self.ensure_calls += 1

    def upsert(self, records: list[VectorRecord]) -> int:
        for record in records:
            self.records[record.id] = record
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
        hits = [
            QueryMatch(id=r.id, score=_cosine(vector, r.values), metadata=dict(r.metadata))
            for r in self.records.values()
            if all(_matches(r.metadata, f) for f in filters or [])
        ]
        hits.sort(key=lambda m: m.score, reverse=True)
        return hits[:top_k]


def _cosine(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if not norm:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


def _matches(metadata: dict, f: MetadataFilter) -> bool:
    return metadata.get(f.field) == f.value


class FakeChatClient:
    """Streams canned fragments and records every prompt."""

    def __init__(self, fragments: list[str] | None = None, error: Exception | None = None) -> None:
        self.fragments = fragments if fragments is not None else ["Hello", ", ", "world."]
        self.error = error
        self.prompts: list[str] = []

    def stream(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        yield from self.fragments


class RecordingRepository(SQLDocumentRepository):
    """SQLite repository that remembers every status transition."""

    def __init__(self) -> None:
        super().__init__(create_engine_from_url("sqlite://"))
        self.transitions: list[tuple[str, DocumentStatus]] = []

    def update_status(
        self, document_id: str, status: DocumentStatus, *, pinecone_id: str | None = None
    ) -> Document:
        self.transitions.append((document_id, status))
        return super().update_status(document_id, status, pinecone_id=pinecone_id)


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def repository() -> RecordingRepository:
    repo = RecordingRepository()
    repo.initialize()
    return repo


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture()
def chat_client() -> FakeChatClient:
    return FakeChatClient()
