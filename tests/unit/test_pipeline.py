"""Unit tests for the ingestion pipeline."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from conftest import FakeEmbedder, FakeVectorStore, RecordingRepository
from docchat.documents.models import DocumentStatus
from docchat.errors import Conflict, ContractViolation, EmptyContent, IngestionError, RemoteAPIError
from docchat.ingestion.chunker import chunk_text
from docchat.ingestion.pipeline import IngestionPipeline, build_vector_records

TEXT_2500 = "".join(chr(ord("a") + i % 26) for i in range(2500))


@pytest.fixture()
def pipeline(
    repository: RecordingRepository, embedder: FakeEmbedder, vector_store: FakeVectorStore
) -> IngestionPipeline:
    return IngestionPipeline(repository, embedder, vector_store, chunk_size=1000, chunk_overlap=100)


def _upload(pipeline: IngestionPipeline, data: bytes, user_id: str = "u1"):
    return pipeline.ingest_upload(user_id=user_id, filename="notes.txt", mimetype="text/plain", data=data)


class TestIngestUpload:
    def test_indexes_every_chunk(
        self, pipeline: IngestionPipeline, vector_store: FakeVectorStore
    ) -> None:
        document = _upload(pipeline, TEXT_2500.encode())

        assert document.status is DocumentStatus.INDEXED
        assert document.pinecone_id == document.id
        assert sorted(vector_store.records) == [f"{document.id}-chunk-{i}" for i in range(3)]

    def test_vector_metadata(self, pipeline: IngestionPipeline, vector_store: FakeVectorStore) -> None:
        document = _upload(pipeline, TEXT_2500.encode())

        record = vector_store.records[f"{document.id}-chunk-1"]
        assert record.metadata == {
            "documentId": document.id,
            "userId": "u1",
            "filename": "notes.txt",
            "text": TEXT_2500[900:1900],
            "chunkIndex": 1,
        }

    def test_status_sequence(self, pipeline: IngestionPipeline, repository: RecordingRepository) -> None:
        document = _upload(pipeline, b"A short note about refunds.")

        assert [status for _, status in repository.transitions] == [
            DocumentStatus.INDEXING,
            DocumentStatus.INDEXED,
        ]
        assert repository.get(document.id).status is DocumentStatus.INDEXED

    def test_record_is_created_pending_with_size(
        self, pipeline: IngestionPipeline, repository: RecordingRepository
    ) -> None:
        created = []
        original = repository.create

        def spy(**kwargs):
            doc = original(**kwargs)
            created.append(doc)
            return doc

        repository.create = spy  # type: ignore[method-assign]
        _upload(pipeline, b"12345")

        assert created[0].status is DocumentStatus.PENDING
        assert created[0].size == 5


class TestIngestFailures:
    def test_empty_document_fails(
        self,
        pipeline: IngestionPipeline,
        repository: RecordingRepository,
        vector_store: FakeVectorStore,
    ) -> None:
        with pytest.raises(IngestionError, match="Empty document content") as excinfo:
            _upload(pipeline, b"   \n  ")

        assert isinstance(excinfo.value.__cause__, EmptyContent)
        assert excinfo.value.document.status is DocumentStatus.FAILED
        assert repository.get(excinfo.value.document.id).status is DocumentStatus.FAILED
        assert vector_store.records == {}

    def test_embedding_failure_marks_failed(
        self, repository: RecordingRepository, vector_store: FakeVectorStore
    ) -> None:
        embedder = MagicMock()
        embedder.embed.side_effect = RemoteAPIError("Embedding", 500, "oops")
        pipeline = IngestionPipeline(repository, embedder, vector_store)

        with pytest.raises(IngestionError, match=r"Embedding API Error \(500\)"):
            _upload(pipeline, b"some content")

        assert [s for _, s in repository.transitions][-1] is DocumentStatus.FAILED

    def test_concurrent_ingest_of_same_document_conflicts(
        self, pipeline: IngestionPipeline, repository: RecordingRepository
    ) -> None:
        document = repository.create(user_id="u1", filename="a.txt", mimetype="text/plain", size=3)

        with pipeline._in_flight.hold(document.id):
            with pytest.raises(Conflict):
                pipeline.ingest(document, b"abc")

        assert repository.transitions == []
        assert pipeline.ingest(document, b"abc").status is DocumentStatus.INDEXED


class TestReindex:
    def test_failed_document_can_be_reindexed(
        self, pipeline: IngestionPipeline, vector_store: FakeVectorStore
    ) -> None:
        with pytest.raises(IngestionError) as excinfo:
            _upload(pipeline, b"")
        failed = excinfo.value.document

        reindexed = pipeline.ingest(failed, TEXT_2500.encode())

        assert reindexed.status is DocumentStatus.INDEXED
        assert len(vector_store.records) == 3

    def test_reindex_overwrites_by_id(
        self, pipeline: IngestionPipeline, vector_store: FakeVectorStore
    ) -> None:
        document = _upload(pipeline, TEXT_2500.encode())
        pipeline.ingest(document, TEXT_2500.upper().encode())

        assert len(vector_store.records) == 3
        assert vector_store.records[f"{document.id}-chunk-0"].metadata["text"] == TEXT_2500[:1000].upper()


class TestBuildVectorRecords:
    def test_count_mismatch_raises(self, repository: RecordingRepository) -> None:
        document = repository.create(user_id="u1", filename="a.txt", mimetype="text/plain", size=3)
        with pytest.raises(ContractViolation):
            build_vector_records(document, chunk_text("abc"), [])
