"""Document ingestion: extract → chunk → embed → upsert, with status tracking.

Status transitions are written to the document repository as they happen
so that clients polling the document see ``INDEXING`` while work is in
flight and ``INDEXED`` / ``FAILED`` once it ends.

Re-running :meth:`IngestionPipeline.ingest` for a document overwrites its
vectors by identifier, so a ``FAILED`` document can be retried. Vectors
written before a failure are left in place until that retry.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from langchain_core.documents import Document as Chunk

from docchat.documents.models import Document, DocumentStatus
from docchat.documents.repository import DocumentRepository
from docchat.errors import Conflict, ContractViolation, EmptyContent, IngestionError
from docchat.ingestion.chunker import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_text
from docchat.ingestion.embedder import EmbeddingClient
from docchat.ingestion.loader import extract_text
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import VectorRecord

logger = logging.getLogger(__name__)


def build_vector_records(
    document: Document, chunks: list[Chunk], embeddings: list[list[float]]
) -> list[VectorRecord]:
    """Pair each chunk with its embedding and tag it with ownership metadata."""
    if len(chunks) != len(embeddings):
        raise ContractViolation("Mismatch between number of chunks and embeddings")
    return [
        VectorRecord(
            id=VectorRecord.make_id(document.id, index),
            values=embedding,
            metadata={
                "documentId": document.id,
                "userId": document.user_id,
                "filename": document.filename,
                "text": chunk.page_content,
                "chunkIndex": index,
            },
        )
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
    ]


class _SingleFlight:
    """Set of keys currently being worked on in this process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._active:
                raise Conflict(f"Document {key} is already being indexed")
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)


class IngestionPipeline:
    """Index uploaded files into the vector store.

    Parameters
    ----------
    repository:
        Where document records and their statuses live.
    embedder:
        Client used to embed chunks (passage model).
    vector_store:
        Destination for the vector records.
    chunk_size / chunk_overlap:
        Chunking parameters, see :func:`chunk_text`.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        embedder: EmbeddingClient,
        vector_store: VectorStoreBase,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        self._repository = repository
        self._embedder = embedder
        self._vector_store = vector_store
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._in_flight = _SingleFlight()

    def ingest_upload(self, *, user_id: str, filename: str, mimetype: str, data: bytes) -> Document:
        """Create a ``PENDING`` document for an upload and index it."""
        document = self._repository.create(
            user_id=user_id, filename=filename, mimetype=mimetype, size=len(data)
        )
        return self.ingest(document, data)

    def ingest(self, document: Document, data: bytes) -> Document:
        """Index *data* as the content of *document*.

        Returns the ``INDEXED`` document.

        Raises
        ------
        Conflict
            The same document is already being ingested in this process.
        IngestionError
            Any step failed; the document has been marked ``FAILED``.
        """
        with self._in_flight.hold(document.id):
            self._repository.update_status(document.id, DocumentStatus.INDEXING)
            try:
                count = self._index(document, data)
            except Exception as exc:
                logger.exception("Failed to index document %s", document.id)
                failed = self._repository.update_status(document.id, DocumentStatus.FAILED)
                raise IngestionError(failed, str(exc)) from exc

            indexed = self._repository.update_status(
                document.id, DocumentStatus.INDEXED, pinecone_id=document.id
            )
            logger.info("Indexed document %s as %d chunks", document.id, count)
            return indexed

    def _index(self, document: Document, data: bytes) -> int:
        text = extract_text(data, document.mimetype, document.filename)
        if not text.strip():
            raise EmptyContent("Empty document content")

        chunks = chunk_text(text, self.chunk_size, self.chunk_overlap)
        if not chunks:
            raise ContractViolation("Could not generate chunks from document")
        logger.info("Document %s: %d chars → %d chunks", document.id, len(text), len(chunks))

        embeddings = self._embedder.embed([c.page_content for c in chunks])
        records = build_vector_records(document, chunks, embeddings)
        return self._vector_store.upsert(records)
