"""Explicitly constructed service graph.

Every client is built once at process start and handed to request
handlers through ``app.state.container``; nothing is a module-level
global, so tests swap in fakes by building their own container.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docchat.chat.llm import ChatClient
from docchat.chat.service import ChatService
from docchat.config import Settings
from docchat.documents.repository import DocumentRepository, SQLDocumentRepository
from docchat.ingestion.embedder import EmbeddingClient
from docchat.ingestion.pipeline import IngestionPipeline
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.retriever import ContextRetriever
from docchat.serving.auth import SessionVerifier, SignedSessionVerifier

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    repository: DocumentRepository
    vector_store: VectorStoreBase
    pipeline: IngestionPipeline
    chat_service: ChatService
    sessions: SessionVerifier

    def startup(self) -> None:
        """Prepare storage and, if configured, the vector index."""
        self.repository.initialize()
        if self.settings.ensure_index_on_startup:
            self.vector_store.ensure_index()
        logger.info(
            "Services ready (vector backend=%s, index=%s)",
            self.settings.vector_backend,
            self.vector_store.index_name,
        )


def build_vector_store(settings: Settings) -> VectorStoreBase:
    """Instantiate the configured vector-store backend."""
    if settings.vector_backend == "chroma":
        from docchat.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore(
            settings.chroma_collection,
            host=settings.chroma_host,
            port=settings.chroma_port,
            dimension=settings.embedding_dimension,
            metric=settings.index_metric,
            upsert_batch_size=settings.chroma_upsert_batch_size,
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
        )

    from docchat.retrieval.pinecone_store import PineconeVectorStore

    return PineconeVectorStore(
        settings.pinecone_index_name,
        api_key=settings.pinecone_api_key,
        region=settings.pinecone_environment,
        cloud=settings.pinecone_cloud,
        dimension=settings.embedding_dimension,
        metric=settings.index_metric,
        ready_timeout=settings.index_ready_timeout_seconds,
        poll_interval=settings.index_poll_interval_seconds,
        upsert_batch_size=settings.pinecone_upsert_batch_size,
        max_attempts=settings.max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
    )


def build_container(settings: Settings) -> ServiceContainer:
    """Wire production clients from *settings*."""
    repository = SQLDocumentRepository.from_url(settings.database_url)
    vector_store = build_vector_store(settings)
    pipeline = IngestionPipeline(
        repository,
        EmbeddingClient.for_documents(settings),
        vector_store,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
    )
    retriever = ContextRetriever(
        vector_store,
        EmbeddingClient.for_queries(settings),
        default_k=settings.retrieval_top_k,
    )
    chat_service = ChatService(
        retriever, ChatClient.from_settings(settings), top_k=settings.retrieval_top_k
    )
    return ServiceContainer(
        settings=settings,
        repository=repository,
        vector_store=vector_store,
        pipeline=pipeline,
        chat_service=chat_service,
        sessions=SignedSessionVerifier(settings.auth_secret),
    )
