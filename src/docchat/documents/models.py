"""Document record exchanged with the persistence layer and API clients."""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentStatus(str, enum.Enum):
    """Document ingestion lifecycle.

    PENDING: record created, ingestion not started
    INDEXING: text extraction, chunking, embedding and upsert in progress
    INDEXED: every chunk is in the vector store
    FAILED: ingestion raised; vectors may be partially written
    """

    PENDING = "PENDING"
    INDEXING = "INDEXING"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


class Document(BaseModel):
    """An uploaded document and its ingestion status.

    Serialised with camelCase keys (``userId``, ``pineconeId``) to match the
    record shape clients already consume.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    filename: str
    mimetype: str
    size: int
    status: DocumentStatus = DocumentStatus.PENDING
    pinecone_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_public(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
