"""Document persistence.

The relational store owns the schema; this module only needs to create a
record, read it back, and move its ``status``. :class:`DocumentRepository`
is the seam; :class:`SQLDocumentRepository` implements it with SQLAlchemy.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, Integer, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from docchat.documents.models import Document, DocumentStatus
from docchat.errors import NotFound

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DocumentRow(Base):
    """ORM row for the ``documents`` table."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(255), index=True, nullable=False)
    filename: Mapped[str] = mapped_column(String(1024), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, native_enum=False),
        nullable=False,
        default=DocumentStatus.PENDING,
    )
    pinecone_id: Mapped[str | None] = mapped_column("pineconeId", String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt", DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class DocumentRepository(ABC):
    """Narrow persistence contract used by ingestion and the API."""

    def initialize(self) -> None:
        """Prepare storage before first use. No-op by default."""

    @abstractmethod
    def create(self, *, user_id: str, filename: str, mimetype: str, size: int) -> Document:
        """Insert a ``PENDING`` document and return it."""
        ...

    @abstractmethod
    def get(self, document_id: str) -> Document | None:
        ...

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[Document]:
        ...

    @abstractmethod
    def update_status(
        self, document_id: str, status: DocumentStatus, *, pinecone_id: str | None = None
    ) -> Document:
        """Persist a status transition and return the updated document."""
        ...

    def get_for_user(self, document_id: str, user_id: str) -> Document:
        """Return the document if it exists and belongs to *user_id*."""
        document = self.get(document_id)
        if document is None or document.user_id != user_id:
            raise NotFound(f"Document {document_id} not found")
        return document


def create_engine_from_url(url: str) -> Engine:
    """Create an engine, sharing one connection for in-memory SQLite."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


class SQLDocumentRepository(DocumentRepository):
    """SQLAlchemy-backed :class:`DocumentRepository`."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> SQLDocumentRepository:
        return cls(create_engine_from_url(url))

    def initialize(self) -> None:
        Base.metadata.create_all(self._engine)

    def create(self, *, user_id: str, filename: str, mimetype: str, size: int) -> Document:
        row = DocumentRow(
            id=uuid.uuid4().hex,
            user_id=user_id,
            filename=filename,
            mimetype=mimetype,
            size=size,
            status=DocumentStatus.PENDING,
        )
        with self._sessions.begin() as session:
            session.add(row)
        logger.info("Created document %s (%s, %d bytes) for user %s", row.id, filename, size, user_id)
        return Document.model_validate(row)

    def get(self, document_id: str) -> Document | None:
        with self._sessions() as session:
            row = session.get(DocumentRow, document_id)
            return Document.model_validate(row) if row is not None else None

    def list_for_user(self, user_id: str) -> list[Document]:
        stmt = (
            select(DocumentRow)
            .where(DocumentRow.user_id == user_id)
            .order_by(DocumentRow.created_at.desc())
        )
        with self._sessions() as session:
            return [Document.model_validate(row) for row in session.scalars(stmt)]

    def update_status(
        self, document_id: str, status: DocumentStatus, *, pinecone_id: str | None = None
    ) -> Document:
        with self._sessions.begin() as session:
            row = self._get_row(session, document_id)
            row.status = status
            if pinecone_id is not None:
                row.pinecone_id = pinecone_id
            session.flush()
            document = Document.model_validate(row)
        logger.info("Document %s → %s", document_id, status.value)
        return document

    @staticmethod
    def _get_row(session: Session, document_id: str) -> DocumentRow:
        row = session.get(DocumentRow, document_id)
        if row is None:
            raise NotFound(f"Document {document_id} not found")
        return row
