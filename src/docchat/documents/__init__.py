"""Documents — the uploaded-document record and its persistence."""

from docchat.documents.models import Document, DocumentStatus
from docchat.documents.repository import DocumentRepository, SQLDocumentRepository

__all__ = ["Document", "DocumentRepository", "DocumentStatus", "SQLDocumentRepository"]
