"""Error taxonomy shared by every layer.

Each error carries the HTTP status it maps to at the request boundary so
the serving layer can render any :class:`DocChatError` as ``{"error": msg}``
without knowing where it was raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docchat.documents.models import Document


class DocChatError(Exception):
    """Base class for all application errors."""

    status_code: int = 500


class Unauthorized(DocChatError):
    status_code = 401


class BadRequest(DocChatError):
    status_code = 400


class EmptyContent(BadRequest):
    """Raised when a document has no text after trimming whitespace."""


class NotFound(DocChatError):
    status_code = 404


class Conflict(DocChatError):
    status_code = 409


class ConfigurationError(DocChatError):
    """A required setting (API key, model name, index name, ...) is missing."""


class ContractViolation(DocChatError):
    """A remote service or internal step broke an invariant the caller relies on."""


class RemoteAPIError(DocChatError):
    """A downstream HTTP call (embedding, vector store, chat) failed.

    Attributes
    ----------
    upstream_status:
        Status code returned by the remote service, ``None`` for transport
        failures (timeouts, refused connections).
    body:
        Raw response body, kept for diagnosis.
    transient:
        Whether the failure is worth retrying (429, 5xx, network errors).
    """

    def __init__(
        self,
        service: str,
        upstream_status: int | None,
        body: str = "",
        *,
        transient: bool | None = None,
    ) -> None:
        self.service = service
        self.upstream_status = upstream_status
        self.body = body
        if transient is None:
            transient = upstream_status is None or upstream_status == 429 or upstream_status >= 500
        self.transient = transient
        status = upstream_status if upstream_status is not None else "no response"
        super().__init__(f"{service} API Error ({status}): {body}")


class IngestionError(DocChatError):
    """Ingestion failed; the document has already been marked ``FAILED``."""

    def __init__(self, document: Document, message: str) -> None:
        self.document = document
        super().__init__(message)
