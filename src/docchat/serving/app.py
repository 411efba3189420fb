"""FastAPI application exposing document upload and retrieval-augmented chat."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterator

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from docchat.chat.messages import ChatMessage
from docchat.config import Settings, load_settings
from docchat.errors import BadRequest, DocChatError, IngestionError, Unauthorized
from docchat.serving.auth import AuthenticatedUser, require_user
from docchat.serving.container import ServiceContainer, build_container

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / Response schemas ────────────────────────────────────────
class ChatRequest(BaseModel):
    """Conversation so far; the last message is the question."""

    messages: list[ChatMessage] = []


# ── Helpers ───────────────────────────────────────────────────────────
def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def _relay(first: str, rest: Iterator[str]) -> Iterator[str]:
    if first:
        yield first
    try:
        yield from rest
    except Exception:
        logger.exception("Chat stream aborted")
        raise


def _read_upload(file: UploadFile | None) -> bytes:
    if file is None:
        raise BadRequest("No file provided")
    return file.file.read()


# ── Routes ────────────────────────────────────────────────────────────
@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.post("/chat", response_model=None)
def chat(
    body: ChatRequest,
    user: AuthenticatedUser = Depends(require_user),
    container: ServiceContainer = Depends(get_container),
) -> StreamingResponse | JSONResponse:
    """Answer the last message from the caller's documents as a text stream."""
    stream = container.chat_service.stream_answer(user.id, body.messages)
    # Pull the first fragment so retrieval and provider failures become a
    # JSON error instead of a truncated stream.
    try:
        first = next(stream, "")
    except BadRequest:
        raise
    except Exception as exc:
        logger.exception("Chat API error")
        return JSONResponse({"error": f"Chat failed: {exc}"}, status_code=500)

    return StreamingResponse(_relay(first, stream), media_type="text/plain; charset=utf-8")


@router.post("/documents/upload", response_model=None)
def upload_document(
    file: UploadFile | None = File(default=None),
    user: AuthenticatedUser = Depends(require_user),
    container: ServiceContainer = Depends(get_container),
) -> dict | JSONResponse:
    """Store, index, and return a newly uploaded document."""
    data = _read_upload(file)
    try:
        document = container.pipeline.ingest_upload(
            user_id=user.id,
            filename=file.filename or "upload",
            mimetype=file.content_type or "",
            data=data,
        )
    except IngestionError as exc:
        return JSONResponse({"error": f"Indexing failed: {exc}"}, status_code=500)
    except DocChatError:
        raise
    except Exception as exc:
        logger.exception("Error processing document upload")
        return JSONResponse({"error": f"Upload failed: {exc}"}, status_code=500)

    return {"success": True, "document": document.to_public()}


@router.get("/documents")
def list_documents(
    user: AuthenticatedUser = Depends(require_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """List the caller's documents, newest first."""
    documents = container.repository.list_for_user(user.id)
    return {"documents": [d.to_public() for d in documents]}


@router.get("/documents/{document_id}")
def get_document(
    document_id: str,
    user: AuthenticatedUser = Depends(require_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Return one document; clients poll this to follow ingestion status."""
    document = container.repository.get_for_user(document_id, user.id)
    return {"document": document.to_public()}


@router.post("/documents/{document_id}/reindex", response_model=None)
def reindex_document(
    document_id: str,
    file: UploadFile | None = File(default=None),
    user: AuthenticatedUser = Depends(require_user),
    container: ServiceContainer = Depends(get_container),
) -> dict | JSONResponse:
    """Re-run ingestion for an existing document, overwriting its vectors."""
    document = container.repository.get_for_user(document_id, user.id)
    data = _read_upload(file)
    try:
        document = container.pipeline.ingest(document, data)
    except IngestionError as exc:
        return JSONResponse({"error": f"Indexing failed: {exc}"}, status_code=500)

    return {"success": True, "document": document.to_public()}


# ── Error handlers ────────────────────────────────────────────────────
async def _docchat_error_handler(request: Request, exc: DocChatError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code, headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse({"error": f"Invalid request: {details}"}, status_code=400)


# ── Application factory ───────────────────────────────────────────────
def create_app(
    settings: Settings | None = None,
    *,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Build the API.

    Parameters
    ----------
    settings:
        Validated settings; loaded from the environment when omitted.
        Missing required values raise ``ConfigurationError`` here, before
        the server accepts traffic.
    container:
        Pre-built services (tests inject fakes). Built from *settings*
        when omitted.
    """
    if container is None:
        container = build_container(settings or load_settings())
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container.startup()
        yield

    app = FastAPI(
        title="docchat",
        version="0.1.0",
        description="Upload documents and chat with them.",
        lifespan=lifespan,
    )
    app.state.container = container
    app.include_router(router)
    app.add_exception_handler(DocChatError, _docchat_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    return app
