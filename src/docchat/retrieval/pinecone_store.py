"""Pinecone implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from pinecone import Pinecone, ServerlessSpec
from pinecone.exceptions import PineconeApiException, PineconeException
from urllib3.exceptions import HTTPError as TransportError

from docchat.errors import RemoteAPIError
from docchat.retrieval.base import VectorStoreBase, build_filter_expression
from docchat.retrieval.models import MetadataFilter, QueryMatch, VectorRecord
from docchat.retry import call_with_retries

logger = logging.getLogger(__name__)

SERVICE_NAME = "Pinecone"

T = TypeVar("T")


def _api_status(exc: PineconeApiException) -> int | None:
    # ``status_code`` on current SDKs, ``status`` on the OpenAPI-generated ones.
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def _to_remote_error(exc: Exception) -> RemoteAPIError:
    if isinstance(exc, PineconeApiException):
        body = getattr(exc, "body", None) or getattr(exc, "reason", None) or str(exc)
        return RemoteAPIError(SERVICE_NAME, _api_status(exc), str(body))
    if isinstance(exc, TransportError):
        return RemoteAPIError(SERVICE_NAME, None, str(exc))
    return RemoteAPIError(SERVICE_NAME, None, str(exc), transient=False)


class PineconeVectorStore(VectorStoreBase):
    """Pinecone serverless index.

    Parameters
    ----------
    index_name:
        Name of the Pinecone index.
    api_key:
        Pinecone API key. Ignored when *client* is given.
    region / cloud:
        Serverless placement used when the index has to be created.
    dimension / metric:
        Index shape used when the index has to be created.
    ready_timeout / poll_interval:
        Bound and cadence for waiting on a freshly created index.
    upsert_batch_size:
        Vectors per upsert request (Pinecone recommends at most 100).
    client:
        Pre-built ``Pinecone`` client (injected in tests).
    """

    def __init__(
        self,
        index_name: str,
        *,
        api_key: str = "",
        region: str = "",
        cloud: str = "aws",
        dimension: int = 1024,
        metric: str = "cosine",
        ready_timeout: float = 120.0,
        poll_interval: float = 1.0,
        upsert_batch_size: int = 100,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        client: Any = None,
    ) -> None:
        super().__init__(index_name, dimension=dimension, metric=metric)
        self._client = client if client is not None else Pinecone(api_key=api_key)
        self._region = region
        self._cloud = cloud
        self._ready_timeout = ready_timeout
        self._poll_interval = poll_interval
        self._upsert_batch_size = max(1, upsert_batch_size)
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._index: Any = None

    # -- VectorStoreBase overrides --------------------------------------------

    def ensure_index(self) -> None:
        existing = self._call(lambda: self._client.list_indexes().names(), "list indexes")
        if self.index_name not in existing:
            self._create_index()
        self._wait_until_ready()
        self._index = self._client.Index(self.index_name)

    def upsert(self, records: list[VectorRecord]) -> int:
        index = self._require_index()
        written = 0
        for start in range(0, len(records), self._upsert_batch_size):
            batch = [r.model_dump() for r in records[start : start + self._upsert_batch_size]]
            self._call(lambda batch=batch: index.upsert(vectors=batch), f"upsert batch at {start}")
            written += len(batch)
            logger.debug("Upserted %d / %d vectors into %s", written, len(records), self.index_name)
        logger.info("Upserted %d vectors into Pinecone index %s", written, self.index_name)
        return written

    def query(
        self,
        vector: list[float],
        *,
        top_k: int = 5,
        filters: list[MetadataFilter] | None = None,
        include_metadata: bool = True,
    ) -> list[QueryMatch]:
        index = self._require_index()
        kwargs: dict[str, Any] = {
            "vector": vector,
            "top_k": top_k,
            "include_metadata": include_metadata,
        }
        expression = build_filter_expression(filters)
        if expression is not None:
            kwargs["filter"] = expression

        response = self._call(lambda: index.query(**kwargs), "query")
        return [
            QueryMatch(id=m.id, score=m.score, metadata=dict(m.metadata or {}))
            for m in response.matches
        ]

    # -- internals ------------------------------------------------------------

    def _require_index(self) -> Any:
        if self._index is None:
            self.ensure_index()
        return self._index

    def _create_index(self) -> None:
        logger.info(
            "Creating Pinecone index %s (dimension=%d, metric=%s)",
            self.index_name,
            self.dimension,
            self.metric,
        )
        try:
            self._client.create_index(
                name=self.index_name,
                dimension=self.dimension,
                metric=self.metric,
                spec=ServerlessSpec(cloud=self._cloud, region=self._region),
            )
        except PineconeApiException as exc:
            if _api_status(exc) != 409:
                raise _to_remote_error(exc) from exc
            logger.info("Pinecone index %s was created concurrently", self.index_name)
        except (PineconeException, TransportError) as exc:
            raise _to_remote_error(exc) from exc

    def _wait_until_ready(self) -> None:
        deadline = time.monotonic() + self._ready_timeout
        while True:
            description = self._call(
                lambda: self._client.describe_index(self.index_name), "describe index"
            )
            if description.status["ready"]:
                return
            if time.monotonic() >= deadline:
                raise RemoteAPIError(
                    SERVICE_NAME,
                    None,
                    f"Index {self.index_name!r} not ready after {self._ready_timeout:.0f}s",
                    transient=False,
                )
            logger.info("Waiting for Pinecone index %s to become ready", self.index_name)
            time.sleep(self._poll_interval)

    def _call(self, fn: Callable[[], T], description: str) -> T:
        def attempt() -> T:
            try:
                return fn()
            except (PineconeApiException, PineconeException, TransportError) as exc:
                raise _to_remote_error(exc) from exc

        return call_with_retries(
            attempt,
            description=f"Pinecone {description}",
            max_attempts=self._max_attempts,
            backoff_seconds=self._backoff_seconds,
        )
