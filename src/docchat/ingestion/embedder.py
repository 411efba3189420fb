"""Remote embedding client for OpenAI-compatible ``/embeddings`` endpoints."""

from __future__ import annotations

import logging
from typing import Any

import requests

from docchat.config import Settings
from docchat.errors import ConfigurationError, ContractViolation, RemoteAPIError
from docchat.retry import call_with_retries

logger = logging.getLogger(__name__)

SERVICE_NAME = "Embedding"


class EmbeddingClient:
    """Turn ordered texts into ordered vectors through a remote API.

    Parameters
    ----------
    api_key:
        Bearer token for the provider.
    model:
        Embedding model identifier.
    base_url:
        Provider base URL; ``/embeddings`` is appended.
    input_type:
        Provider-specific hint (``"passage"`` / ``"query"``). Omitted from
        the payload when empty.
    dimension:
        Expected vector length. ``None`` disables the check.
    batch_size:
        Maximum number of texts sent per request.
    session:
        Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = "https://integrate.api.nvidia.com/v1",
        input_type: str = "",
        dimension: int | None = None,
        batch_size: int = 50,
        timeout: float = 60.0,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/embeddings"
        self.input_type = input_type
        self.dimension = dimension
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._session = session or requests.Session()

    @classmethod
    def for_documents(cls, settings: Settings, **kwargs: Any) -> EmbeddingClient:
        """Client configured for embedding document chunks."""
        return cls._from_settings(
            settings, settings.nvidia_embedding_model, settings.embedding_passage_input_type, **kwargs
        )

    @classmethod
    def for_queries(cls, settings: Settings, **kwargs: Any) -> EmbeddingClient:
        """Client configured for embedding chat questions."""
        return cls._from_settings(
            settings, settings.query_embedding_model, settings.embedding_query_input_type, **kwargs
        )

    @classmethod
    def _from_settings(
        cls, settings: Settings, model: str, input_type: str, **kwargs: Any
    ) -> EmbeddingClient:
        return cls(
            settings.nvidia_api_key,
            model,
            base_url=settings.nvidia_base_url,
            input_type=input_type,
            dimension=settings.embedding_dimension or None,
            batch_size=settings.embedding_batch_size,
            timeout=settings.request_timeout_seconds,
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            **kwargs,
        )

    # -- public API -----------------------------------------------------------

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per text in the same order.

        Raises
        ------
        ConfigurationError
            No model or API key configured.
        RemoteAPIError
            The provider answered with a non-success status or was
            unreachable after retries.
        ContractViolation
            The provider returned the wrong number of vectors or a vector
            of the wrong dimension.
        """
        if not self.model:
            raise ConfigurationError("Embedding model name not configured")
        if not self.api_key:
            raise ConfigurationError("Embedding API key not configured")
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            vectors.extend(
                call_with_retries(
                    lambda batch=batch: self._embed_batch(batch),
                    description=f"embedding batch at {start}",
                    max_attempts=self.max_attempts,
                    backoff_seconds=self.backoff_seconds,
                )
            )

        if self.dimension is not None:
            for i, vector in enumerate(vectors):
                if len(vector) != self.dimension:
                    raise ContractViolation(
                        f"Embedding {i} has dimension {len(vector)}, expected {self.dimension}"
                    )
        logger.info("Embedded %d texts with model=%s", len(texts), self.model)
        return vectors

    def embed_query(self, text: str) -> list[float]:
        """Embed a single string."""
        return self.embed([text])[0]

    # -- internals ------------------------------------------------------------

    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        payload: dict[str, Any] = {
            "input": batch,
            "model": self.model,
            "encoding_format": "float",
        }
        if self.input_type:
            payload["input_type"] = self.input_type
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            resp = self._session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteAPIError(SERVICE_NAME, None, str(exc)) from exc

        if not resp.ok:
            raise RemoteAPIError(SERVICE_NAME, resp.status_code, resp.text)

        try:
            items = resp.json()["data"]
            items = sorted(items, key=lambda item: item.get("index", 0))
            vectors = [item["embedding"] for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise ContractViolation(f"Malformed embedding response: {exc}") from exc

        # Exactly one vector per input text, in input order.
        if len(vectors) != len(batch):
            raise ContractViolation(
                f"Mismatch between number of texts ({len(batch)}) and embeddings ({len(vectors)})"
            )
        return vectors
