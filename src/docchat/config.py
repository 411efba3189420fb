"""Shared configuration loaded from environment / ``.env`` file."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from docchat.errors import ConfigurationError


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Embedding / chat provider (OpenAI-compatible NVIDIA endpoint)
    nvidia_api_key: str = Field(default="", description="API key for the embedding and chat provider")
    nvidia_base_url: str = "https://integrate.api.nvidia.com/v1"
    nvidia_embedding_model: str = Field(default="", description="Model used to embed document chunks")
    nvidia_query_embedding_model: str = Field(
        default="",
        description="Model used to embed chat questions. Falls back to the document model.",
    )
    nvidia_chat_model: str = Field(default="", description="Chat-completion model identifier")
    embedding_dimension: int = 1024
    embedding_batch_size: int = 50
    embedding_passage_input_type: str = "passage"
    embedding_query_input_type: str = "query"
    chat_temperature: float | None = None
    chat_max_retries: int = 0

    # Remote calls
    request_timeout_seconds: float = 60.0
    max_attempts: int = 3
    retry_backoff_seconds: float = 1.0

    # Vector store
    vector_backend: Literal["pinecone", "chroma"] = "pinecone"
    index_metric: str = "cosine"
    pinecone_api_key: str = ""
    pinecone_environment: str = Field(default="", description="Serverless region, e.g. 'us-east-1'")
    pinecone_cloud: str = "aws"
    pinecone_index_name: str = ""
    index_ready_timeout_seconds: float = 120.0
    index_poll_interval_seconds: float = 1.0
    pinecone_upsert_batch_size: int = 100
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "docchat"
    chroma_upsert_batch_size: int = 5000

    # Ingestion / retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 100
    retrieval_top_k: int = 5
    ensure_index_on_startup: bool = True

    # Persistence / sessions
    database_url: str = "sqlite:///./docchat.db"
    auth_secret: str = ""

    # Serving
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def query_embedding_model(self) -> str:
        return self.nvidia_query_embedding_model or self.nvidia_embedding_model

    def missing_required(self) -> list[str]:
        """Return the env var names that must be set but are empty."""
        required = ["nvidia_api_key", "nvidia_embedding_model", "nvidia_chat_model", "auth_secret"]
        if self.vector_backend == "pinecone":
            required += ["pinecone_api_key", "pinecone_environment", "pinecone_index_name"]
        return [name.upper() for name in required if not getattr(self, name)]

    def validate_required(self) -> Settings:
        """Raise :class:`ConfigurationError` listing every missing variable."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        return self


def load_settings(**overrides: Any) -> Settings:
    """Build and validate settings.

    Keyword *overrides* take precedence over the environment, which makes
    explicit construction in tests and scripts straightforward.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    return settings.validate_required()
