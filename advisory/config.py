"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Self

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_store_path() -> Path:
    return Path.home() / ".advisory" / "store"


class Settings(BaseSettings):
    """Application settings loaded from ``ADVISORY_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ADVISORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "advisory"
    app_version: str = "0.1.0"
    debug: bool = False

    # Embeddings (Ollama, OpenAI-compatible endpoint)
    ollama_host: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices("ADVISORY_OLLAMA_HOST", "OLLAMA_HOST"),
    )
    embedding_model: str = "nomic-embed-text"
    embedding_timeout_seconds: float = 30.0

    # Vector store
    store_path: Path = Field(default_factory=_default_store_path)
    collection_name: str = "default"
    concurrency: int | None = None  # None = number of CPUs

    # Ingestion
    chunk_size: int = 1000  # Characters
    chunk_overlap: int = 200  # Characters

    # Query
    query_results: int = 10

    # Tracing
    otel_enabled: bool = False
    otel_endpoint: str | None = None
    otel_console_export: bool = False
    otel_sample_rate: float = 1.0

    @model_validator(mode="after")
    def check_chunking(self) -> Self:
        """Reject chunk sizes that the chunker cannot work with."""
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError(
                f"chunk_overlap must be between 0 and chunk_size - 1, "
                f"got {self.chunk_overlap} with chunk_size {self.chunk_size}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
