"""Embedding provider infrastructure.

This module provides a Protocol-based abstraction for embedders,
allowing easy swapping between different embedding backends.
"""

from advisory.infrastructure.embeddings.exceptions import (
    EmbeddingConfigurationError,
    EmbeddingError,
    EmbeddingModelNotFoundError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
    EmbeddingTimeoutError,
)
from advisory.infrastructure.embeddings.ollama import OllamaEmbedder
from advisory.infrastructure.embeddings.protocol import Embedder

__all__ = [
    "Embedder",
    "EmbeddingConfigurationError",
    "EmbeddingError",
    "EmbeddingModelNotFoundError",
    "EmbeddingProviderError",
    "EmbeddingRateLimitError",
    "EmbeddingTimeoutError",
    "OllamaEmbedder",
]
