"""Exceptions for embedding providers."""


class EmbeddingError(Exception):
    """Base exception for embedding errors."""

    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        self.provider = provider
        super().__init__(message)


class EmbeddingProviderError(EmbeddingError):
    """Raised when the embedding service fails or cannot be reached."""


class EmbeddingTimeoutError(EmbeddingProviderError):
    """Raised when an embedding request times out."""


class EmbeddingRateLimitError(EmbeddingProviderError):
    """Raised when rate limited by the embedding provider."""


class EmbeddingModelNotFoundError(EmbeddingProviderError):
    """Raised when the requested model is unknown to the provider."""


class EmbeddingConfigurationError(EmbeddingError):
    """Raised when there's a configuration issue (e.g., missing model name)."""
