"""Exceptions for vector store providers."""


class VectorStoreError(Exception):
    """Base exception for vector store errors."""

    def __init__(self, message: str, *, provider: str = "unknown") -> None:
        self.provider = provider
        super().__init__(message)


class VectorStoreConfigurationError(VectorStoreError):
    """Raised when the store or its collection cannot be opened."""
