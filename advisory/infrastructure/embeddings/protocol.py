"""Protocol definition for embedders."""

from typing import Protocol


class Embedder(Protocol):
    """Protocol for embedding implementations.

    This allows swapping between different embedding backends (Ollama,
    hosted APIs, local models) without changing the vector store or the
    query logic. Implementations must return the same vector for the same
    text and model.
    """

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector as a list of floats.

        Raises:
            EmbeddingError: If embedding generation fails.
        """
        ...
