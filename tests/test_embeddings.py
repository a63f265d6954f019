"""Tests for embedding provider infrastructure."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    NotFoundError,
    RateLimitError,
)

from advisory.config import Settings
from advisory.infrastructure.embeddings import (
    EmbeddingConfigurationError,
    EmbeddingError,
    EmbeddingModelNotFoundError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
    EmbeddingTimeoutError,
    OllamaEmbedder,
)


def _status_response(code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = code
    return response


class TestOllamaEmbedderInit:
    """Tests for OllamaEmbedder initialization."""

    def test_init_defaults(self):
        """Embedder should use the local Ollama server by default."""
        embedder = OllamaEmbedder("nomic-embed-text")

        assert embedder.model == "nomic-embed-text"
        assert embedder._timeout == 30.0
        assert str(embedder._client.base_url).rstrip("/") == (
            "http://localhost:11434/v1"
        )

    def test_init_with_custom_host(self):
        """A trailing slash on the host should not double up."""
        embedder = OllamaEmbedder(
            "mxbai-embed-large", host="http://gpu-box:11434/", timeout_seconds=5
        )

        assert str(embedder._client.base_url).rstrip("/") == "http://gpu-box:11434/v1"
        assert embedder._timeout == 5

    @pytest.mark.parametrize(
        ("host", "expected"),
        [
            ("0.0.0.0", "http://localhost:11434/v1"),
            ("localhost:11434", "http://localhost:11434/v1"),
            ("127.0.0.1:11434", "http://127.0.0.1:11434/v1"),
            ("gpu-box", "http://gpu-box:11434/v1"),
            (":11434", "http://localhost:11434/v1"),
            ("0.0.0.0:8080", "http://localhost:8080/v1"),
            ("http://0.0.0.0:8080", "http://localhost:8080/v1"),
            ("https://ollama.example.com", "https://ollama.example.com/v1"),
            ("http://gpu-box:11434/ollama/", "http://gpu-box:11434/ollama/v1"),
        ],
    )
    def test_accepts_ollama_host_forms(self, host, expected):
        """Every address form Ollama accepts should become a usable URL."""
        embedder = OllamaEmbedder("nomic-embed-text", host=host)

        assert str(embedder._client.base_url).rstrip("/") == expected

    @pytest.mark.parametrize("host", ["gpu-box:port", "gpu-box:99999"])
    def test_init_with_invalid_port_raises(self, host):
        """A port that is not a valid number should be a configuration error."""
        with pytest.raises(EmbeddingConfigurationError) as exc_info:
            OllamaEmbedder("nomic-embed-text", host=host)

        assert "Invalid Ollama host" in str(exc_info.value)

    def test_host_from_environment(self, monkeypatch):
        """OLLAMA_HOST as Ollama's own tools set it should reach the client."""
        monkeypatch.delenv("ADVISORY_OLLAMA_HOST", raising=False)
        monkeypatch.setenv("OLLAMA_HOST", "0.0.0.0")
        settings = Settings(_env_file=None)

        embedder = OllamaEmbedder(
            settings.embedding_model, host=settings.ollama_host
        )

        assert str(embedder._client.base_url).rstrip("/") == (
            "http://localhost:11434/v1"
        )

    def test_client_does_not_retry(self):
        """The HTTP client should make exactly one attempt per request."""
        embedder = OllamaEmbedder("nomic-embed-text")

        assert embedder._client.max_retries == 0

    def test_init_with_empty_model_raises(self):
        """Embedder should raise error with empty model name."""
        with pytest.raises(EmbeddingConfigurationError) as exc_info:
            OllamaEmbedder("")

        assert "model is required" in str(exc_info.value)
        assert exc_info.value.provider == "ollama"

    def test_init_with_empty_host_raises(self):
        """Embedder should raise error with empty host."""
        with pytest.raises(EmbeddingConfigurationError):
            OllamaEmbedder("nomic-embed-text", host="")


class TestOllamaEmbedderEmbed:
    """Tests for OllamaEmbedder.embed() method."""

    @pytest.fixture
    def embedder(self):
        """Create an embedder whose client will be mocked."""
        return OllamaEmbedder("nomic-embed-text")

    @pytest.fixture
    def mock_response(self):
        """Create a mock API response."""
        response = MagicMock()
        item = MagicMock()
        item.embedding = [0.1, 0.2, 0.3]
        item.index = 0
        response.data = [item]
        return response

    async def test_embed_returns_vector(self, embedder, mock_response):
        """Embed should return the vector as a list of floats."""
        embedder._client.embeddings.create = AsyncMock(return_value=mock_response)

        result = await embedder.embed("Hello world")

        assert result == [0.1, 0.2, 0.3]
        embedder._client.embeddings.create.assert_called_once_with(
            model="nomic-embed-text",
            input="Hello world",
            encoding_format="float",
        )

    async def test_embed_empty_text_is_sent(self, embedder, mock_response):
        """Empty text should be embedded like any other text."""
        embedder._client.embeddings.create = AsyncMock(return_value=mock_response)

        assert await embedder.embed("") == [0.1, 0.2, 0.3]

    async def test_embed_empty_data_raises(self, embedder):
        """A response without vectors should be an error."""
        response = MagicMock()
        response.data = []
        embedder._client.embeddings.create = AsyncMock(return_value=response)

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await embedder.embed("Hello")

        assert "no vector" in str(exc_info.value)

    async def test_embed_timeout_raises(self, embedder):
        """Embed should raise EmbeddingTimeoutError on timeout."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=APITimeoutError(request=MagicMock())
        )

        with pytest.raises(EmbeddingTimeoutError) as exc_info:
            await embedder.embed("Hello")

        assert "timed out" in str(exc_info.value)
        assert exc_info.value.provider == "ollama"

    async def test_embed_connection_error_raises(self, embedder):
        """Embed should raise EmbeddingProviderError when Ollama is down."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=APIConnectionError(request=MagicMock())
        )

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await embedder.embed("Hello")

        assert "Unable to connect" in str(exc_info.value)

    async def test_embed_rate_limit_raises(self, embedder):
        """Embed should raise EmbeddingRateLimitError on rate limit."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=RateLimitError(
                message="Rate limited",
                response=_status_response(429),
                body=None,
            )
        )

        with pytest.raises(EmbeddingRateLimitError):
            await embedder.embed("Hello")

    async def test_embed_unknown_model_raises(self, embedder):
        """Embed should raise EmbeddingModelNotFoundError for a missing model."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=NotFoundError(
                message="model not found",
                response=_status_response(404),
                body=None,
            )
        )

        with pytest.raises(EmbeddingModelNotFoundError) as exc_info:
            await embedder.embed("Hello")

        assert "nomic-embed-text" in str(exc_info.value)

    async def test_embed_server_error_raises(self, embedder):
        """Any other HTTP error should become EmbeddingProviderError."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=APIStatusError(
                message="internal error",
                response=_status_response(500),
                body=None,
            )
        )

        with pytest.raises(EmbeddingProviderError) as exc_info:
            await embedder.embed("Hello")

        assert "Embedding request failed" in str(exc_info.value)

    async def test_embed_is_attempted_once(self, embedder):
        """A failed request should not be retried."""
        embedder._client.embeddings.create = AsyncMock(
            side_effect=APIConnectionError(request=MagicMock())
        )

        with pytest.raises(EmbeddingError):
            await embedder.embed("Hello")

        assert embedder._client.embeddings.create.call_count == 1
