"""Ollama embedding provider implementation."""

from urllib.parse import urlsplit, urlunsplit

import structlog
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    NotFoundError,
    RateLimitError,
)

from advisory.infrastructure.embeddings.exceptions import (
    EmbeddingConfigurationError,
    EmbeddingModelNotFoundError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
    EmbeddingTimeoutError,
)
from advisory.infrastructure.observability import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)

DEFAULT_PORT = 11434

# Addresses a server listens on, not ones a client can dial
_WILDCARD_HOSTS = {"", "0.0.0.0"}


def normalize_host(host: str) -> str:
    """Turn an ``OLLAMA_HOST`` style value into a server base URL.

    Accepts the forms Ollama itself does: a bare ``host``, ``host:port`` or
    ``:port``, or a full URL. Without a scheme, ``http`` and port 11434 are
    assumed. A wildcard or missing host name means ``localhost``.

    Raises:
        ValueError: If the value does not parse or the port is invalid.
    """
    value = host.strip()
    has_scheme = "://" in value
    if not has_scheme:
        value = f"http://{value}"

    parts = urlsplit(value)
    hostname = parts.hostname or ""
    port = parts.port
    if hostname in _WILDCARD_HOSTS:
        hostname = "localhost"
    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port is None and not has_scheme:
        port = DEFAULT_PORT

    netloc = hostname if port is None else f"{hostname}:{port}"
    return urlunsplit((parts.scheme, netloc, parts.path.rstrip("/"), "", ""))


class OllamaEmbedder:
    """Embedder backed by an Ollama server.

    Talks to Ollama's OpenAI-compatible ``/v1/embeddings`` endpoint. Failures
    are mapped onto the embedding exception hierarchy and raised to the
    caller as-is: there is no retry and no circuit breaker at this layer.
    """

    PROVIDER_NAME = "ollama"

    def __init__(
        self,
        model: str,
        *,
        host: str = "http://localhost:11434",
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize the embedder.

        Args:
            model: Embedding model to use (e.g. ``nomic-embed-text``).
            host: Ollama server address, in any form ``OLLAMA_HOST`` takes.
            timeout_seconds: Request timeout in seconds.

        Raises:
            EmbeddingConfigurationError: If the model or host is missing, or
                the host is not a valid address.
        """
        if not model:
            raise EmbeddingConfigurationError(
                "Embedding model is required", provider=self.PROVIDER_NAME
            )
        if not host:
            raise EmbeddingConfigurationError(
                "Ollama host is required", provider=self.PROVIDER_NAME
            )

        try:
            base_url = normalize_host(host)
        except ValueError as e:
            raise EmbeddingConfigurationError(
                f"Invalid Ollama host {host!r}: {e}", provider=self.PROVIDER_NAME
            ) from e

        # Ollama ignores the key, but the client refuses to start without one
        self._client = AsyncOpenAI(
            api_key="ollama",
            base_url=f"{base_url}/v1",
            timeout=timeout_seconds,
            max_retries=0,
        )
        self._model = model
        self._timeout = timeout_seconds

    @property
    def model(self) -> str:
        """Return the embedding model name."""
        return self._model

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector as a list of floats.

        Raises:
            EmbeddingProviderError: If embedding generation fails.
            EmbeddingTimeoutError: If the request times out.
            EmbeddingRateLimitError: If rate limited.
            EmbeddingModelNotFoundError: If the model is not available.
        """
        with tracer.start_as_current_span("embeddings.embed") as span:
            span.set_attribute("embeddings.provider", self.PROVIDER_NAME)
            span.set_attribute("embeddings.model", self._model)
            span.set_attribute("embeddings.input_length", len(text))

            try:
                response = await self._client.embeddings.create(
                    model=self._model,
                    input=text,
                    encoding_format="float",
                )

            except APITimeoutError as e:
                span.record_exception(e)
                logger.warning(
                    "embedding_timeout",
                    provider=self.PROVIDER_NAME,
                    model=self._model,
                    timeout_seconds=self._timeout,
                )
                raise EmbeddingTimeoutError(
                    f"Request timed out after {self._timeout}s: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            except APIConnectionError as e:
                span.record_exception(e)
                logger.error(
                    "embedding_connection_error",
                    provider=self.PROVIDER_NAME,
                    model=self._model,
                    error=str(e),
                )
                raise EmbeddingProviderError(
                    f"Unable to connect to embedding service: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            except RateLimitError as e:
                span.record_exception(e)
                logger.warning(
                    "embedding_rate_limited",
                    provider=self.PROVIDER_NAME,
                    model=self._model,
                )
                raise EmbeddingRateLimitError(
                    f"Rate limited by embedding service: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            except NotFoundError as e:
                span.record_exception(e)
                logger.error(
                    "embedding_model_not_found",
                    provider=self.PROVIDER_NAME,
                    model=self._model,
                )
                raise EmbeddingModelNotFoundError(
                    f"Model {self._model!r} not found: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            except APIStatusError as e:
                span.record_exception(e)
                logger.error(
                    "embedding_request_failed",
                    provider=self.PROVIDER_NAME,
                    model=self._model,
                    status_code=e.status_code,
                    error=str(e),
                )
                raise EmbeddingProviderError(
                    f"Embedding request failed: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            if not response.data or not response.data[0].embedding:
                raise EmbeddingProviderError(
                    f"Embedding service returned no vector for model {self._model!r}",
                    provider=self.PROVIDER_NAME,
                )

            embedding = list(response.data[0].embedding)
            span.set_attribute("embeddings.dimensions", len(embedding))

            logger.debug(
                "embedding_request_success",
                provider=self.PROVIDER_NAME,
                model=self._model,
                dimensions=len(embedding),
            )

            return embedding
