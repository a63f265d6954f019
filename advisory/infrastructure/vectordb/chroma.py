"""Chroma vector store implementation."""

import asyncio
import os
import re
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

# Disable Chroma telemetry before the client is imported
os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

import chromadb
import structlog
from chromadb.config import Settings as ChromaSettings

from advisory.infrastructure.embeddings import Embedder
from advisory.infrastructure.observability import get_tracer
from advisory.infrastructure.vectordb.exceptions import (
    VectorStoreConfigurationError,
    VectorStoreError,
)
from advisory.infrastructure.vectordb.protocol import Document, Result, document_id
from advisory.infrastructure.vectordb.query import Query

logger = structlog.get_logger()
tracer = get_tracer(__name__)

A = TypeVar("A")
T = TypeVar("T")

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")


def collection_name_for(model: str, collection: str) -> str:
    """Build the collection name for an (embedding model, collection) pair.

    Vectors from different models live in incompatible spaces, so the model
    is part of the name. Chroma accepts 3-512 characters from
    ``[a-zA-Z0-9._-]`` that start and end alphanumeric, without ``..``.

    Args:
        model: Embedding model name, e.g. ``nomic-embed-text:latest``.
        collection: User-facing collection name.

    Returns:
        A valid name such as ``nomic-embed-text-latest_default``.
    """
    name = _INVALID_NAME_CHARS.sub("-", f"{model}_{collection}")
    name = re.sub(r"\.{2,}", ".", name)
    name = name.strip("._-")[:512].rstrip("._-")
    return name.ljust(3, "x")


class ChromaVectorStore:
    """Vector store using ChromaDB in embedded/persistent mode.

    ChromaDB runs in-process and persists data to the filesystem. Writes are
    indexed synchronously, so a completed ``add`` is visible to the next
    ``search`` in the same process.

    Blocking Chroma calls run in a worker thread so that cancelling the
    awaiting task returns control immediately.
    """

    PROVIDER_NAME = "chroma"

    def __init__(
        self,
        persist_path: str | Path,
        collection_name: str,
        embedder: Embedder,
        *,
        concurrency: int | None = None,
    ) -> None:
        """Initialize the Chroma vector store.

        Args:
            persist_path: Directory path for persistent storage.
            collection_name: Name of the collection to use.
            embedder: Embedder used for documents and query text.
            concurrency: Maximum number of documents embedded at once.
                Defaults to the number of CPUs.

        Raises:
            VectorStoreConfigurationError: If initialization fails.
        """
        self._persist_path = Path(persist_path)
        self._collection_name = collection_name
        self._embedder = embedder
        self._concurrency = (
            concurrency if concurrency is not None else (os.cpu_count() or 1)
        )

        if self._concurrency < 1:
            raise VectorStoreConfigurationError(
                f"concurrency must be at least 1, got {concurrency}",
                provider=self.PROVIDER_NAME,
            )

        try:
            self._persist_path.mkdir(parents=True, exist_ok=True)

            self._client = chromadb.PersistentClient(
                path=str(self._persist_path),
                settings=ChromaSettings(anonymized_telemetry=False),
            )

            # Embeddings are computed by our embedder, never by Chroma
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

            logger.debug(
                "chroma_initialized",
                provider=self.PROVIDER_NAME,
                persist_path=str(self._persist_path),
                collection=collection_name,
                count=self._collection.count(),
            )

        except Exception as e:
            logger.error(
                "chroma_init_failed",
                provider=self.PROVIDER_NAME,
                persist_path=str(self._persist_path),
                collection=collection_name,
                error=str(e),
            )
            raise VectorStoreConfigurationError(
                f"Failed to initialize Chroma: {e}",
                provider=self.PROVIDER_NAME,
            ) from e

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def add(self, *documents: Document) -> None:
        """Embed documents and upsert them into the collection.

        Each document is prepared in its own task, at most ``concurrency`` at
        a time, and every task finishes before anything is written. If any
        embedding fails the remaining tasks are cancelled and nothing is
        stored. The final write is a single upsert; if Chroma fails part way
        through it, some records may already be persisted.

        Documents with the same content share an id. Within one call the
        metadata of the last duplicate wins; across calls the upsert
        replaces the stored record.

        Args:
            documents: Documents to store.

        Raises:
            EmbeddingError: If embedding a document fails.
            VectorStoreError: If the upsert fails.
        """
        if not documents:
            return

        with tracer.start_as_current_span("vectordb.add") as span:
            span.set_attribute("vectordb.provider", self.PROVIDER_NAME)
            span.set_attribute("vectordb.document_count", len(documents))
            span.set_attribute("vectordb.concurrency", self._concurrency)

            prepared = await self._gather_bounded(self._prepare, documents)

            records: dict[str, tuple[Document, list[float]]] = {}
            for doc_id, document, embedding in prepared:
                records[doc_id] = (document, embedding)

            ids = list(records)
            contents = [document.content for document, _ in records.values()]
            embeddings = [embedding for _, embedding in records.values()]
            # Chroma rejects empty metadata dicts but accepts None
            metadatas: list[Any] = [
                dict(document.metadata) or None for document, _ in records.values()
            ]

            try:
                await asyncio.to_thread(
                    self._collection.upsert,
                    ids=ids,
                    documents=contents,
                    embeddings=embeddings,
                    metadatas=metadatas,
                )
                total_count = await asyncio.to_thread(self._collection.count)

            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "chroma_add_failed",
                    provider=self.PROVIDER_NAME,
                    error=str(e),
                    document_count=len(ids),
                )
                raise VectorStoreError(
                    f"Failed to add documents: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            span.set_attribute("vectordb.total_count", total_count)
            logger.debug(
                "chroma_documents_added",
                provider=self.PROVIDER_NAME,
                count=len(ids),
                duplicates=len(documents) - len(ids),
                total_count=total_count,
            )

    async def search(self, query: Query | None = None) -> list[Result]:
        """Return the stored documents closest to the query text.

        Exact-match filters are also pushed down to Chroma as a ``where``
        clause. The nearest ``query.number`` records are fetched once and
        then passed through :meth:`Query.filter`; filtered-out records are
        not replaced by further candidates.

        Args:
            query: Query to run. None means ``Query()``.

        Returns:
            Matching results in descending score order.

        Raises:
            EmbeddingError: If embedding the query text fails.
            VectorStoreError: If the lookup fails.
        """
        q = Query.or_default(query)

        with tracer.start_as_current_span("vectordb.search") as span:
            span.set_attribute("vectordb.provider", self.PROVIDER_NAME)
            span.set_attribute("vectordb.number", q.number)

            embedding = await self._embedder.embed(q.query)

            try:
                candidates = await asyncio.to_thread(self._nearest, embedding, q)
            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "chroma_query_failed",
                    provider=self.PROVIDER_NAME,
                    error=str(e),
                )
                raise VectorStoreError(
                    f"Failed to query: {e}",
                    provider=self.PROVIDER_NAME,
                ) from e

            results = [result for result in candidates if q.filter(result)]

            span.set_attribute("vectordb.candidates_count", len(candidates))
            span.set_attribute("vectordb.results_count", len(results))
            if results:
                span.set_attribute("vectordb.top_score", results[0].score)

            logger.debug(
                "chroma_query_success",
                provider=self.PROVIDER_NAME,
                number=q.number,
                candidates_count=len(candidates),
                results_count=len(results),
            )

            return results

    def count(self) -> int:
        """Return the number of documents in the store."""
        return self._collection.count()

    async def _prepare(self, document: Document) -> tuple[str, Document, list[float]]:
        embedding = await self._embedder.embed(document.content)
        return document_id(document.content), document, embedding

    async def _gather_bounded(
        self, fn: Callable[[A], Awaitable[T]], items: Iterable[A]
    ) -> list[T]:
        """Apply ``fn`` to every item with at most ``concurrency`` calls in flight.

        Each call is started only once a slot is free, so no coroutine is
        created for an item that never runs.

        Results keep the input order. On the first failure, or if the caller
        is cancelled, every unfinished task is cancelled before re-raising.
        """
        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(item: A) -> T:
            async with semaphore:
                return await fn(item)

        tasks = [asyncio.ensure_future(run(item)) for item in items]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _nearest(self, embedding: list[float], query: Query) -> list[Result]:
        """Fetch the nearest records for an embedding (blocking)."""
        total = self._collection.count()
        if total == 0:
            return []

        raw = self._collection.query(
            query_embeddings=[embedding],
            n_results=min(query.number, total),
            where=_where_clause(query.exact),
            include=["documents", "metadatas", "distances"],
        )

        # Chroma returns lists of lists (one per query embedding)
        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0]
        metadatas = (raw.get("metadatas") or [[]])[0]
        distances = (raw.get("distances") or [[]])[0]

        results: list[Result] = []
        for i in range(len(ids)):
            raw_meta = metadatas[i] if i < len(metadatas) else None
            metadata = {k: str(v) for k, v in (raw_meta or {}).items()}
            # For cosine space, distance = 1 - similarity
            distance = distances[i] if i < len(distances) else 1.0
            results.append(
                Result(
                    document=Document(
                        content=documents[i] if i < len(documents) else "",
                        metadata=metadata,
                    ),
                    score=1.0 - float(distance),
                )
            )
        return results


def _where_clause(exact: dict[str, str]) -> dict[str, Any] | None:
    if not exact:
        return None
    if len(exact) == 1:
        return dict(exact)
    return {"$and": [{key: value} for key, value in exact.items()]}
