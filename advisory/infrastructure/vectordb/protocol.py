"""Protocol definition for vector store providers."""

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from advisory.infrastructure.vectordb.query import Query


@dataclass(frozen=True)
class Document:
    """A chunk of text plus the metadata used for provenance and filtering.

    The metadata is copied into a read-only view on construction, so neither
    the caller nor the store can change it afterwards.
    """

    content: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def id(self) -> str:
        """Content-addressed identifier, see :func:`document_id`."""
        return document_id(self.content)


@dataclass(frozen=True)
class Result:
    """A document returned by a similarity search."""

    document: Document
    score: float  # Similarity score (higher is better)

    @property
    def content(self) -> str:
        return self.document.content

    @property
    def metadata(self) -> Mapping[str, str]:
        return self.document.metadata


def document_id(content: str) -> str:
    """Derive the storage identifier for a chunk of text.

    The id is the hex MD5 digest of the UTF-8 content. Metadata never takes
    part, so re-adding the same text updates the existing record instead of
    creating a new one. MD5 is used for deduplication only.
    """
    return hashlib.md5(content.encode("utf-8"), usedforsecurity=False).hexdigest()


class VectorStore(Protocol):
    """Protocol for vector store implementations.

    This allows swapping between different vector database backends
    without changing ingestion or query logic. The store owns its embedder:
    callers hand over plain documents and query text, never vectors.
    """

    async def add(self, *documents: Document) -> None:
        """Embed and persist documents.

        Documents with identical content map to the same record.

        Args:
            documents: Documents to store.

        Raises:
            EmbeddingError: If embedding any document fails.
            VectorStoreError: If persisting fails.
        """
        ...

    async def search(self, query: "Query | None" = None) -> list[Result]:
        """Return the stored documents closest to the query text.

        Args:
            query: Query text, filters and result count. None means the
                default query (empty text, one result).

        Returns:
            Results in descending similarity order that pass the query's
            filter. May hold fewer than ``query.number`` entries.

        Raises:
            EmbeddingError: If embedding the query text fails.
            VectorStoreError: If the lookup fails.
        """
        ...
