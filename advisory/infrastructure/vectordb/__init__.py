"""Vector store infrastructure.

This module provides the retrieval data model (documents, results and
queries) and a Protocol-based abstraction for vector stores, allowing easy
swapping between different vector database backends.
"""

from advisory.infrastructure.vectordb.chroma import (
    ChromaVectorStore,
    collection_name_for,
)
from advisory.infrastructure.vectordb.exceptions import (
    VectorStoreConfigurationError,
    VectorStoreError,
)
from advisory.infrastructure.vectordb.protocol import (
    Document,
    Result,
    VectorStore,
    document_id,
)
from advisory.infrastructure.vectordb.query import Query, new_query

__all__ = [
    "ChromaVectorStore",
    "Document",
    "Query",
    "Result",
    "VectorStore",
    "VectorStoreConfigurationError",
    "VectorStoreError",
    "collection_name_for",
    "document_id",
    "new_query",
]
