"""Ingestion module.

Reads e-books, converts their chapters to markdown and splits the text
into documents for the vector store.
"""

from advisory.modules.ingest.chunker import ChunkingConfig, chunk_markdown
from advisory.modules.ingest.converter import html_to_markdown
from advisory.modules.ingest.loader import BookLoadError, LoadedBook, load_epub
from advisory.modules.ingest.service import parse_epub

__all__ = [
    "BookLoadError",
    "ChunkingConfig",
    "LoadedBook",
    "chunk_markdown",
    "html_to_markdown",
    "load_epub",
    "parse_epub",
]
