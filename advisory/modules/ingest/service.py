"""Turn e-books into documents ready for the vector store."""

from pathlib import Path

import structlog

from advisory.infrastructure.observability import traced
from advisory.infrastructure.vectordb import Document
from advisory.modules.ingest.chunker import ChunkingConfig, chunk_markdown
from advisory.modules.ingest.converter import html_to_markdown
from advisory.modules.ingest.loader import load_epub

logger = structlog.get_logger()


@traced("ingest.parse_epub")
def parse_epub(
    file_path: str | Path,
    config: ChunkingConfig | None = None,
) -> list[Document]:
    """Load an EPUB and split its text into documents.

    Chapters are converted to markdown and joined before chunking, so a
    section that spans a chapter file boundary is still chunked as one.
    Every document carries its own copy of the book's metadata (``title``,
    ``author``, ``subject``, ``description``) plus ``chunk``, its zero-based
    position in the book.

    Args:
        file_path: Path to the ``.epub`` file.
        config: Chunking configuration (uses defaults if not provided).

    Returns:
        Documents in reading order; empty if the book has no text.

    Raises:
        BookLoadError: If the book cannot be read.
    """
    book = load_epub(Path(file_path))

    markdown = "\n\n".join(
        text for text in (html_to_markdown(ch) for ch in book.chapters) if text
    )
    chunks = chunk_markdown(markdown, config)

    documents = [
        Document(content=chunk, metadata={**book.metadata, "chunk": str(i)})
        for i, chunk in enumerate(chunks)
    ]

    logger.info(
        "book_parsed",
        file_path=str(file_path),
        title=book.title,
        chapters=len(book.chapters),
        chunks=len(documents),
    )

    return documents
