"""Structure-aware markdown chunking.

Text is split with the following priority:
1. Section headers (``#`` to ``######``)
2. Paragraph breaks
3. Sentence boundaries
Consecutive pieces of an oversized section share an overlap for context.
"""

import re
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()

_HEADER_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"([.!?]+)\s+")


@dataclass
class ChunkingConfig:
    """Configuration for text chunking."""

    max_size: int = 1000  # Maximum characters per chunk body
    overlap: int = 200  # Characters repeated from the previous chunk

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"max_size must be positive, got {self.max_size}")
        if not 0 <= self.overlap < self.max_size:
            raise ValueError(
                f"overlap must be in [0, max_size), got {self.overlap}"
            )


def chunk_markdown(text: str, config: ChunkingConfig | None = None) -> list[str]:
    """Split markdown text into ordered, bounded chunks.

    Each chunk of a titled section starts with the section's header line, so
    a chunk stays meaningful when it is retrieved on its own.

    Args:
        text: Markdown text.
        config: Chunking configuration (uses defaults if not provided).

    Returns:
        Chunks in document order; empty for blank input.
    """
    config = config or ChunkingConfig()

    if not text.strip():
        return []

    chunks: list[str] = []
    for header, body in _split_sections(text):
        pieces = [body] if len(body) <= config.max_size else _pack(body, config)
        chunks.extend(f"{header}\n\n{piece}" if header else piece for piece in pieces)

    logger.debug(
        "markdown_chunked",
        chunks_created=len(chunks),
        content_length=len(text),
    )

    return chunks


def _split_sections(text: str) -> list[tuple[str, str]]:
    """Split text into ``(header line, body)`` pairs.

    Headers without a body are dropped unless the text holds nothing else.
    """
    sections: list[tuple[str, str]] = []
    header = ""
    last_end = 0

    for match in _HEADER_PATTERN.finditer(text):
        body = text[last_end : match.start()].strip()
        if body:
            sections.append((header, body))
        header = match.group(0).strip()
        last_end = match.end()

    body = text[last_end:].strip()
    if body:
        sections.append((header, body))

    return sections or [("", text.strip())]


def _pack(body: str, config: ChunkingConfig) -> list[str]:
    """Group paragraphs into chunks no larger than ``max_size``."""
    chunks: list[str] = []
    current: list[str] = []
    length = 0

    for paragraph in _paragraphs(body):
        if len(paragraph) > config.max_size:
            if current:
                chunks.append("\n\n".join(current))
                current, length = [], 0
            chunks.extend(_pack_sentences(paragraph, config))
            continue

        new_length = length + len(paragraph) + (2 if current else 0)
        if new_length > config.max_size and current:
            previous = "\n\n".join(current)
            chunks.append(previous)
            overlap = _tail(previous, config.overlap)
            if overlap and len(overlap) + len(paragraph) + 2 <= config.max_size:
                current = [overlap, paragraph]
                length = len(overlap) + len(paragraph) + 2
            else:
                current, length = [paragraph], len(paragraph)
        else:
            current.append(paragraph)
            length = new_length

    if current:
        chunks.append("\n\n".join(current))

    return chunks


def _paragraphs(text: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def _pack_sentences(paragraph: str, config: ChunkingConfig) -> list[str]:
    """Group the sentences of an oversized paragraph into chunks."""
    sentences: list[str] = []
    last_end = 0
    for match in _SENTENCE_END.finditer(paragraph):
        sentence = paragraph[last_end : match.end()].strip()
        if sentence:
            sentences.append(sentence)
        last_end = match.end()
    remaining = paragraph[last_end:].strip()
    if remaining:
        sentences.append(remaining)

    chunks: list[str] = []
    current: list[str] = []
    length = 0

    for sentence in sentences:
        # A single sentence longer than max_size is cut hard
        for piece in _hard_split(sentence, config.max_size):
            new_length = length + len(piece) + (1 if current else 0)
            if new_length > config.max_size and current:
                previous = " ".join(current)
                chunks.append(previous)
                overlap = _tail(previous, config.overlap)
                if overlap and len(overlap) + len(piece) + 1 <= config.max_size:
                    current = [overlap, piece]
                    length = len(overlap) + len(piece) + 1
                else:
                    current, length = [piece], len(piece)
            else:
                current.append(piece)
                length = new_length

    if current:
        chunks.append(" ".join(current))

    return chunks


def _hard_split(text: str, size: int) -> list[str]:
    if len(text) <= size:
        return [text]
    return [text[i : i + size] for i in range(0, len(text), size)]


def _tail(text: str, size: int) -> str:
    """Return up to ``size`` trailing characters, starting at a sentence or word."""
    if size <= 0:
        return ""
    if len(text) <= size:
        return text

    tail = text[-size:]

    sentence_start = re.search(r"[.!?]\s+", tail)
    if sentence_start:
        return tail[sentence_start.end() :].strip()

    word_start = tail.find(" ")
    if word_start > 0:
        return tail[word_start:].strip()

    return tail.strip()
