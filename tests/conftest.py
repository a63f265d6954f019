"""Shared fixtures: a deterministic embedder and an EPUB writer."""

import asyncio
import hashlib
import math
import re
from pathlib import Path

import pytest
from ebooklib import epub

from advisory.infrastructure.embeddings import EmbeddingProviderError
from advisory.infrastructure.vectordb import ChromaVectorStore

_WORD = re.compile(r"[a-z0-9]+")


class BagOfWordsEmbedder:
    """Embeds text as a normalised bag of hashed words.

    Texts sharing more words get a higher cosine similarity, which is enough
    to exercise ranking without a model. One dimension is constant so the
    empty string still has a direction.
    """

    DIMENSIONS = 512

    def __init__(self, *, delay: float = 0.0, fail_on: str | None = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on
        self.in_flight = 0
        self.max_in_flight = 0
        self._delay = delay

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text == self.fail_on:
            raise EmbeddingProviderError("model unloaded", provider="ollama")
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            return self.vector(text)
        finally:
            self.in_flight -= 1

    @classmethod
    def vector(cls, text: str) -> list[float]:
        values = [0.0] * cls.DIMENSIONS
        values[0] = 1.0
        for word in _WORD.findall(text.lower()):
            digest = hashlib.md5(word.encode(), usedforsecurity=False).digest()
            bucket = int.from_bytes(digest[:4], "big") % (cls.DIMENSIONS - 1)
            values[1 + bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in values))
        return [v / norm for v in values]


@pytest.fixture
def embedder() -> BagOfWordsEmbedder:
    return BagOfWordsEmbedder()


@pytest.fixture
def make_embedder() -> type[BagOfWordsEmbedder]:
    """Build embedders with a delay or a text that fails."""
    return BagOfWordsEmbedder


@pytest.fixture
def store(tmp_path: Path, embedder: BagOfWordsEmbedder) -> ChromaVectorStore:
    """An empty on-disk store using the bag-of-words embedder."""
    return ChromaVectorStore(
        persist_path=tmp_path / "store",
        collection_name="test_collection",
        embedder=embedder,
        concurrency=4,
    )


def write_epub(
    path: Path,
    chapters: list[str],
    *,
    title: str = "Rats and Their Enemies",
    author: str = "A. Naturalist",
    subject: str = "Zoology",
    description: str = "Field notes on rodents.",
) -> Path:
    """Write a small EPUB whose chapters hold the given body HTML."""
    book = epub.EpubBook()
    book.set_identifier("advisory-test-book")
    book.set_title(title)
    book.set_language("en")
    book.add_author(author)
    if subject:
        book.add_metadata("DC", "subject", subject)
    if description:
        book.add_metadata("DC", "description", description)

    items = []
    for i, body in enumerate(chapters, start=1):
        chapter = epub.EpubHtml(
            title=f"Chapter {i}", file_name=f"chap_{i}.xhtml", lang="en"
        )
        chapter.content = f"<html><body>{body}</body></html>"
        book.add_item(chapter)
        items.append(chapter)

    book.toc = items
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", *items]

    epub.write_epub(str(path), book)
    return path


@pytest.fixture
def make_epub():
    return write_epub


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    return write_epub(
        tmp_path / "rats.epub",
        [
            "<h1>Rats</h1><p>Rats are clever rodents.</p>"
            "<p>Owls and snakes are natural enemies of the rat.</p>",
            "<h1>Cats</h1><p>Cats hunt rats at night.</p>",
        ],
    )
