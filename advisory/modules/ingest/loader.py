"""EPUB loading."""

import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from ebooklib import epub

logger = structlog.get_logger()


@dataclass
class LoadedBook:
    """An e-book's chapters in reading order plus its bibliographic metadata."""

    file_path: Path
    title: str = ""
    author: str = ""
    subject: str = ""
    description: str = ""
    chapters: list[bytes] = field(default_factory=list)  # XHTML body markup

    @property
    def metadata(self) -> dict[str, str]:
        return {
            "title": self.title,
            "author": self.author,
            "subject": self.subject,
            "description": self.description,
        }


class BookLoadError(Exception):
    """Raised when a book cannot be loaded."""

    def __init__(self, message: str, file_path: Path) -> None:
        self.file_path = file_path
        super().__init__(message)


def load_epub(file_path: Path) -> LoadedBook:
    """Load an EPUB file.

    Chapters follow the spine order. The navigation document and non-HTML
    spine entries are skipped.

    Args:
        file_path: Path to the ``.epub`` file.

    Returns:
        LoadedBook with chapter markup and Dublin Core metadata.

    Raises:
        BookLoadError: If the file is missing or is not a readable EPUB.
    """
    if not file_path.exists():
        raise BookLoadError(f"File not found: {file_path}", file_path)

    try:
        book = epub.read_epub(str(file_path), options={"ignore_ncx": True})
    except (epub.EpubException, zipfile.BadZipFile, KeyError) as e:
        raise BookLoadError(f"Invalid EPUB file: {e}", file_path) from e
    except OSError as e:
        raise BookLoadError(f"Failed to read file: {e}", file_path) from e

    chapters: list[bytes] = []
    for entry in book.spine:
        idref = entry[0] if isinstance(entry, tuple) else entry
        item = book.get_item_with_id(idref)
        if not isinstance(item, epub.EpubHtml) or not item.is_chapter():
            continue
        chapters.append(item.get_body_content())

    loaded = LoadedBook(
        file_path=file_path,
        title=_dublin_core(book, "title"),
        author=_dublin_core(book, "creator"),
        subject=_dublin_core(book, "subject"),
        description=_dublin_core(book, "description"),
        chapters=chapters,
    )

    logger.debug(
        "book_loaded",
        file_path=str(file_path),
        title=loaded.title,
        author=loaded.author,
        chapters=len(chapters),
    )

    return loaded


def _dublin_core(book: epub.EpubBook, name: str) -> str:
    """Return the first Dublin Core value for ``name``, or ""."""
    values = book.get_metadata("DC", name)
    if not values:
        return ""
    return str(values[0][0] or "").strip()
