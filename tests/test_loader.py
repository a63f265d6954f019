"""Tests for EPUB loading."""

import zipfile
from pathlib import Path

import pytest

from advisory.modules.ingest.loader import BookLoadError, load_epub


class TestLoadEpub:
    """Tests for load_epub function."""

    def test_load_reads_metadata(self, sample_epub: Path):
        """Dublin Core fields should be read into the book."""
        book = load_epub(sample_epub)

        assert book.file_path == sample_epub
        assert book.title == "Rats and Their Enemies"
        assert book.author == "A. Naturalist"
        assert book.subject == "Zoology"
        assert book.description == "Field notes on rodents."

    def test_metadata_property(self, sample_epub: Path):
        """The metadata mapping should carry the four bibliographic fields."""
        book = load_epub(sample_epub)

        assert book.metadata == {
            "title": "Rats and Their Enemies",
            "author": "A. Naturalist",
            "subject": "Zoology",
            "description": "Field notes on rodents.",
        }

    def test_chapters_in_spine_order(self, sample_epub: Path):
        """Chapters should follow reading order and skip the nav document."""
        book = load_epub(sample_epub)

        assert len(book.chapters) == 2
        assert b"Rats are clever rodents." in book.chapters[0]
        assert b"Cats hunt rats at night." in book.chapters[1]

    def test_missing_metadata_is_empty(self, tmp_path: Path, make_epub):
        """Absent Dublin Core fields should read as empty strings."""
        path = make_epub(
            tmp_path / "bare.epub",
            ["<p>Text.</p>"],
            subject="",
            description="",
        )

        book = load_epub(path)

        assert book.subject == ""
        assert book.description == ""

    def test_load_nonexistent_file_raises(self, tmp_path: Path):
        """Loading a missing file should raise BookLoadError."""
        missing = tmp_path / "missing.epub"

        with pytest.raises(BookLoadError) as exc_info:
            load_epub(missing)

        assert "File not found" in str(exc_info.value)
        assert exc_info.value.file_path == missing

    def test_load_non_zip_raises(self, tmp_path: Path):
        """A file that is not a zip archive should raise BookLoadError."""
        path = tmp_path / "fake.epub"
        path.write_text("definitely not an epub")

        with pytest.raises(BookLoadError) as exc_info:
            load_epub(path)

        assert "Invalid EPUB file" in str(exc_info.value)

    def test_load_zip_without_container_raises(self, tmp_path: Path):
        """A zip without EPUB structure should raise BookLoadError."""
        path = tmp_path / "empty.epub"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("mimetype", "application/epub+zip")

        with pytest.raises(BookLoadError):
            load_epub(path)
