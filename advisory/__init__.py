"""Semantic search over e-book content."""

__version__ = "0.1.0"
