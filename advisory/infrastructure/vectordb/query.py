"""Search queries with metadata filters."""

import re
from dataclasses import dataclass, field
from typing import Self

from advisory.infrastructure.vectordb.protocol import Result


@dataclass
class Query:
    """A similarity search request.

    The zero value is a valid query: empty text, no filters, one result.
    The ``with_*`` methods set a single field and return the query itself so
    calls chain::

        new_query("Why is the sky blue?").with_exact("author", "Rayleigh")

    Only one kind of metadata filter is applied per search. When ``exact``
    holds any pair it wins and ``regex`` is ignored; ``regex`` is used only
    when ``exact`` is empty.
    """

    query: str = ""
    exact: dict[str, str] = field(default_factory=dict)
    regex: dict[str, re.Pattern[str]] = field(default_factory=dict)
    number: int = 1

    @classmethod
    def or_default(cls, query: "Query | None") -> "Query":
        """Return ``query``, or a default query when it is None."""
        return query if query is not None else cls()

    def with_query(self, text: str) -> Self:
        self.query = text
        return self

    def with_exact(self, *kv: str) -> Self:
        """Require metadata values to equal the given ones.

        Args:
            kv: Alternating keys and values: ``"author", "Darwin", ...``.

        Raises:
            ValueError: If an odd number of arguments is given.
        """
        self.exact = dict(_pairs(kv))
        return self

    def with_regex(self, *kv: str) -> Self:
        """Require metadata values to match the given patterns.

        Patterns are compiled here and matched with :meth:`re.Pattern.search`,
        so they are unanchored unless written with ``^``/``$``.

        Args:
            kv: Alternating keys and patterns: ``"title", "^On the", ...``.

        Raises:
            ValueError: If an odd number of arguments is given.
            re.error: If a pattern does not compile.
        """
        self.regex = {key: re.compile(pattern) for key, pattern in _pairs(kv)}
        return self

    def with_number(self, n: int) -> Self:
        """Set how many nearest neighbours to fetch.

        Raises:
            ValueError: If ``n`` is less than 1.
        """
        if n < 1:
            raise ValueError(f"number of results must be at least 1, got {n}")
        self.number = n
        return self

    def filter(self, result: Result) -> bool:
        """Return True if the result passes this query's metadata filter.

        An exact filter never matches a missing key. A regex filter tests a
        missing key as the empty string.
        """
        metadata = result.metadata
        if self.exact:
            return all(
                k in metadata and metadata[k] == v for k, v in self.exact.items()
            )
        if self.regex:
            return all(p.search(metadata.get(k, "")) for k, p in self.regex.items())
        return True


def new_query(text: str) -> Query:
    """Create a query for ``text`` returning a single result."""
    return Query(query=text)


def _pairs(kv: tuple[str, ...]) -> list[tuple[str, str]]:
    if len(kv) % 2 != 0:
        raise ValueError(f"key-values are not in pairs: got {len(kv)} arguments")
    return list(zip(kv[::2], kv[1::2], strict=True))
