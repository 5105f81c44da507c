"""
Readers for the NPL test collection files.

The collection ships three plain-text files:

* ``query-text``: one record per query, three lines each (identifier line,
  query text, terminator line).
* ``rlv-ass``: one stanza per query, a header line followed by lines of
  whitespace-separated relevant document identifiers, closed by a lone ``/``.
* ``doc-text``: one stanza per document, an identifier line followed by the
  document text, closed by a lone ``/``.

Queries are addressed by their 1-based position in ``query-text`` (the
ordinal); the n-th judgment stanza belongs to the n-th query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

from eval.errors import CollectionParseError

STANZA_TERMINATOR = "/"
_SINGLE_PATTERN = re.compile(r"^\d+$")
_RANGE_PATTERN = re.compile(r"^(\d+)-(\d+)$")


@dataclass(frozen=True)
class QueryRange:
    """Inclusive selection of query ordinals (``all``, ``N`` or ``A-B``)."""

    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def parse(cls, selector: str) -> "QueryRange":
        text = (selector or "").strip()
        if text == "all":
            return cls()
        if _SINGLE_PATTERN.match(text):
            ordinal = int(text)
            if ordinal < 1:
                raise CollectionParseError(f"Query ordinals start at 1, got '{selector}'.")
            return cls(ordinal, ordinal)
        match = _RANGE_PATTERN.match(text)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start < 1 or end < start:
                raise CollectionParseError(f"Invalid query range '{selector}': expected 1 <= A <= B.")
            return cls(start, end)
        raise CollectionParseError(f"Invalid query selector '{selector}': expected 'all', 'N' or 'A-B'.")

    @property
    def is_all(self) -> bool:
        return self.start is None

    @property
    def first_ordinal(self) -> int:
        return 1 if self.start is None else self.start

    def __contains__(self, ordinal: object) -> bool:
        if not isinstance(ordinal, int):
            return False
        if self.is_all:
            return ordinal >= 1
        return self.start <= ordinal <= self.end

    def overlaps(self, other: "QueryRange") -> bool:
        if self.is_all or other.is_all:
            return True
        return self.start <= other.end and other.start <= self.end

    def __str__(self) -> str:
        if self.is_all:
            return "all"
        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"


ALL_QUERIES = QueryRange()


@dataclass(frozen=True)
class Query:
    ordinal: int
    text: str


@dataclass(frozen=True)
class JudgedQuery:
    """A query paired with the identifiers judged relevant for it."""

    query: Query
    relevant: FrozenSet[str]

    @property
    def ordinal(self) -> int:
        return self.query.ordinal


def _read_lines(path: Path) -> List[str]:
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        raise CollectionParseError(f"Collection file not found: {path}")
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


def _check_range_within(query_range: QueryRange, available: int, what: str, path: Path) -> None:
    if not query_range.is_all and query_range.end > available:
        raise CollectionParseError(
            f"Range {query_range} exceeds the {available} {what} in {path}."
        )


class QuerySet:
    """Ordered, lower-cased query records addressed by ordinal."""

    def __init__(self, queries: Sequence[Query], source: Optional[Path] = None):
        self._queries = list(queries)
        self.source = source

    @classmethod
    def from_file(cls, path: Path | str) -> "QuerySet":
        path = Path(path)
        lines = _read_lines(path)
        queries: List[Query] = []
        # Records are triples: identifier, text, terminator. The terminator of
        # the final record may be missing at end of file.
        for offset in range(0, len(lines), 3):
            ordinal = offset // 3 + 1
            if offset + 1 >= len(lines):
                raise CollectionParseError(f"{path}: query record {ordinal} has no text line.")
            queries.append(Query(ordinal, lines[offset + 1].strip().lower()))
        return cls(queries, source=path)

    def __len__(self) -> int:
        return len(self._queries)

    def __iter__(self) -> Iterator[Query]:
        return iter(self._queries)

    def select(self, query_range: QueryRange = ALL_QUERIES) -> List[Query]:
        _check_range_within(query_range, len(self._queries), "queries", self.source)
        return [query for query in self._queries if query.ordinal in query_range]


def iter_stanzas(path: Path) -> Iterator[Tuple[int, str, List[str]]]:
    """
    Yield ``(position, header, body_lines)`` for every ``/``-terminated stanza.

    Blank lines between stanzas are skipped. A stanza still open at end of
    file raises ``CollectionParseError``.
    """
    lines = _read_lines(path)
    position = 0
    header: Optional[str] = None
    body: List[str] = []
    for line_number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if header is None:
            if not stripped:
                continue
            if stripped == STANZA_TERMINATOR:
                raise CollectionParseError(f"{path}:{line_number}: terminator without a stanza header.")
            header = stripped
            body = []
            continue
        if stripped == STANZA_TERMINATOR:
            position += 1
            yield position, header, body
            header = None
            continue
        body.append(line)
    if header is not None:
        raise CollectionParseError(f"{path}: stanza '{header}' is not terminated by '{STANZA_TERMINATOR}'.")


class RelevanceStore:
    """Relevant document identifiers per query ordinal; read-only once built."""

    def __init__(self, judgments: Mapping[int, AbstractSet[str]], stanza_count: Optional[int] = None, source: Optional[Path] = None):
        self._judgments: Dict[int, FrozenSet[str]] = {
            int(ordinal): frozenset(docs) for ordinal, docs in judgments.items()
        }
        self.stanza_count = len(self._judgments) if stanza_count is None else stanza_count
        self.source = source

    @classmethod
    def from_file(cls, path: Path | str, query_range: QueryRange = ALL_QUERIES) -> "RelevanceStore":
        path = Path(path)
        judgments: Dict[int, FrozenSet[str]] = {}
        count = 0
        # Stanzas outside the range are still consumed so positions stay aligned.
        for position, _header, body in iter_stanzas(path):
            count = position
            if position in query_range:
                tokens = [token for line in body for token in line.split()]
                judgments[position] = frozenset(tokens)
        _check_range_within(query_range, count, "judgment stanzas", path)
        return cls(judgments, stanza_count=count, source=path)

    def __len__(self) -> int:
        return len(self._judgments)

    def __contains__(self, ordinal: object) -> bool:
        return ordinal in self._judgments

    def relevant(self, ordinal: int) -> FrozenSet[str]:
        try:
            return self._judgments[ordinal]
        except KeyError:
            raise CollectionParseError(f"No relevance judgments for query {ordinal}.")

    def select(self, query_range: QueryRange = ALL_QUERIES) -> List[FrozenSet[str]]:
        """One relevant set per selected ordinal, in ordinal order (aligned with ``QuerySet.select``)."""
        if query_range.is_all:
            ordinals = range(1, self.stanza_count + 1)
        else:
            _check_range_within(query_range, self.stanza_count, "judgment stanzas", self.source)
            ordinals = range(query_range.start, query_range.end + 1)
        return [self.relevant(ordinal) for ordinal in ordinals]


def judged_queries(queries: Sequence[Query], store: RelevanceStore) -> Iterator[JudgedQuery]:
    """Pair each query with its judgment entry, in query order."""
    for query in queries:
        yield JudgedQuery(query, store.relevant(query.ordinal))


def read_documents(path: Path | str) -> Iterator[Tuple[str, str]]:
    """Yield ``(doc_id, contents)`` pairs from a ``doc-text`` collection."""
    for _position, header, body in iter_stanzas(Path(path)):
        contents = " ".join(line.strip() for line in body if line.strip())
        yield header, contents
