from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Tuple

import numpy as np
from rank_bm25 import BM25Okapi

from eval.errors import QueryParseError
from index.tokenize import IndexConfig, Tokenizer, build_analyzer, load_tokenized_corpus

JELINEK_MERCER = "jm"
DIRICHLET = "dir"


@dataclass(frozen=True)
class Similarity:
    """A smoothed query-likelihood model: ``jm`` (lambda) or ``dir`` (mu)."""

    family: str
    value: float

    def __post_init__(self) -> None:
        if self.family == JELINEK_MERCER:
            if not 0.0 < self.value <= 1.0:
                raise ValueError(f"Jelinek-Mercer lambda must be in (0, 1], got {self.value}")
        elif self.family == DIRICHLET:
            if self.value < 0.0:
                raise ValueError(f"Dirichlet mu must be non-negative, got {self.value}")
        else:
            raise ValueError(f"Unknown similarity family '{self.family}'")


def similarity_for(family: str, value: float) -> Optional[Similarity]:
    """
    Map a model family and parameter to a similarity.

    A Jelinek-Mercer lambda of exactly zero means "no custom similarity": the
    searcher's default ranking function is used instead.
    """
    if family == JELINEK_MERCER and value == 0.0:
        return None
    return Similarity(family, float(value))


class Hit(NamedTuple):
    doc_id: str
    score: float


class RetrievalEngine(Protocol):
    def rank(self, query: str, similarity: Optional[Similarity], depth: int) -> List[str]:
        ...


class Searcher:
    """
    In-memory ranker over an analyzed document collection.

    Without a similarity documents are ranked with BM25; otherwise with the
    Jelinek-Mercer or Dirichlet smoothed language model. Only documents that
    contain at least one query term are returned; ties keep collection order.
    """

    def __init__(
        self,
        doc_ids: Sequence[str],
        tokenized_docs: Sequence[Sequence[str]],
        analyzer: Tokenizer,
        *,
        texts: Optional[Mapping[str, str]] = None,
    ):
        if not doc_ids:
            raise ValueError("Cannot search an empty document collection.")
        if len(doc_ids) != len(tokenized_docs):
            raise ValueError("doc_ids and tokenized_docs must have the same length.")
        self.doc_ids = list(doc_ids)
        self.analyzer = analyzer
        self._texts = dict(texts or {})

        postings: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
        collection_freq: Counter[str] = Counter()
        lengths = np.zeros(len(self.doc_ids), dtype=float)
        for idx, tokens in enumerate(tokenized_docs):
            tf = Counter(tokens)
            lengths[idx] = float(len(tokens))
            collection_freq.update(tf)
            for term, freq in tf.items():
                postings[term].append((idx, freq))

        self._postings = {
            term: (np.array([i for i, _ in entries]), np.array([f for _, f in entries], dtype=float))
            for term, entries in postings.items()
        }
        self._collection_freq = collection_freq
        self._total_terms = float(lengths.sum())
        self._lengths = lengths
        self._bm25 = BM25Okapi([list(tokens) for tokens in tokenized_docs])

    @classmethod
    def from_index(cls, index_dir: Path | str) -> "Searcher":
        config, corpus = load_tokenized_corpus(index_dir)
        return cls.from_corpus(corpus, config)

    @classmethod
    def from_corpus(cls, corpus: Mapping[str, Mapping[str, object]], config: IndexConfig) -> "Searcher":
        analyzer = build_analyzer(config)
        doc_ids = list(corpus.keys())
        tokenized: List[List[str]] = []
        texts: Dict[str, str] = {}
        for doc_id in doc_ids:
            payload = corpus[doc_id]
            text = str(payload.get("text", "") or "")
            texts[doc_id] = text
            tokens = payload.get("tokens")
            if isinstance(tokens, list):
                tokenized.append([str(t) for t in tokens if str(t)])
            else:
                tokenized.append(list(analyzer(text)))
        return cls(doc_ids, tokenized, analyzer, texts=texts)

    def __len__(self) -> int:
        return len(self.doc_ids)

    def document_text(self, doc_id: str) -> str:
        return self._texts.get(doc_id, "")

    def parse(self, query: str) -> List[str]:
        if query is None or not query.strip():
            raise QueryParseError("Cannot parse an empty query.")
        return [str(term) for term in self.analyzer(query)]

    def _collection_probability(self, term: str) -> float:
        return self._collection_freq[term] / self._total_terms if self._total_terms else 0.0

    def _score(self, terms: Sequence[str], similarity: Optional[Similarity]) -> Tuple[np.ndarray, np.ndarray]:
        scores = np.zeros(len(self.doc_ids), dtype=float)
        matched = np.zeros(len(self.doc_ids), dtype=bool)
        for term in terms:
            entry = self._postings.get(term)
            if entry is None:
                continue
            idx, tf = entry
            matched[idx] = True
            if similarity is None:
                continue
            p_collection = self._collection_probability(term)
            lengths = self._lengths[idx]
            if similarity.family == JELINEK_MERCER:
                lam = similarity.value
                scores[idx] += np.log1p(((1.0 - lam) * tf / lengths) / (lam * p_collection))
            else:
                mu = similarity.value
                if mu == 0.0:
                    # The smoothed estimate degenerates; every term scores zero.
                    continue
                term_scores = np.log1p(tf / (mu * p_collection)) + np.log(mu / (lengths + mu))
                scores[idx] += np.maximum(term_scores, 0.0)
        if similarity is None and terms:
            scores = np.asarray(self._bm25.get_scores(list(terms)), dtype=float)
        return scores, matched

    def search(self, query: str, similarity: Optional[Similarity] = None, depth: int = 10) -> List[Hit]:
        terms = self.parse(query)
        if depth <= 0 or not terms:
            return []
        scores, matched = self._score(terms, similarity)
        candidates = np.flatnonzero(matched)
        if candidates.size == 0:
            return []
        order = np.lexsort((candidates, -scores[candidates]))
        top = candidates[order][:depth]
        return [Hit(self.doc_ids[i], float(scores[i])) for i in top]

    def rank(self, query: str, similarity: Optional[Similarity] = None, depth: int = 10) -> List[str]:
        return [hit.doc_id for hit in self.search(query, similarity, depth)]


def format_parameter(family: str, value: float) -> str:
    """Render a parameter the way it appears in labels and file names."""
    if family == DIRICHLET:
        return str(int(value))
    return str(float(value))


def describe(similarity: Optional[Similarity]) -> str:
    if similarity is None:
        return "default (BM25)"
    name = "lambda" if similarity.family == JELINEK_MERCER else "mu"
    return f"{similarity.family} {name}={format_parameter(similarity.family, similarity.value)}"
