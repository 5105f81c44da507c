"""
Retrieval evaluation metrics implementation.

This module provides the per-query ranking metrics used by the sweep and
search-evaluation commands:
- P@k (Precision at a cut)
- R@k (Recall at a cut)
- RR (Reciprocal Rank, averaged into MRR)
- AP@k (Average Precision, averaged into MAP)

and the zero-excluding ``mean`` used to aggregate a metric series.
"""

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterable, Sequence

import numpy as np


class Metric(Enum):
    PRECISION = "P"
    RECALL = "R"
    MRR = "MRR"
    MAP = "MAP"

    def label(self, cut: int) -> str:
        """Column label used in result tables, e.g. ``P@10`` or ``MRR``."""
        if self is Metric.MRR:
            return self.value
        return f"{self.value}@{cut}"

    def file_token(self, cut: int) -> str:
        """Lower-case token used in result file names, e.g. ``p10`` or ``mrr``."""
        if self is Metric.MRR:
            return self.value.lower()
        return f"{self.value.lower()}{cut}"


def _check_cut(cut: int) -> None:
    if cut < 1:
        raise ValueError(f"cut must be a positive integer, got {cut}")


def _hits(cut: int, relevant: AbstractSet[str], ranking: Sequence[str]) -> int:
    # Distinct documents: a repeated identifier counts once.
    return len(set(ranking[:cut]) & set(relevant))


def precision(cut: int, relevant: AbstractSet[str], ranking: Sequence[str]) -> float:
    """
    Compute P@cut for one query.

    Missing positions (a ranking shorter than ``cut``) count as non-relevant;
    the denominator is always ``cut``.

    Args:
        cut: Evaluation depth.
        relevant: Identifiers judged relevant for the query.
        ranking: Retrieved identifiers, best first.

    Returns:
        Fraction of the first ``cut`` positions holding a relevant document.
    """
    _check_cut(cut)
    return _hits(cut, relevant, ranking) / cut


def recall(cut: int, relevant: AbstractSet[str], ranking: Sequence[str]) -> float:
    """
    Compute R@cut for one query.

    Returns 0.0 when the query has no relevant documents.
    """
    _check_cut(cut)
    if not relevant:
        return 0.0
    return _hits(cut, relevant, ranking) / len(relevant)


def reciprocal_rank(cut: int, relevant: AbstractSet[str], ranking: Sequence[str]) -> float:
    """
    Compute the reciprocal rank of the first relevant document within ``cut``.

    Returns 0.0 when no relevant document appears in the first ``cut`` positions.
    """
    _check_cut(cut)
    for rank, doc_id in enumerate(ranking[:cut], start=1):
        if doc_id in relevant:
            return 1.0 / rank
    return 0.0


def average_precision(cut: int, relevant: AbstractSet[str], ranking: Sequence[str]) -> float:
    """
    Compute AP@cut for one query.

    The sum of precision values at each relevant position within ``cut`` is
    divided by the total number of relevant documents (not by the number
    found), so relevant documents missed by the ranking lower the score. A
    relevant identifier repeated in the ranking contributes only at its first
    position.

    Returns 0.0 when the query has no relevant documents, matching ``recall``.

    Example:
        >>> average_precision(5, {'d2', 'd5'}, ['d1', 'd2', 'd3', 'd4', 'd5'])
        0.45
    """
    _check_cut(cut)
    if not relevant:
        return 0.0
    seen = set()
    numerator = 0.0
    for rank, doc_id in enumerate(ranking[:cut], start=1):
        if doc_id in relevant and doc_id not in seen:
            seen.add(doc_id)
            numerator += len(seen) / rank
    return numerator / len(relevant)


def mean(series: Iterable[float]) -> float:
    """
    Mean of a metric series, ignoring every value exactly equal to zero.

    A query scoring 0.0 is indistinguishable from a query that contributed
    nothing, so ``mean([0.0, 0.0, 1.0]) == 1.0``. This reads higher than the
    arithmetic mean whenever some queries score zero; reported means from the
    sweep and search-evaluation tables all follow this rule.

    Returns:
        The mean of the non-zero values, or 0.0 if there are none.
    """
    values = np.asarray(list(series), dtype=float)
    nonzero = values[values != 0.0]
    if nonzero.size == 0:
        return 0.0
    return float(np.mean(nonzero))


@dataclass(frozen=True)
class MetricRow:
    query_ordinal: int
    precision: float
    recall: float
    reciprocal_rank: float
    average_precision: float

    def value(self, metric: Metric) -> float:
        if metric is Metric.PRECISION:
            return self.precision
        if metric is Metric.RECALL:
            return self.recall
        if metric is Metric.MRR:
            return self.reciprocal_rank
        return self.average_precision


def evaluate_query(
    query_ordinal: int,
    cut: int,
    relevant: AbstractSet[str],
    ranking: Sequence[str],
) -> MetricRow:
    """Compute every metric for one query's ranking."""
    return MetricRow(
        query_ordinal=query_ordinal,
        precision=precision(cut, relevant, ranking),
        recall=recall(cut, relevant, ranking),
        reciprocal_rank=reciprocal_rank(cut, relevant, ranking),
        average_precision=average_precision(cut, relevant, ranking),
    )
