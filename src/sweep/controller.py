"""
Train/select/test sweep over a smoothing parameter of the retrieval model.

Every candidate of a fixed grid is evaluated on the training queries; the
candidate with the highest mean metric is then evaluated once on the test
queries. Candidates are tried in grid order and only a strictly better mean
replaces the current best, so ties go to the earliest candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from tqdm import tqdm

from eval.metrics import Metric, MetricRow, evaluate_query, mean
from eval.tables import (
    TableMetadata,
    sweep_table_name,
    write_metadata,
    write_test_table,
    write_training_table,
)
from ingest.npl_loader import JudgedQuery
from retrieval import DIRICHLET, JELINEK_MERCER, RetrievalEngine, Similarity, format_parameter, similarity_for

JM_GRID: Tuple[float, ...] = (0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0)
DIRICHLET_GRID: Tuple[float, ...] = (0, 200, 400, 600, 800, 1000, 1500, 2000, 2500, 3000, 4000)
TEST_DEPTH = 100


class ModelFamily(Enum):
    JELINEK_MERCER = JELINEK_MERCER
    DIRICHLET = DIRICHLET

    @property
    def grid(self) -> Tuple[float, ...]:
        return JM_GRID if self is ModelFamily.JELINEK_MERCER else DIRICHLET_GRID

    def candidate_label(self, value: float) -> str:
        """Training table column, e.g. ``lambda_0.3`` or ``mu_200``."""
        prefix = "lambda" if self is ModelFamily.JELINEK_MERCER else "mu"
        return f"{prefix}_{format_parameter(self.value, value)}"

    def selected_label(self, value: float) -> str:
        """Test table header cell, e.g. ``jm_0.3`` or ``mu_200``."""
        prefix = "jm" if self is ModelFamily.JELINEK_MERCER else "mu"
        return f"{prefix}_{format_parameter(self.value, value)}"

    def similarity(self, value: float) -> Optional[Similarity]:
        return similarity_for(self.value, value)


class SweepState(Enum):
    IDLE = "idle"
    TRAINING = "training"
    SELECTING = "selecting"
    TESTING = "testing"
    REPORTING = "reporting"
    DONE = "done"


@dataclass(frozen=True)
class CandidateResult:
    """Metric rows and aggregated mean for one candidate on one query range."""

    candidate: float
    rows: Tuple[MetricRow, ...]
    mean: float

    def values(self, metric: Metric) -> List[float]:
        return [row.value(metric) for row in self.rows]

    @property
    def ordinals(self) -> List[int]:
        return [row.query_ordinal for row in self.rows]


@dataclass(frozen=True)
class SweepResult:
    family: ModelFamily
    metric: Metric
    cut: int
    train_range: str
    test_range: str
    training: Tuple[CandidateResult, ...]
    best_index: int
    test: CandidateResult

    @property
    def best_candidate(self) -> float:
        return self.training[self.best_index].candidate

    @property
    def training_means(self) -> Dict[float, float]:
        return {result.candidate: result.mean for result in self.training}


@dataclass(frozen=True)
class SweepReport:
    training_table: Path
    test_table: Path


def select_best(means: Sequence[float]) -> int:
    """Index of the first strictly greatest mean."""
    if not means:
        raise ValueError("Cannot select from an empty candidate grid.")
    best = 0
    for index in range(1, len(means)):
        if means[index] > means[best]:
            best = index
    return best


class ParameterSweepController:
    """
    Drives the candidate grid through a retrieval engine.

    The engine only needs ``rank(query, similarity, depth)``. Training queries
    are ranked to depth ``cut``; test queries to ``test_depth`` (metrics are
    still computed at ``cut``). Any exception from the engine aborts the run.
    """

    def __init__(
        self,
        engine: RetrievalEngine,
        family: ModelFamily,
        metric: Metric,
        cut: int,
        *,
        grid: Optional[Sequence[float]] = None,
        test_depth: int = TEST_DEPTH,
        progress: bool = True,
    ):
        if cut < 1:
            raise ValueError(f"cut must be a positive integer, got {cut}")
        self.engine = engine
        self.family = family
        self.metric = metric
        self.cut = cut
        self.grid: Tuple[float, ...] = tuple(grid) if grid is not None else family.grid
        if not self.grid:
            raise ValueError("The candidate grid must not be empty.")
        self.test_depth = test_depth
        self.progress = progress
        self.state = SweepState.IDLE

    def _evaluate(self, candidate: float, queries: Sequence[JudgedQuery], depth: int) -> CandidateResult:
        similarity = self.family.similarity(candidate)
        rows = []
        for judged in queries:
            ranking = self.engine.rank(judged.query.text, similarity, depth)
            rows.append(evaluate_query(judged.ordinal, self.cut, judged.relevant, ranking))
        rows = tuple(rows)
        return CandidateResult(candidate, rows, mean(row.value(self.metric) for row in rows))

    def train(self, training: Sequence[JudgedQuery]) -> Tuple[CandidateResult, ...]:
        self.state = SweepState.TRAINING
        grid = tqdm(self.grid, desc=f"Training {self.family.value}", unit="candidate", disable=not self.progress)
        return tuple(self._evaluate(candidate, training, self.cut) for candidate in grid)

    def select(self, training_results: Sequence[CandidateResult]) -> int:
        self.state = SweepState.SELECTING
        return select_best([result.mean for result in training_results])

    def test(self, candidate: float, testing: Sequence[JudgedQuery]) -> CandidateResult:
        self.state = SweepState.TESTING
        return self._evaluate(candidate, testing, self.test_depth)

    def run(
        self,
        training: Sequence[JudgedQuery],
        testing: Sequence[JudgedQuery],
        *,
        train_range: str = "",
        test_range: str = "",
    ) -> SweepResult:
        """Train on ``training``, select the best candidate and evaluate it on ``testing``."""
        training_results = self.train(training)
        best_index = self.select(training_results)
        test_result = self.test(training_results[best_index].candidate, testing)
        return SweepResult(
            family=self.family,
            metric=self.metric,
            cut=self.cut,
            train_range=train_range,
            test_range=test_range,
            training=training_results,
            best_index=best_index,
            test=test_result,
        )

    def report(self, result: SweepResult, output_dir: Path | str = ".") -> SweepReport:
        """Write the training grid and the test table (plus metadata records)."""
        self.state = SweepState.REPORTING
        output_dir = Path(output_dir)
        family = result.family
        metric = result.metric

        training_path = output_dir / sweep_table_name(
            family.value, result.train_range, result.test_range, metric, result.cut, "training"
        )
        training_ordinals = result.training[0].ordinals if result.training else []
        write_training_table(
            training_path,
            [family.candidate_label(r.candidate) for r in result.training],
            training_ordinals,
            [r.values(metric) for r in result.training],
        )

        test_path = output_dir / sweep_table_name(
            family.value, result.train_range, result.test_range, metric, result.cut, "test"
        )
        write_test_table(
            test_path,
            family.selected_label(result.best_candidate),
            metric.label(result.cut),
            result.test.ordinals,
            result.test.values(metric),
        )

        for kind, path, count in (
            ("training", training_path, len(training_ordinals)),
            ("test", test_path, len(result.test.rows)),
        ):
            write_metadata(
                path,
                TableMetadata(
                    kind=kind,
                    family=family.value,
                    metric=metric.value,
                    cut=result.cut,
                    train_range=result.train_range,
                    test_range=result.test_range,
                    parameter=float(result.best_candidate),
                    query_count=count,
                ),
            )
        self.state = SweepState.DONE
        return SweepReport(training_table=training_path, test_table=test_path)
