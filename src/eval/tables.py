"""
Reading and writing the comma-separated result tables.

Every table has a header row, one row per query ordinal and a trailing
``Promedio`` row holding the mean of each column. Tables produced by the sweep
also get a metadata record (``<table>.meta.json``) describing how they were
produced, so two tables can be checked for comparability without relying on
the file name alone.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import ComparabilityError, TableFormatError
from .metrics import Metric, MetricRow, mean

MEAN_ROW_LABEL = "Promedio"
TEST_MARKER = ".test."
TEST_SUFFIX = ".test.csv"
TRAINING_SUFFIX = ".training.csv"
METADATA_SUFFIX = ".meta.json"
METADATA_VERSION = 1


@dataclass(frozen=True)
class TableMetadata:
    kind: str
    family: str
    metric: str
    cut: int
    train_range: str
    test_range: str
    parameter: Optional[float] = None
    query_count: int = 0
    version: int = METADATA_VERSION

    def comparable_with(self, other: "TableMetadata") -> bool:
        return (self.metric, self.cut, self.test_range) == (other.metric, other.cut, other.test_range)


def metadata_path(table_path: Path | str) -> Path:
    table_path = Path(table_path)
    return table_path.with_name(table_path.name + METADATA_SUFFIX)


def write_metadata(table_path: Path | str, metadata: TableMetadata) -> Path:
    path = metadata_path(table_path)
    path.write_text(json.dumps(asdict(metadata), indent=2), encoding="utf-8")
    return path


def read_metadata(table_path: Path | str) -> Optional[TableMetadata]:
    """Return the table's metadata record, or None when it has none."""
    path = metadata_path(table_path)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        if payload.get("version") != METADATA_VERSION:
            raise TableFormatError(f"Unsupported metadata version in {path}: {payload.get('version')!r}")
        return TableMetadata(**payload)
    except (json.JSONDecodeError, TypeError) as exc:
        raise TableFormatError(f"Malformed metadata record {path}: {exc}")


def sweep_table_name(
    family: str,
    train_range: str,
    test_range: str,
    metric: Metric,
    cut: int,
    kind: str,
) -> str:
    """
    File name for a sweep table, e.g. ``npl.jm.training.1-30.test.31-60.p10.test.csv``.

    The text between the first ``.test.`` and the ``.test.csv`` suffix (here
    ``31-60.p10``) identifies the test queries and metric.
    """
    suffix = TEST_SUFFIX if kind == "test" else TRAINING_SUFFIX
    return f"npl.{family}.training.{train_range}.test.{test_range}.{metric.file_token(cut)}{suffix}"


def range_token(table_path: Path | str) -> str:
    """Extract the test-range/metric token encoded in a test table's file name."""
    name = Path(table_path).name
    start = name.find(TEST_MARKER)
    if start == -1 or not name.endswith(TEST_SUFFIX):
        raise ComparabilityError(f"Invalid result file name (no '{TEST_MARKER}...{TEST_SUFFIX}' token): {name}")
    token = name[start + len(TEST_MARKER):len(name) - len(TEST_SUFFIX)]
    if not token:
        raise ComparabilityError(f"Invalid result file name (empty range token): {name}")
    return token


def _ensure_parent(path: Path) -> None:
    if str(path.parent) != ".":
        path.parent.mkdir(parents=True, exist_ok=True)


def _write_frame(path: Path, frame: pd.DataFrame, index_label: str) -> Path:
    _ensure_parent(path)
    frame.to_csv(path, index=True, index_label=index_label)
    return path


def write_training_table(
    path: Path | str,
    candidate_labels: Sequence[str],
    ordinals: Sequence[int],
    columns: Sequence[Sequence[float]],
) -> Path:
    """
    Write the per-query by candidate grid with a trailing mean row.

    Args:
        path: Output CSV path.
        candidate_labels: Column label per candidate, in grid order.
        ordinals: Training query ordinals, in evaluation order.
        columns: Per-candidate metric series, aligned with ``ordinals``.
    """
    if len(candidate_labels) != len(columns):
        raise ValueError("One column of values is required per candidate label.")
    data: Dict[str, List[float]] = {}
    for label, values in zip(candidate_labels, columns):
        if len(values) != len(ordinals):
            raise ValueError(f"Column '{label}' has {len(values)} values for {len(ordinals)} queries.")
        data[label] = [float(v) for v in values] + [mean(values)]
    frame = pd.DataFrame(data, index=[str(o) for o in ordinals] + [MEAN_ROW_LABEL])
    return _write_frame(Path(path), frame, "Query")


def write_test_table(
    path: Path | str,
    candidate_label: str,
    metric_label: str,
    ordinals: Sequence[int],
    values: Sequence[float],
) -> Path:
    """Write the single-column test table: ``<candidate>,<metric>`` header, rows, mean row."""
    if len(values) != len(ordinals):
        raise ValueError(f"{len(values)} values for {len(ordinals)} queries.")
    frame = pd.DataFrame(
        {metric_label: [float(v) for v in values] + [mean(values)]},
        index=[str(o) for o in ordinals] + [MEAN_ROW_LABEL],
    )
    return _write_frame(Path(path), frame, candidate_label)


def write_query_metrics_table(path: Path | str, cut: int, rows: Sequence[MetricRow]) -> Path:
    """Write ``Query,P@k,Recall@k,RR,AP@k`` rows for one search configuration."""
    labels = (f"P@{cut}", f"Recall@{cut}", "RR", f"AP@{cut}")
    series = (
        [row.precision for row in rows],
        [row.recall for row in rows],
        [row.reciprocal_rank for row in rows],
        [row.average_precision for row in rows],
    )
    frame = pd.DataFrame(
        {label: [float(v) for v in values] + [mean(values)] for label, values in zip(labels, series)},
        index=[str(row.query_ordinal) for row in rows] + [MEAN_ROW_LABEL],
    )
    return _write_frame(Path(path), frame, "Query")


def read_result_series(path: Path | str) -> np.ndarray:
    """
    Load the per-query values (second column) of a result table.

    The header row is skipped and reading stops at the ``Promedio`` row.

    Raises:
        TableFormatError: if the file is empty, has fewer than two columns,
            holds a non-numeric value or lacks the ``Promedio`` row.
    """
    path = Path(path)
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except FileNotFoundError:
        raise TableFormatError(f"Result file not found: {path}")
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise TableFormatError(f"Unreadable result file {path}: {exc}")
    if frame.shape[1] < 2:
        raise TableFormatError(f"Result file {path} needs at least two columns.")

    values: List[float] = []
    for line_number, (label, raw) in enumerate(zip(frame.iloc[:, 0], frame.iloc[:, 1]), start=2):
        if label.strip() == MEAN_ROW_LABEL:
            return np.asarray(values, dtype=float)
        try:
            values.append(float(raw))
        except ValueError:
            raise TableFormatError(f"{path}:{line_number}: non-numeric value '{raw}'.")
    raise TableFormatError(f"Result file {path} has no '{MEAN_ROW_LABEL}' row.")
