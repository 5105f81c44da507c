"""
Command-line script to evaluate one retrieval configuration on a query range.

Ranks every selected query with a Jelinek-Mercer or Dirichlet similarity,
prints and stores the hits, and writes a per-query table of P@cut, Recall@cut,
RR and AP@cut with a trailing ``Promedio`` row.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from tqdm import tqdm

from ingest.core import CollectionPaths, load_judged_queries
from ingest.npl_loader import JudgedQuery, QueryRange
from ingest.utils import UsageArgumentParser
from retrieval import DIRICHLET, JELINEK_MERCER, Searcher, Similarity, describe, format_parameter, similarity_for

from .errors import CollectionParseError, EvaluationError
from .metrics import MetricRow, evaluate_query, mean
from .tables import write_query_metrics_table

USAGE = (
    "npl-search-eval -indexin INDEX_PATH -search jm LAMBDA_VALUE | dir MU_VALUE "
    "-cut N -top M [-queries all | int1 | int1-int2]"
)


@dataclass(frozen=True)
class SearchEvaluation:
    rows: List[MetricRow]
    hits_path: Path
    table_path: Path

    def means(self) -> dict:
        return {
            "precision": mean(row.precision for row in self.rows),
            "recall": mean(row.recall for row in self.rows),
            "mrr": mean(row.reciprocal_rank for row in self.rows),
            "map": mean(row.average_precision for row in self.rows),
        }


def output_names(family: str, value: float, cut: int, top: int, query_range: QueryRange):
    """Hits file and metrics table names for one configuration."""
    name = "lambda" if family == JELINEK_MERCER else "mu"
    parameter = format_parameter(family, value)
    hits = f"npl.{family}.{top}.hits.{name}.{parameter}.q{query_range}.txt"
    table = f"npl.{family}.{cut}.cut.{name}.{parameter}.q{query_range}.csv"
    return hits, table


def evaluate_configuration(
    searcher: Searcher,
    queries: Sequence[JudgedQuery],
    similarity: Optional[Similarity],
    *,
    cut: int,
    top: int,
    hits_path: Path,
    table_path: Path,
    verbose: bool = True,
) -> SearchEvaluation:
    rows: List[MetricRow] = []
    hits_path.parent.mkdir(parents=True, exist_ok=True)
    with hits_path.open("w", encoding="utf-8") as hits_file:
        for judged in tqdm(queries, desc="Processing queries", disable=not verbose):
            hits = searcher.search(judged.query.text, similarity, top)
            hits_file.write(f"Results for: {judged.query.text}\n")
            if verbose:
                tqdm.write(f"{judged.ordinal}. Searching for: {judged.query.text}")
            for rank, hit in enumerate(hits, start=1):
                marker = " RELEVANT" if hit.doc_id in judged.relevant else ""
                line = (
                    f"{rank}. DocIDNPL: {hit.doc_id}. Contents: {searcher.document_text(hit.doc_id)}. "
                    f"Score={hit.score}.{marker}"
                )
                hits_file.write(line + "\n")
                if verbose:
                    tqdm.write(line)
            hits_file.write("\n")

            row = evaluate_query(judged.ordinal, cut, judged.relevant, [hit.doc_id for hit in hits])
            rows.append(row)
            if verbose:
                tqdm.write(f"P@{cut}: {row.precision}")
                tqdm.write(f"Recall@{cut}: {row.recall}")
                tqdm.write(f"RR: {row.reciprocal_rank}")
                tqdm.write(f"AP@{cut}: {row.average_precision}")
                tqdm.write("-" * 52)

    write_query_metrics_table(table_path, cut, rows)
    return SearchEvaluation(rows=rows, hits_path=hits_path, table_path=table_path)


def build_parser() -> UsageArgumentParser:
    parser = UsageArgumentParser(
        description="Evaluate one retrieval configuration on a range of queries.",
        usage=USAGE,
    )
    parser.add_argument("-indexin", type=Path, required=True, help="Directory of the analyzed collection.")
    parser.add_argument(
        "-search",
        nargs=2,
        required=True,
        metavar=("MODEL", "VALUE"),
        help="'jm LAMBDA' or 'dir MU'. A lambda of 0 uses the default ranking.",
    )
    parser.add_argument("-cut", type=int, required=True, help="Evaluation depth.")
    parser.add_argument("-top", type=int, required=True, help="Number of hits to retrieve and store.")
    parser.add_argument("-queries", default="all", help="Query selection: all, N or A-B.")
    parser.add_argument("-querytext", type=Path, default=None, help="Query collection file (default: query-text).")
    parser.add_argument("-rlvass", type=Path, default=None, help="Relevance judgments file (default: rlv-ass).")
    parser.add_argument("-outdir", type=Path, default=Path("."), help="Directory for the output files.")
    parser.add_argument(
        "-quiet",
        action="store_true",
        help="Only print the averaged metrics (no per-query output or progress bar).",
    )
    return parser


def handle(args, parser: UsageArgumentParser) -> int:
    family, raw_value = args.search
    if family not in (JELINEK_MERCER, DIRICHLET):
        parser.error(f"Unknown model type: {family}")
    try:
        value = float(raw_value)
        similarity = similarity_for(family, value)
    except ValueError as exc:
        parser.error(f"Invalid {family} parameter '{raw_value}': {exc}")
    if args.cut < 1 or args.top < 1:
        parser.error("-cut and -top must be positive integers")
    try:
        query_range = QueryRange.parse(args.queries)
    except CollectionParseError as exc:
        parser.error(str(exc))

    paths = CollectionPaths.resolve(args.querytext, args.rlvass)
    queries = load_judged_queries(paths, query_range)
    searcher = Searcher.from_index(args.indexin)
    print(f"Ranking {len(queries)} queries with {describe(similarity)}")

    hits_name, table_name = output_names(family, value, args.cut, args.top, query_range)
    evaluation = evaluate_configuration(
        searcher,
        queries,
        similarity,
        cut=args.cut,
        top=args.top,
        hits_path=args.outdir / hits_name,
        table_path=args.outdir / table_name,
        verbose=not args.quiet,
    )

    means = evaluation.means()
    print("Averaged metrics:")
    print(f"Mean P@{args.cut}: {means['precision']}")
    print(f"Mean Recall@{args.cut}: {means['recall']}")
    print(f"MRR: {means['mrr']}")
    print(f"MAP@{args.cut}: {means['map']}")
    print(f"Wrote {evaluation.hits_path} and {evaluation.table_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return handle(args, parser)
    except EvaluationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
