from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Sequence

from eval.errors import CollectionParseError, EvaluationError
from eval.metrics import Metric
from ingest.core import CollectionPaths, load_judged_queries
from ingest.npl_loader import QueryRange
from ingest.utils import UsageArgumentParser
from retrieval import Searcher

from . import __version__
from .controller import ModelFamily, ParameterSweepController

USAGE = (
    "npl-train-test -evaljm int1-int2 int3-int4 | -evaldir int1-int2 int3-int4 "
    "-cut n -metrica P | R | MRR | MAP -indexin pathname"
)


def build_parser() -> UsageArgumentParser:
    parser = UsageArgumentParser(
        description=(
            "Select the smoothing parameter of a language model on training queries "
            "and evaluate the chosen value on test queries."
        ),
        usage=USAGE,
    )
    parser.add_argument("--version", action="version", version=f"sweep {__version__}")
    model = parser.add_mutually_exclusive_group(required=True)
    model.add_argument(
        "-evaljm",
        nargs=2,
        metavar=("TRAIN", "TEST"),
        help="Sweep the Jelinek-Mercer lambda over training range TRAIN, evaluate on TEST.",
    )
    model.add_argument(
        "-evaldir",
        nargs=2,
        metavar=("TRAIN", "TEST"),
        help="Sweep the Dirichlet mu over training range TRAIN, evaluate on TEST.",
    )
    parser.add_argument("-cut", type=int, required=True, help="Evaluation depth (positive integer).")
    parser.add_argument(
        "-metrica",
        required=True,
        choices=[metric.value for metric in Metric],
        help="Metric used to select the parameter.",
    )
    parser.add_argument("-indexin", type=Path, required=True, help="Directory of the analyzed collection.")
    parser.add_argument("-querytext", type=Path, default=None, help="Query collection file (default: query-text).")
    parser.add_argument("-rlvass", type=Path, default=None, help="Relevance judgments file (default: rlv-ass).")
    parser.add_argument("-outdir", type=Path, default=Path("."), help="Directory for the result tables.")
    parser.add_argument("-plot", action="store_true", help="Also write a PNG of the training means.")
    parser.add_argument("--json", action="store_true", help="Emit a machine-readable summary.")
    return parser


def _echo(path: Path) -> None:
    print(path.read_text(encoding="utf-8"), end="")


def handle(args, parser: UsageArgumentParser) -> int:
    family = ModelFamily.JELINEK_MERCER if args.evaljm else ModelFamily.DIRICHLET
    train_selector, test_selector = args.evaljm or args.evaldir
    if args.cut < 1:
        parser.error("Cut value (-cut) must be a positive integer")
    try:
        train_range = QueryRange.parse(train_selector)
        test_range = QueryRange.parse(test_selector)
    except CollectionParseError as exc:
        parser.error(str(exc))
    if train_range.overlaps(test_range):
        parser.error(f"Training range {train_range} and test range {test_range} must be disjoint")

    paths = CollectionPaths.resolve(args.querytext, args.rlvass)
    training = load_judged_queries(paths, train_range)
    testing = load_judged_queries(paths, test_range)
    print(f"Loaded {len(training)} training and {len(testing)} test queries from {paths.queries}")

    print(f"Loading collection from {args.indexin}...")
    searcher = Searcher.from_index(args.indexin)

    controller = ParameterSweepController(searcher, family, Metric(args.metrica), args.cut)
    result = controller.run(training, testing, train_range=str(train_range), test_range=str(test_range))
    report = controller.report(result, args.outdir)

    best_label = family.selected_label(result.best_candidate)
    plot_path = None
    if args.plot:
        from .plot import plot_training_curve

        plot_path = plot_training_curve(result, report.training_table.with_suffix(".png"))

    if args.json:
        payload = {
            "family": family.value,
            "metric": result.metric.label(result.cut),
            "best": best_label,
            "training_means": {
                family.candidate_label(c): m for c, m in result.training_means.items()
            },
            "test_mean": result.test.mean,
            "training_table": str(report.training_table),
            "test_table": str(report.test_table),
        }
        if plot_path is not None:
            payload["plot"] = str(plot_path)
        print(json.dumps(payload, indent=2))
    else:
        _echo(report.training_table)
        print(f"Wrote {report.training_table}")
        _echo(report.test_table)
        print(f"Wrote {report.test_table}")
        print(f"Selected {best_label}: test mean {result.metric.label(result.cut)} = {result.test.mean}")
        if plot_path is not None:
            print(f"Wrote {plot_path}")
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
