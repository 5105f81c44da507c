"""
Command-line script to test whether two sweep test tables differ significantly.
"""

from __future__ import annotations

import json
import sys
from typing import Sequence

from ingest.utils import UsageArgumentParser

from .errors import EvaluationError
from .stats_tests import ALTERNATIVES, TEST_KINDS, compare_result_files

USAGE = "npl-compare -test t|wilcoxon alpha -results results1.csv results2.csv"
DESCRIPTION = (
    "Paired significance test (t-test or Wilcoxon) at level alpha, 0 < alpha <= 0.5. "
    "Both result files must come from npl-train-test for the same metric and test queries."
)


def build_parser() -> UsageArgumentParser:
    parser = UsageArgumentParser(description=DESCRIPTION, usage=USAGE)
    parser.add_argument(
        "-test",
        nargs=2,
        required=True,
        metavar=("KIND", "ALPHA"),
        help=f"Test kind ({' | '.join(TEST_KINDS)}) and significance level.",
    )
    parser.add_argument(
        "-results",
        nargs=2,
        required=True,
        metavar=("RESULTS1", "RESULTS2"),
        help="Two test tables written by npl-train-test.",
    )
    parser.add_argument(
        "-alternative",
        choices=ALTERNATIVES,
        default=None,
        help="Alternative hypothesis (t: two-sided, wilcoxon: greater by default).",
    )
    parser.add_argument("--json", action="store_true", help="Emit machine-readable output.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    kind, raw_alpha = args.test
    if kind not in TEST_KINDS:
        parser.error(f"Invalid test type: {kind}")
    try:
        alpha = float(raw_alpha)
    except ValueError:
        parser.error(f"alpha must be a number, got '{raw_alpha}'")
    if not 0.0 < alpha <= 0.5:
        parser.error("alpha must satisfy 0 < alpha <= 0.5")

    results1, results2 = args.results
    try:
        result = compare_result_files(results1, results2, test=kind, alpha=alpha, alternative=args.alternative)
    except EvaluationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code

    if args.json:
        print(json.dumps(result.as_dict(), indent=2))
    else:
        print(f"Test: {result.test}")
        print(f"Alpha: {result.alpha}")
        print(f"Test result: {result.verdict}")
        print(f"P-value: {result.p_value}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
