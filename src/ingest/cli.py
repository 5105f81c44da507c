from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, Sequence

from eval.errors import EvaluationError
from index.tokenize import ANALYZERS

from . import __version__
from .core import DEFAULT_NLTK_RESOURCES, prepare_environment
from .materialize import ingest_npl_collection


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Utility CLI for NPL collection building and environment prep.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"ingest {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    prep = subparsers.add_parser("prepare", help="Create folders and download NLTK data.")
    prep.add_argument("--skip-nltk", action="store_true", help="Skip downloading NLTK assets.")
    prep.add_argument(
        "--resources",
        nargs="+",
        default=list(DEFAULT_NLTK_RESOURCES),
        help="Explicit NLTK resources to ensure.",
    )
    prep.add_argument("--json", action="store_true", help="Emit machine-readable output.")

    build = subparsers.add_parser(
        "build",
        help="Analyze an NPL doc-text file into a searchable collection directory.",
    )
    build.add_argument("--docs", type=Path, default=None, help="NPL doc-text file (default: doc-text or $NPL_DOC_TEXT).")
    build.add_argument("--index", type=Path, required=True, help="Destination collection directory.")
    build.add_argument("--analyzer", choices=ANALYZERS, default="standard", help="Analyzer applied to documents and queries.")
    build.add_argument("--stopwords", type=Path, default=None, help="Stopword file for the 'stop' analyzer.")
    build.add_argument("--no-overwrite", action="store_true", help="Fail if files already exist.")
    build.add_argument("--json", action="store_true", help="Emit machine-readable output.")

    return parser


def _print(obj: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(obj, indent=2))
    else:
        for key, value in obj.items():
            print(f"{key}: {value}")


def handle_prepare(args: argparse.Namespace) -> int:
    report = prepare_environment(
        ensure_nltk=not args.skip_nltk,
        nltk_resources=args.resources,
    )
    _print(report, args.json)
    return 0


def handle_build(args: argparse.Namespace) -> int:
    try:
        config = ingest_npl_collection(
            args.index,
            docs_path=args.docs,
            analyzer=args.analyzer,
            stopwords=args.stopwords,
            overwrite=not args.no_overwrite,
        )
    except (EvaluationError, FileExistsError) as err:
        msg = str(err)
        if args.json:
            print(json.dumps({"index": str(args.index), "error": msg}, indent=2))
        else:
            print(f"Failed to build {args.index}: {msg}")
        return 1
    _print({"index": str(args.index), "analyzer": config.analyzer, "doc_count": config.doc_count}, args.json)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(args=argv)
    if args.command is None:
        parser.print_help()
        return 0
    handlers = {
        "prepare": handle_prepare,
        "build": handle_build,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error(f"Unknown command: {args.command}")
    return handler(args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
