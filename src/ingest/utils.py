from __future__ import annotations

import argparse
import sys
from typing import NoReturn


class UsageArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def set_nltk_path() -> None:
    from ingest.core import NLTK_DATA_PATH
    import nltk

    if NLTK_DATA_PATH not in nltk.data.path:
        nltk.data.path.append(NLTK_DATA_PATH)
