from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import nltk
from dotenv import load_dotenv
from nltk.downloader import Downloader

from .npl_loader import JudgedQuery, QueryRange, QuerySet, RelevanceStore, judged_queries

# Load .env file
load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[2]
NLTK_DATA_PATH = str(PROJECT_ROOT / "data" / "nltk")
DEFAULT_NLTK_RESOURCES: Tuple[str, ...] = ("punkt", "punkt_tab", "stopwords")

# Collection files are looked up in the working directory unless overridden.
DEFAULT_QUERY_TEXT = "query-text"
DEFAULT_RLV_ASS = "rlv-ass"
DEFAULT_DOC_TEXT = "doc-text"
QUERY_TEXT_ENV = "NPL_QUERY_TEXT"
RLV_ASS_ENV = "NPL_RLV_ASS"
DOC_TEXT_ENV = "NPL_DOC_TEXT"


@dataclass(frozen=True)
class CollectionPaths:
    """Locations of the query and relevance-judgment files for one run."""

    queries: Path
    judgments: Path

    @classmethod
    def resolve(
        cls,
        queries: Optional[Path | str] = None,
        judgments: Optional[Path | str] = None,
    ) -> "CollectionPaths":
        return cls(
            queries=Path(queries or os.getenv(QUERY_TEXT_ENV) or DEFAULT_QUERY_TEXT),
            judgments=Path(judgments or os.getenv(RLV_ASS_ENV) or DEFAULT_RLV_ASS),
        )

    def as_dict(self) -> Dict[str, str]:
        return {"queries": str(self.queries), "judgments": str(self.judgments)}


def default_doc_text() -> Path:
    return Path(os.getenv(DOC_TEXT_ENV) or DEFAULT_DOC_TEXT)


def load_judged_queries(paths: CollectionPaths, query_range: QueryRange) -> List[JudgedQuery]:
    """Selected queries (lower-cased, in ordinal order) with their relevant sets."""

    queries = QuerySet.from_file(paths.queries).select(query_range)
    store = RelevanceStore.from_file(paths.judgments, query_range)
    return list(judged_queries(queries, store))


def prepare_environment(
    *,
    ensure_nltk: bool = True,
    nltk_resources: Sequence[str] = DEFAULT_NLTK_RESOURCES,
) -> Dict[str, object]:
    """Creates the NLTK data folder and optionally downloads the NLTK assets."""

    created = not Path(NLTK_DATA_PATH).exists()
    Path(NLTK_DATA_PATH).mkdir(parents=True, exist_ok=True)
    nltk_report: Dict[str, str] = {}
    if ensure_nltk:
        nltk_report = ensure_nltk_resources(nltk_resources)
    return {"nltk_data": NLTK_DATA_PATH, "created": created, "nltk": nltk_report}


def ensure_nltk_resources(resources: Sequence[str]) -> Dict[str, str]:
    """Installs required NLTK packages inside the project data directory."""

    if NLTK_DATA_PATH not in nltk.data.path:
        nltk.data.path.append(NLTK_DATA_PATH)
    Path(NLTK_DATA_PATH).mkdir(parents=True, exist_ok=True)
    downloader = Downloader(download_dir=str(NLTK_DATA_PATH))
    report: Dict[str, str] = {}
    for resource in resources:
        if downloader.is_installed(resource):
            report[resource] = "present"
            continue
        try:
            downloader.download(resource)
            report[resource] = "downloaded"
        except Exception as exc:  # pragma: no cover - network errors
            report[resource] = f"error: {exc}"
    return report
