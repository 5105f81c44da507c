from __future__ import annotations

from pathlib import Path
from typing import Optional

from index.tokenize import ANALYZERS, IndexConfig, write_tokenized_corpus

from .core import default_doc_text
from .npl_loader import read_documents


def ingest_npl_collection(
    index_dir: Path | str,
    *,
    docs_path: Optional[Path | str] = None,
    analyzer: str = "standard",
    stopwords: Optional[Path | str] = None,
    overwrite: bool = True,
) -> IndexConfig:
    """
    Parse an NPL ``doc-text`` file and write the analyzed collection.

    The analyzer choice is stored in ``index.json`` next to ``docs.jsonl`` so
    evaluation commands read it from the configuration record.
    """
    if analyzer not in ANALYZERS:
        raise ValueError(f"Unknown analyzer '{analyzer}'. Expected one of: {', '.join(ANALYZERS)}.")
    source = Path(docs_path) if docs_path is not None else default_doc_text()
    config = IndexConfig(
        analyzer=analyzer,
        stopwords=str(Path(stopwords).resolve()) if stopwords is not None else None,
    )
    return write_tokenized_corpus(read_documents(source), index_dir, config, overwrite=overwrite)
