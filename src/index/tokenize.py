from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import nltk
from nltk.stem import PorterStemmer, SnowballStemmer
from tqdm import tqdm

from eval.errors import CollectionParseError
from ingest.utils import set_nltk_path

DOCS_TOKENIZED_FILENAME = "docs.jsonl"
INDEX_CONFIG_FILENAME = "index.json"
INDEX_CONFIG_VERSION = 1
ANALYZERS: Tuple[str, ...] = ("standard", "simple", "whitespace", "keyword", "stop", "english", "spanish")
Tokenizer = Callable[[str], Sequence[str]]

_LETTER_RUNS = re.compile(r"[^\W\d_]+")
_STOP_WORDS: Dict[str, Set[str]] = {}
_STEMMERS = {"english": PorterStemmer(), "spanish": SnowballStemmer("spanish")}


@dataclass(frozen=True)
class IndexConfig:
    """Typed description of how a document collection was analyzed."""

    analyzer: str = "standard"
    stopwords: Optional[str] = None
    doc_count: int = 0
    version: int = INDEX_CONFIG_VERSION

    def __post_init__(self) -> None:
        if self.analyzer not in ANALYZERS:
            raise CollectionParseError(
                f"Unknown analyzer '{self.analyzer}'. Expected one of: {', '.join(ANALYZERS)}."
            )

    def save(self, index_dir: Path | str) -> Path:
        path = Path(index_dir) / INDEX_CONFIG_FILENAME
        path.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, index_dir: Path | str) -> "IndexConfig":
        path = Path(index_dir) / INDEX_CONFIG_FILENAME
        if not path.exists():
            raise CollectionParseError(f"Index configuration not found at {path}.")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise CollectionParseError(f"Malformed index configuration {path}: {exc}")
        version = payload.get("version")
        if version != INDEX_CONFIG_VERSION:
            raise CollectionParseError(
                f"Unsupported index configuration version {version!r} in {path} (expected {INDEX_CONFIG_VERSION})."
            )
        return cls(
            analyzer=str(payload.get("analyzer", "standard")),
            stopwords=payload.get("stopwords"),
            doc_count=int(payload.get("doc_count", 0)),
            version=version,
        )


def _load_stopwords(language: str = "english") -> Set[str]:
    if language in _STOP_WORDS:
        return _STOP_WORDS[language]
    words: Set[str] = set()
    try:
        set_nltk_path()
        from nltk.corpus import stopwords as nltk_stopwords

        words = {w.lower() for w in nltk_stopwords.words(language)}
    except LookupError as exc:  # pragma: no cover - optional dependency
        print(f"Warning: stopword list unavailable ({exc}); proceeding without stopword filtering.")
    _STOP_WORDS[language] = words
    return words


def load_stopword_file(path: Optional[Path | str]) -> Set[str]:
    if path is None:
        return set()
    source = Path(path)
    if not source.exists():
        raise CollectionParseError(f"Stopword file not found: {source}")
    return {word.lower() for word in source.read_text(encoding="utf-8").split()}


def _simple_tokens(text: str) -> List[str]:
    return _LETTER_RUNS.findall(text.lower())


def _standard_tokens(text: str, language: str = "english") -> List[str]:
    set_nltk_path()
    try:
        tokens = nltk.word_tokenize((text or "").lower(), language=language)
    except LookupError:
        raise RuntimeError(
            "NLTK 'punkt' resource not found. Please run 'npl-ingest prepare' to download it."
        )
    return [token for token in tokens if any(ch.isalnum() for ch in token)]


def _stemming_analyzer(language: str) -> Tokenizer:
    """Standard tokens minus the NLTK stopwords of ``language``, stemmed."""
    stop_words = _load_stopwords(language)
    stemmer = _STEMMERS[language]

    def analyze(text: str) -> List[str]:
        return [stemmer.stem(t) for t in _standard_tokens(text, language) if t not in stop_words]

    return analyze


def build_analyzer(config: IndexConfig) -> Tokenizer:
    """Return the tokenizer that turns raw text into index terms for ``config``."""

    if config.analyzer == "whitespace":
        return lambda text: (text or "").split()
    if config.analyzer == "keyword":
        return lambda text: [text] if text else []
    if config.analyzer == "simple":
        return _simple_tokens
    if config.analyzer == "stop":
        stop_words = load_stopword_file(config.stopwords)
        return lambda text: [t for t in _simple_tokens(text) if t not in stop_words]
    if config.analyzer in _STEMMERS:
        return _stemming_analyzer(config.analyzer)
    return _standard_tokens


def write_tokenized_corpus(
    documents: Iterable[Tuple[str, str]],
    index_dir: Path | str,
    config: IndexConfig,
    *,
    overwrite: bool = True,
) -> IndexConfig:
    """Analyze ``(doc_id, text)`` pairs and persist them with their configuration."""

    index_dir = Path(index_dir)
    output_path = index_dir / DOCS_TOKENIZED_FILENAME
    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Tokenized file already exists at {output_path}")
    index_dir.mkdir(parents=True, exist_ok=True)

    analyzer = build_analyzer(config)
    processed = 0
    with output_path.open("w", encoding="utf-8") as target:
        for doc_id, text in tqdm(documents, desc="Tokenizing documents", unit="doc"):
            record = {"doc_id": doc_id, "text": text, "tokens": list(analyzer(text))}
            target.write(json.dumps(record) + "\n")
            processed += 1

    final = IndexConfig(analyzer=config.analyzer, stopwords=config.stopwords, doc_count=processed)
    final.save(index_dir)
    return final


def load_tokenized_corpus(index_dir: Path | str) -> Tuple[IndexConfig, Dict[str, Dict[str, object]]]:
    index_dir = Path(index_dir)
    config = IndexConfig.load(index_dir)
    output_path = index_dir / DOCS_TOKENIZED_FILENAME
    if not output_path.exists():
        raise CollectionParseError(f"Tokenized corpus not found. Expected file at {output_path}.")

    corpus: Dict[str, Dict[str, object]] = {}
    with output_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                continue
            record: Dict[str, object] = json.loads(line)
            doc_id = record.get("doc_id") or record.get("id")
            if doc_id is None:
                continue
            corpus[str(doc_id)] = record
    return config, corpus
