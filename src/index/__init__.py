"""Analyzers and the persisted, tokenized document collection."""

from .tokenize import (
    ANALYZERS,
    DOCS_TOKENIZED_FILENAME,
    INDEX_CONFIG_FILENAME,
    IndexConfig,
    build_analyzer,
    load_tokenized_corpus,
    write_tokenized_corpus,
)

__all__ = [
    "ANALYZERS",
    "DOCS_TOKENIZED_FILENAME",
    "INDEX_CONFIG_FILENAME",
    "IndexConfig",
    "build_analyzer",
    "load_tokenized_corpus",
    "write_tokenized_corpus",
]

__version__ = "0.1.0"
