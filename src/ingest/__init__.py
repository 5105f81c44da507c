"""Readers for the NPL collection files and environment preparation helpers."""

from .core import (
    NLTK_DATA_PATH,
    CollectionPaths,
    load_judged_queries,
    prepare_environment,
)
from .npl_loader import (
    ALL_QUERIES,
    JudgedQuery,
    Query,
    QueryRange,
    QuerySet,
    RelevanceStore,
    judged_queries,
    read_documents,
)

__all__ = [
    "NLTK_DATA_PATH",
    "ALL_QUERIES",
    "CollectionPaths",
    "JudgedQuery",
    "Query",
    "QueryRange",
    "QuerySet",
    "RelevanceStore",
    "judged_queries",
    "load_judged_queries",
    "prepare_environment",
    "read_documents",
]

__version__ = "0.1.0"
