from .retrieval import (
    DIRICHLET,
    JELINEK_MERCER,
    Hit,
    RetrievalEngine,
    Searcher,
    Similarity,
    describe,
    format_parameter,
    similarity_for,
)

__all__ = [
    "DIRICHLET",
    "JELINEK_MERCER",
    "Hit",
    "RetrievalEngine",
    "Searcher",
    "Similarity",
    "describe",
    "format_parameter",
    "similarity_for",
]
