"""Training/test sweep of the retrieval model's smoothing parameter."""

from .controller import (
    DIRICHLET_GRID,
    JM_GRID,
    TEST_DEPTH,
    CandidateResult,
    ModelFamily,
    ParameterSweepController,
    SweepReport,
    SweepResult,
    SweepState,
    select_best,
)

__all__ = [
    "DIRICHLET_GRID",
    "JM_GRID",
    "TEST_DEPTH",
    "CandidateResult",
    "ModelFamily",
    "ParameterSweepController",
    "SweepReport",
    "SweepResult",
    "SweepState",
    "select_best",
]

__version__ = "0.1.0"
