"""
Error types shared by the evaluation, sweep and comparison commands.

Every failure that aborts a run is raised as a subclass of
``EvaluationError``. Command-line entry points catch the base class, print the
message and return ``exit_code`` as the process status.
"""


class EvaluationError(Exception):
    """Base class for fatal evaluation failures."""

    exit_code = 1


class UsageError(EvaluationError):
    """Invalid command-line arguments or option values."""

    exit_code = 1


class CollectionParseError(EvaluationError):
    """Malformed query, judgment or document collection (or a bad range)."""

    exit_code = 2


class QueryParseError(CollectionParseError):
    """A query string could not be turned into a search request."""


class TableFormatError(EvaluationError):
    """A result table is missing fields, rows or numeric values."""

    exit_code = 2


class ComparabilityError(EvaluationError):
    """Two result tables were not produced for the same queries and metric."""

    exit_code = 1
