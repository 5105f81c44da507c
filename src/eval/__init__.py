"""
Evaluation package for retrieval metrics, result tables and statistical tests.
"""
from .errors import (
    EvaluationError,
    UsageError,
    CollectionParseError,
    QueryParseError,
    TableFormatError,
    ComparabilityError
)
from .metrics import (
    Metric,
    MetricRow,
    precision,
    recall,
    reciprocal_rank,
    average_precision,
    mean,
    evaluate_query
)
from .tables import (
    TableMetadata,
    sweep_table_name,
    range_token,
    write_training_table,
    write_test_table,
    write_query_metrics_table,
    read_result_series
)
from .stats_tests import (
    SignificanceResult,
    paired_t_test,
    wilcoxon_test,
    significance_test,
    compare_result_files
)

__all__ = [
    'EvaluationError',
    'UsageError',
    'CollectionParseError',
    'QueryParseError',
    'TableFormatError',
    'ComparabilityError',
    'Metric',
    'MetricRow',
    'precision',
    'recall',
    'reciprocal_rank',
    'average_precision',
    'mean',
    'evaluate_query',
    'TableMetadata',
    'sweep_table_name',
    'range_token',
    'write_training_table',
    'write_test_table',
    'write_query_metrics_table',
    'read_result_series',
    'SignificanceResult',
    'paired_t_test',
    'wilcoxon_test',
    'significance_test',
    'compare_result_files'
]
