"""
Unit tests for the per-query evaluation metrics and their aggregation.
"""

import unittest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from eval.metrics import (
    Metric,
    MetricRow,
    precision,
    recall,
    reciprocal_rank,
    average_precision,
    mean,
    evaluate_query
)


class TestMetrics(unittest.TestCase):
    """Test cases for retrieval metrics."""

    def setUp(self):
        """Set up test data."""
        self.relevant = {'d2', 'd5'}
        self.ranking = ['d1', 'd2', 'd3', 'd4', 'd5']

    def test_worked_example(self):
        """Test the metrics for a relevant set found at ranks 2 and 5."""
        self.assertAlmostEqual(precision(5, self.relevant, self.ranking), 0.4)
        self.assertEqual(recall(5, self.relevant, self.ranking), 1.0)
        self.assertEqual(reciprocal_rank(5, self.relevant, self.ranking), 0.5)
        self.assertAlmostEqual(average_precision(5, self.relevant, self.ranking), 0.45)

    def test_cut_limits_ranking(self):
        """Test that documents beyond the cut are ignored."""
        self.assertEqual(precision(1, self.relevant, self.ranking), 0.0)
        self.assertEqual(recall(2, self.relevant, self.ranking), 0.5)
        self.assertEqual(reciprocal_rank(1, self.relevant, self.ranking), 0.0)
        self.assertAlmostEqual(average_precision(2, self.relevant, self.ranking), 0.25)

    def test_short_ranking_keeps_cut_denominator(self):
        """Test precision when fewer than cut documents were retrieved."""
        self.assertEqual(precision(10, {'d1'}, ['d1']), 0.1)

    def test_bounds(self):
        """Test precision and recall stay within [0, 1]."""
        rankings = [['a', 'b', 'c'], ['b', 'b', 'b'], ['x', 'y', 'z'], ['a', 'c', 'b']]
        for ranking in rankings:
            p = precision(3, {'a', 'b'}, ranking)
            r = recall(3, {'a', 'b'}, ranking)
            self.assertGreaterEqual(p, 0.0)
            self.assertLessEqual(p, 1.0)
            self.assertGreaterEqual(r, 0.0)
            self.assertLessEqual(r, 1.0)

    def test_repeated_ids_count_once(self):
        """Test that a relevant identifier repeated in the ranking counts once."""
        self.assertEqual(recall(3, {'a', 'b'}, ['b', 'b', 'b']), 0.5)
        self.assertAlmostEqual(precision(3, {'a'}, ['a', 'a', 'a']), 1.0 / 3.0)
        self.assertEqual(average_precision(3, {'a'}, ['a', 'a', 'a']), 1.0)
        self.assertEqual(reciprocal_rank(3, {'a'}, ['x', 'a', 'a']), 0.5)
        # d2 at 1, repeated at 2, d5 at 3: (1/1 + 2/3) / 2
        self.assertAlmostEqual(average_precision(3, self.relevant, ['d2', 'd2', 'd5']), (1.0 + 2.0 / 3.0) / 2.0)
        for ranking in (['a', 'a', 'b'], ['b', 'a', 'b', 'a'], ['a'] * 5):
            ap = average_precision(5, {'a', 'b'}, ranking)
            self.assertGreaterEqual(ap, 0.0)
            self.assertLessEqual(ap, 1.0)

    def test_reciprocal_rank_decreases_with_later_hit(self):
        """Test RR is non-increasing as the first relevant hit moves down."""
        scores = []
        for position in range(5):
            ranking = ['x'] * position + ['rel'] + ['y'] * (4 - position)
            scores.append(reciprocal_rank(5, {'rel'}, ranking))
        self.assertEqual(scores[0], 1.0)
        for earlier, later in zip(scores, scores[1:]):
            self.assertGreaterEqual(earlier, later)

    def test_reciprocal_rank_is_one_only_for_top_hit(self):
        self.assertEqual(reciprocal_rank(3, {'a'}, ['a', 'b']), 1.0)
        self.assertLess(reciprocal_rank(3, {'b'}, ['a', 'b']), 1.0)

    def test_no_relevant_docs(self):
        """Test metrics when no relevant documents exist."""
        self.assertEqual(precision(5, set(), self.ranking), 0.0)
        self.assertEqual(recall(5, set(), self.ranking), 0.0)
        self.assertEqual(reciprocal_rank(5, set(), self.ranking), 0.0)
        self.assertEqual(average_precision(5, set(), self.ranking), 0.0)

    def test_empty_ranking(self):
        """Test metrics with nothing retrieved."""
        self.assertEqual(precision(5, self.relevant, []), 0.0)
        self.assertEqual(recall(5, self.relevant, []), 0.0)
        self.assertEqual(reciprocal_rank(5, self.relevant, []), 0.0)
        self.assertEqual(average_precision(5, self.relevant, []), 0.0)

    def test_invalid_cut(self):
        with self.assertRaises(ValueError):
            precision(0, self.relevant, self.ranking)

    def test_evaluate_query(self):
        """Test that a metric row carries every metric for one query."""
        row = evaluate_query(7, 5, self.relevant, self.ranking)
        self.assertIsInstance(row, MetricRow)
        self.assertEqual(row.query_ordinal, 7)
        self.assertEqual(row.value(Metric.MRR), 0.5)
        self.assertEqual(row.value(Metric.RECALL), 1.0)
        self.assertAlmostEqual(row.value(Metric.PRECISION), 0.4)
        self.assertAlmostEqual(row.value(Metric.MAP), 0.45)


class TestMean(unittest.TestCase):
    """Test cases for the zero-excluding mean."""

    def test_zeros_are_excluded(self):
        self.assertEqual(mean([0.0, 0.0, 1.0]), 1.0)
        self.assertAlmostEqual(mean([0.0, 0.5, 1.0]), 0.75)

    def test_all_zero_or_empty(self):
        self.assertEqual(mean([]), 0.0)
        self.assertEqual(mean([0.0, 0.0]), 0.0)

    def test_returns_python_float(self):
        self.assertIsInstance(mean([0.25, 0.75]), float)


class TestMetricLabels(unittest.TestCase):

    def test_labels(self):
        self.assertEqual(Metric.PRECISION.label(10), 'P@10')
        self.assertEqual(Metric.RECALL.label(5), 'R@5')
        self.assertEqual(Metric.MAP.label(10), 'MAP@10')
        self.assertEqual(Metric.MRR.label(10), 'MRR')

    def test_file_tokens(self):
        self.assertEqual(Metric.PRECISION.file_token(10), 'p10')
        self.assertEqual(Metric.MAP.file_token(20), 'map20')
        self.assertEqual(Metric.MRR.file_token(10), 'mrr')


if __name__ == '__main__':
    unittest.main()
