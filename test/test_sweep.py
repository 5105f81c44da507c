"""
Unit tests for the training/test parameter sweep.
"""

import contextlib
import io
import json
import os
import sys
import tempfile
import unittest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from collection_fixtures import write_collection
from eval.metrics import Metric
from eval.tables import read_metadata, read_result_series
from ingest.materialize import ingest_npl_collection
from ingest.npl_loader import JudgedQuery, Query
from sweep import (
    DIRICHLET_GRID,
    JM_GRID,
    TEST_DEPTH,
    ModelFamily,
    ParameterSweepController,
    SweepState,
    select_best,
)
from sweep.cli import main as sweep_main


class FakeEngine:
    """Returns canned rankings keyed by similarity parameter and query text."""

    def __init__(self, rankings):
        self.rankings = rankings
        self.calls = []

    def rank(self, query, similarity, depth):
        self.calls.append((query, similarity, depth))
        value = None if similarity is None else similarity.value
        return list(self.rankings.get(value, {}).get(query, []))[:depth]


def judged(ordinal, text, *relevant):
    return JudgedQuery(Query(ordinal, text), frozenset(relevant))


TRAINING = [judged(1, 'q1', 'd1'), judged(2, 'q2', 'd2')]
TESTING = [judged(3, 'q3', 'd3')]
RANKINGS = {
    None: {'q1': ['d9', 'd1'], 'q2': ['d2']},
    0.5: {'q1': ['d1'], 'q2': ['d2'], 'q3': ['x', 'y', 'd3']},
    0.7: {'q1': ['d1'], 'q2': ['d2'], 'q3': ['d3']},
}


class TestSelectBest(unittest.TestCase):

    def test_first_maximum_wins(self):
        self.assertEqual(select_best([0.2, 0.5, 0.5]), 1)
        self.assertEqual(select_best([0.0, 0.0, 0.0]), 0)
        self.assertEqual(select_best([0.1, 0.3, 0.2]), 1)

    def test_empty_grid(self):
        with self.assertRaises(ValueError):
            select_best([])


class TestModelFamily(unittest.TestCase):

    def test_grids(self):
        self.assertEqual(len(JM_GRID), 11)
        self.assertEqual(JM_GRID[0], 0.0)
        self.assertEqual(JM_GRID[-1], 1.0)
        self.assertEqual(DIRICHLET_GRID, (0, 200, 400, 600, 800, 1000, 1500, 2000, 2500, 3000, 4000))

    def test_labels(self):
        self.assertEqual(ModelFamily.JELINEK_MERCER.candidate_label(0.3), 'lambda_0.3')
        self.assertEqual(ModelFamily.JELINEK_MERCER.selected_label(0.3), 'jm_0.3')
        self.assertEqual(ModelFamily.DIRICHLET.candidate_label(200), 'mu_200')
        self.assertEqual(ModelFamily.DIRICHLET.selected_label(200), 'mu_200')

    def test_jm_zero_has_no_similarity(self):
        self.assertIsNone(ModelFamily.JELINEK_MERCER.similarity(0.0))
        self.assertEqual(ModelFamily.DIRICHLET.similarity(0).value, 0.0)


class TestParameterSweepController(unittest.TestCase):
    """Test cases for the train/select/test/report cycle."""

    def setUp(self):
        self.engine = FakeEngine(RANKINGS)
        self.controller = ParameterSweepController(
            self.engine, ModelFamily.JELINEK_MERCER, Metric.MRR, 5, progress=False
        )
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_tie_goes_to_earliest_candidate(self):
        result = self.controller.run(TRAINING, TESTING, train_range='1-2', test_range='3')
        self.assertEqual(result.training_means[0.5], 1.0)
        self.assertEqual(result.training_means[0.7], 1.0)
        self.assertEqual(result.best_candidate, 0.5)
        self.assertEqual(result.best_index, 5)

    def test_training_means(self):
        result = self.controller.run(TRAINING, TESTING)
        self.assertEqual(result.training_means[0.0], 0.75)
        self.assertEqual(result.training_means[0.1], 0.0)
        self.assertEqual(len(result.training), len(JM_GRID))

    def test_engine_calls(self):
        self.controller.run(TRAINING, TESTING)
        first_query, first_similarity, first_depth = self.engine.calls[0]
        self.assertEqual(first_query, 'q1')
        self.assertIsNone(first_similarity)
        self.assertEqual(first_depth, 5)
        query, similarity, depth = self.engine.calls[-1]
        self.assertEqual(query, 'q3')
        self.assertEqual(similarity.value, 0.5)
        self.assertEqual(depth, TEST_DEPTH)
        self.assertEqual(len(self.engine.calls), len(JM_GRID) * len(TRAINING) + len(TESTING))

    def test_test_result(self):
        result = self.controller.run(TRAINING, TESTING)
        self.assertEqual(result.test.ordinals, [3])
        self.assertAlmostEqual(result.test.mean, 1.0 / 3.0)

    def test_state_transitions(self):
        self.assertEqual(self.controller.state, SweepState.IDLE)
        result = self.controller.run(TRAINING, TESTING, train_range='1-2', test_range='3')
        self.assertEqual(self.controller.state, SweepState.TESTING)
        self.controller.report(result, self.tmp.name)
        self.assertEqual(self.controller.state, SweepState.DONE)

    def test_engine_failure_aborts(self):
        class BrokenEngine:
            def rank(self, query, similarity, depth):
                raise RuntimeError('index unavailable')

        controller = ParameterSweepController(
            BrokenEngine(), ModelFamily.DIRICHLET, Metric.PRECISION, 10, progress=False
        )
        with self.assertRaises(RuntimeError):
            controller.run(TRAINING, TESTING)
        self.assertEqual(controller.state, SweepState.TRAINING)

    def test_invalid_cut(self):
        with self.assertRaises(ValueError):
            ParameterSweepController(self.engine, ModelFamily.JELINEK_MERCER, Metric.MRR, 0)

    def test_report_tables(self):
        result = self.controller.run(TRAINING, TESTING, train_range='1-2', test_range='3')
        report = self.controller.report(result, self.tmp.name)
        self.assertEqual(os.path.basename(report.training_table), 'npl.jm.training.1-2.test.3.mrr.training.csv')
        self.assertEqual(os.path.basename(report.test_table), 'npl.jm.training.1-2.test.3.mrr.test.csv')

        with open(report.training_table, encoding='utf-8') as f:
            training_lines = f.read().splitlines()
        header = training_lines[0].split(',')
        self.assertEqual(header[0], 'Query')
        self.assertEqual(header[1:], [ModelFamily.JELINEK_MERCER.candidate_label(c) for c in JM_GRID])
        self.assertEqual([line.split(',')[0] for line in training_lines[1:]], ['1', '2', 'Promedio'])

        with open(report.test_table, encoding='utf-8') as f:
            test_lines = f.read().splitlines()
        self.assertEqual(test_lines[0], 'jm_0.5,MRR')
        self.assertEqual(test_lines[1], '3,' + repr(1.0 / 3.0))
        self.assertEqual(test_lines[2], 'Promedio,' + repr(1.0 / 3.0))
        self.assertEqual(list(read_result_series(report.test_table)), [1.0 / 3.0])

        metadata = read_metadata(report.test_table)
        self.assertEqual(metadata.metric, 'MRR')
        self.assertEqual(metadata.test_range, '3')
        self.assertEqual(metadata.parameter, 0.5)

    def test_training_plot(self):
        from sweep.plot import plot_training_curve

        result = self.controller.run(TRAINING, TESTING, train_range='1-2', test_range='3')
        plot_path = plot_training_curve(result, os.path.join(self.tmp.name, 'plots', 'training.png'), dpi=50)
        self.assertTrue(os.path.exists(plot_path))
        self.assertGreater(os.path.getsize(plot_path), 0)


class TestSweepCommand(unittest.TestCase):
    """End-to-end tests for the sweep command over a small collection."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.paths = write_collection(self.tmp.name)
        self.index_dir = os.path.join(self.tmp.name, 'index')
        self.outdir = os.path.join(self.tmp.name, 'out')
        ingest_npl_collection(self.index_dir, docs_path=self.paths['doc-text'], analyzer='simple')

    def _args(self, *model):
        return list(model) + [
            '-cut', '2',
            '-metrica', 'P',
            '-indexin', self.index_dir,
            '-querytext', self.paths['query-text'],
            '-rlvass', self.paths['rlv-ass'],
            '-outdir', self.outdir,
        ]

    def _run(self, argv):
        out = io.StringIO()
        err = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = sweep_main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_dirichlet_sweep_writes_tables(self):
        code, output, _ = self._run(self._args('-evaldir', '1-2', '3-4'))
        self.assertEqual(code, 0)
        test_table = os.path.join(self.outdir, 'npl.dir.training.1-2.test.3-4.p2.test.csv')
        training_table = os.path.join(self.outdir, 'npl.dir.training.1-2.test.3-4.p2.training.csv')
        self.assertTrue(os.path.exists(test_table))
        self.assertTrue(os.path.exists(training_table))
        self.assertIn('Promedio', output)
        self.assertEqual(len(read_result_series(test_table)), 2)

    def test_jm_sweep_json(self):
        code, output, _ = self._run(self._args('-evaljm', '1-2', '3-4') + ['--json'])
        self.assertEqual(code, 0)
        payload = json.loads(output[output.index('{'):])
        self.assertEqual(payload['family'], 'jm')
        self.assertEqual(payload['metric'], 'P@2')
        self.assertEqual(len(payload['training_means']), len(JM_GRID))

    def test_overlapping_ranges_are_rejected(self):
        with self.assertRaises(SystemExit) as ctx:
            self._run(self._args('-evaljm', '1-3', '3-4'))
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_cut_is_rejected(self):
        argv = self._args('-evaljm', '1-2', '3-4')
        argv[argv.index('-cut') + 1] = '0'
        with self.assertRaises(SystemExit) as ctx:
            self._run(argv)
        self.assertEqual(ctx.exception.code, 1)

    def test_model_is_required(self):
        with self.assertRaises(SystemExit) as ctx:
            self._run(self._args())
        self.assertEqual(ctx.exception.code, 1)

    def test_range_past_collection_end(self):
        code, _, err = self._run(self._args('-evaljm', '1-2', '3-9'))
        self.assertEqual(code, 2)
        self.assertIn('Error:', err)


if __name__ == '__main__':
    unittest.main()
