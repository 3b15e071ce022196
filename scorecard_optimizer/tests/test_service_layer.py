"""
Scorecard Optimizer - Unit Tests for Service Layer

Tests for configuration, the database layer, the scorecard service and
the command line interface.
"""

import contextlib
import io
import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from scorecard_optimizer.__main__ import main
from scorecard_optimizer.utils.config import DEFAULT_CONFIG, deep_merge, load_config
from scorecard_optimizer.utils.logging import (
    setup_logging, shutdown_logging, get_optimizer_logger, get_abtest_logger
)
from scorecard_optimizer.data.database import DatabaseManager, init_database
from scorecard_optimizer.data.repositories import OptimizationRepository
from scorecard_optimizer.core.optimizer.ab_test_engine import ABTestVariant
from scorecard_optimizer.core.optimizer.scorecard_service import ScorecardService


CSV_ROWS = [
    'customer_id,productUsageFrequency,npsScore,churned',
    'c1,0.9,0.8,0',
    'c2,0.8,0.9,0',
    'c3,0.7,0.6,0',
    'c4,0.3,0.2,1',
    'c5,0.2,0.3,1',
    'c6,0.1,0.1,1',
]


def make_records():
    return [
        {'customer_id': f'c{i}', 'productUsageFrequency': i / 9, 'npsScore': (i % 3) / 2,
         'churned': 1 if i < 5 else 0}
        for i in range(10)
    ]


class TestConfig(unittest.TestCase):
    """Tests for configuration loading."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, name, text):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def test_deep_merge(self):
        merged = deep_merge({'a': {'x': 1, 'y': 2}, 'b': 1}, {'a': {'y': 3}})
        self.assertEqual(merged, {'a': {'x': 1, 'y': 3}, 'b': 1})

    def test_defaults(self):
        config = load_config()
        self.assertEqual(config['scoring']['threshold'], 0.5)
        self.assertEqual(config['ab_testing']['significance_level'], 0.05)
        self.assertIsNone(config['database']['path'])

    def test_override_file(self):
        path = self._write('custom.yaml', 'scoring:\n  threshold: 0.7\n')
        config = load_config(path)
        self.assertEqual(config['scoring']['threshold'], 0.7)
        self.assertEqual(config['scoring']['fallback_score'], 50.0)

    def test_fresh_copy_each_call(self):
        first = load_config()
        first['scoring']['threshold'] = 0.9
        self.assertEqual(load_config()['scoring']['threshold'], 0.5)
        self.assertEqual(DEFAULT_CONFIG['scoring']['threshold'], 0.5)

    def test_invalid_yaml(self):
        path = self._write('broken.yaml', 'scoring: [unclosed\n')
        with self.assertLogs('scorecard.config', level='ERROR'):
            config = load_config(path)
        self.assertEqual(config['scoring']['threshold'], 0.5)


class TestLogging(unittest.TestCase):
    """Tests for the logging facility."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        shutdown_logging()
        self.tmpdir.cleanup()

    def test_unconfigured_logger(self):
        self.assertEqual(get_optimizer_logger().name, 'scorecard.optimizer')

    def test_category_files(self):
        manager = setup_logging(log_dir=self.tmpdir.name, console_level='WARNING')

        logger = get_abtest_logger()
        self.assertFalse(logger.propagate)
        logger.info('assignment started')

        for handler in manager.handlers.values():
            handler.flush()
        for handler in logger.handlers:
            handler.flush()

        engine_logs = list(Path(self.tmpdir.name, 'engine').glob('abtest_*.log'))
        self.assertEqual(len(engine_logs), 1)
        self.assertIn('assignment started', engine_logs[0].read_text())
        self.assertTrue(Path(self.tmpdir.name, 'combined').is_dir())

    def test_shutdown_restores_propagation(self):
        setup_logging(log_dir=self.tmpdir.name)
        shutdown_logging()
        self.assertTrue(get_optimizer_logger().propagate)


class TestDatabaseManager(unittest.TestCase):
    """Tests for DatabaseManager class."""

    def setUp(self):
        self.db = DatabaseManager(in_memory=True)
        self.db.initialize()

    def tearDown(self):
        self.db.close()

    def test_initialization(self):
        self.assertTrue(self.db._initialized)
        self.assertTrue(self.db.is_memory)

    def test_no_path_is_memory(self):
        db = DatabaseManager()
        self.assertTrue(db.is_memory)
        db.close()

    def test_stats(self):
        stats = self.db.get_stats()
        self.assertEqual(stats['optimization_runs_count'], 0)

    def test_file_database(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db = init_database(os.path.join(tmpdir, 'history', 'runs.db'))
            self.assertFalse(db.is_memory)
            self.assertEqual(db.get_stats()['optimization_runs_count'], 0)
            db.close()

    def test_repository_on_session(self):
        with self.db.get_session() as session:
            repo = OptimizationRepository(session)
            self.assertEqual(repo.get_run_count(), 0)
            self.assertIsNone(repo.get_latest())


class TestScorecardService(unittest.TestCase):
    """Tests for ScorecardService."""

    def setUp(self):
        self.service = ScorecardService()

    def test_scores_with_default_weights(self):
        record = {name: 1.0 for name in DEFAULT_CONFIG['optimizer']['default_weights']}
        result = self.service.score(record)
        self.assertAlmostEqual(result.score, 100.0)
        self.assertEqual(result.prediction, 1)

    def test_optimize_updates_scoring_weights(self):
        result = self.service.optimize(make_records(), 'churned')
        self.assertTrue(result.succeeded)
        self.assertEqual(set(self.service.get_weights()), {'productUsageFrequency', 'npsScore'})

    def test_optimize_search(self):
        service = ScorecardService(config=deep_merge(DEFAULT_CONFIG, {
            'optimizer': {'default_weights': {'productUsageFrequency': 0.5, 'npsScore': 0.5}}
        }))
        result = service.optimize(make_records(), 'churned', method='search',
                                  iterations=3, population_size=4, seed=5)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.iterations, 3)

    def test_fallback_variant_follows_optimized_weights(self):
        self.service.optimize(make_records(), 'churned')

        variant = self.service.assign_variant('missing', 'c1')

        self.assertEqual(variant.weights, self.service.get_weights())
        self.assertEqual(set(variant.weights), {'productUsageFrequency', 'npsScore'})

    def test_unknown_method(self):
        with self.assertRaises(ValueError):
            self.service.optimize(make_records(), 'churned', method='bayesian')

    def test_runs_stored_with_session(self):
        db = DatabaseManager(in_memory=True)
        db.initialize()
        session = db.get_new_session()
        try:
            service = ScorecardService(session=session)
            service.optimize(make_records(), 'churned')
            self.assertEqual(service.get_status().runs_stored, 1)
        finally:
            session.close()
            db.close()

    def test_status_without_database(self):
        status = self.service.get_status()
        self.assertIsNone(status.runs_stored)
        self.assertEqual(status.runs_this_session, 0)

    def test_ab_test_flow(self):
        variants = [ABTestVariant('A', {'npsScore': 1}), ABTestVariant('B', {'productUsageFrequency': 1})]
        self.assertIsNotNone(self.service.setup_ab_test('flow', variants))

        variant = self.service.assign_variant('flow', 'cust_1')
        self.assertTrue(self.service.record_conversion('flow', variant.name))

        report = self.service.analyze_ab_test('flow')
        self.assertEqual(report.results[variant.name].conversions, 1)

    def test_services_are_independent(self):
        other = ScorecardService()
        self.service.setup_ab_test('mine', [ABTestVariant('A', {'npsScore': 1})])
        self.assertEqual(other.ab_manager.list_tests(), [])

    def test_full_report(self):
        self.service.optimize(make_records(), 'churned')
        self.service.setup_ab_test('report', [ABTestVariant('A', {'npsScore': 1})])
        report = self.service.generate_full_report()
        self.assertIn('SCORECARD OPTIMIZER STATUS', report)
        self.assertIn('A/B TEST REPORT: report', report)


class TestCommandLine(unittest.TestCase):
    """Tests for the command line interface."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.csv_path = os.path.join(self.tmpdir.name, 'customers.csv')
        with open(self.csv_path, 'w') as f:
            f.write('\n'.join(CSV_ROWS) + '\n')

    def tearDown(self):
        self.tmpdir.cleanup()

    def _run(self, argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(argv)
        return code, out.getvalue()

    def test_optimize(self):
        weights_path = os.path.join(self.tmpdir.name, 'weights.json')
        code, output = self._run(['optimize', '--data', self.csv_path, '--target', 'churned',
                                  '-o', weights_path])

        self.assertEqual(code, 0)
        self.assertIn('WEIGHT OPTIMIZATION REPORT', output)
        with open(weights_path) as f:
            self.assertEqual(sum(json.load(f).values()), 100)

    def test_optimize_missing_file(self):
        code, output = self._run(['optimize', '--data', 'no_such.csv', '--target', 'churned'])
        self.assertEqual(code, 1)
        self.assertIn('File not found', output)

    def test_score(self):
        code, output = self._run(['score', '--data', self.csv_path, '--threshold', '0.4'])
        self.assertEqual(code, 0)
        self.assertIn('c1', output)
        self.assertIn('customers healthy', output)

    def test_abtest(self):
        code, output = self._run(['abtest', '--customers', '500', '--rates', '0.1,0.4', '--seed', '1'])
        self.assertEqual(code, 0)
        self.assertIn('A/B TEST REPORT: simulated', output)

    def test_abtest_bad_rates(self):
        code, output = self._run(['abtest', '--rates', 'high,low'])
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
