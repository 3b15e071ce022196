"""
Scorecard Optimizer - Unit Tests for A/B Testing

Tests for the confidence engine and the A/B test manager.
"""

import math
import sys
import threading
import unittest
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from scorecard_optimizer.core.optimizer.confidence_engine import ConfidenceEngine, ConversionCounts
from scorecard_optimizer.core.optimizer.ab_test_engine import (
    ABTestManager, ABTestVariant, customer_hash, hash_bucket, DEFAULT_VARIANT_NAME
)


WEIGHTS_A = {'usage': 60, 'nps': 40}
WEIGHTS_B = {'usage': 30, 'nps': 70}


class TestConfidenceEngine(unittest.TestCase):
    """Tests for ConfidenceEngine."""

    def setUp(self):
        self.engine = ConfidenceEngine()

    def test_normal_cdf(self):
        self.assertAlmostEqual(self.engine.normal_cdf(0.0), 0.5, places=4)
        self.assertAlmostEqual(self.engine.normal_cdf(1.96), 0.975, places=3)
        self.assertAlmostEqual(self.engine.normal_cdf(-1.96), 0.025, places=3)

    def test_chi_squared_cdf(self):
        self.assertAlmostEqual(self.engine.chi_squared_cdf(3.841, 1), 0.95, places=2)
        self.assertAlmostEqual(self.engine.chi_squared_cdf(2.0, 2), 1 - math.exp(-1), places=9)
        self.assertEqual(self.engine.chi_squared_cdf(0.0, 1), 0.0)
        self.assertEqual(self.engine.chi_squared_cdf(-1.0, 3), 0.0)

    def test_wilson_interval(self):
        lower, upper = self.engine.wilson_interval(60, 100)
        self.assertAlmostEqual(lower, 0.502, places=3)
        self.assertAlmostEqual(upper, 0.691, places=3)

    def test_wilson_interval_empty(self):
        self.assertEqual(self.engine.wilson_interval(0, 0), (0.0, 0.0))

    def test_p_value_identical(self):
        counts = ConversionCounts(50, 500)
        self.assertAlmostEqual(self.engine.chi_squared_p_value(counts, counts), 1.0)

    def test_p_value_no_conversions(self):
        """Zero expected cells give p = 1.0 instead of an error."""
        p = self.engine.chi_squared_p_value(ConversionCounts(0, 100), ConversionCounts(0, 100))
        self.assertEqual(p, 1.0)

    def test_p_value_large_difference(self):
        p = self.engine.chi_squared_p_value(ConversionCounts(100, 1000), ConversionCounts(300, 1000))
        self.assertLess(p, 0.001)

    def test_required_sample_size(self):
        self.assertEqual(self.engine.required_sample_size(0.1, 0.0), 10000)
        n = self.engine.required_sample_size(0.10, 0.05)
        self.assertGreater(n, 100)
        self.assertGreater(self.engine.required_sample_size(0.10, 0.05, power=0.90), n)


class TestCustomerHash(unittest.TestCase):
    """Tests for the assignment hash."""

    def test_known_values(self):
        self.assertEqual(customer_hash(''), 0)
        self.assertEqual(customer_hash('a'), 97)
        self.assertEqual(customer_hash('ab'), 3105)

    def test_lone_surrogate(self):
        self.assertEqual(customer_hash('\ud800'), 0xD800)
        self.assertEqual(customer_hash('a\udfff'), 97 * 31 + 0xDFFF)

    def test_wraps_to_int32(self):
        h = customer_hash('customer_with_a_rather_long_identifier:retention-test')
        self.assertGreaterEqual(h, -2 ** 31)
        self.assertLess(h, 2 ** 31)

    def test_bucket_range(self):
        for i in range(500):
            bucket = hash_bucket(f'cust_{i}', 'range')
            self.assertGreaterEqual(bucket, 0)
            self.assertLess(bucket, 100)


class TestABTestManager(unittest.TestCase):
    """Tests for ABTestManager."""

    def setUp(self):
        self.manager = ABTestManager(default_weights={'usage': 100})
        self.variants = [ABTestVariant('A', WEIGHTS_A), ABTestVariant('B', WEIGHTS_B)]

    def _set_counts(self, test_name, counts):
        config = self.manager.get_test(test_name)
        for name, (conversions, total) in counts.items():
            config.results[name].conversions = conversions
            config.results[name].total = total

    def test_setup_equal_split(self):
        config = self.manager.setup_test('split', self.variants)
        self.assertEqual(config.allocation, [50.0, 50.0])
        self.assertEqual(config.status, 'active')
        self.assertEqual(set(config.results), {'A', 'B'})

    def test_setup_rescales_allocation(self):
        variants = self.variants + [ABTestVariant('C', WEIGHTS_A)]
        config = self.manager.setup_test('rescale', variants, [30, 30, 30])
        self.assertAlmostEqual(sum(config.allocation), 100.0, delta=1e-6)
        self.assertAlmostEqual(config.allocation[0], 100.0 / 3)

    def test_setup_accepts_dicts(self):
        config = self.manager.setup_test('dicts', [
            {'name': 'A', 'weights': WEIGHTS_A},
            {'name': 'B', 'weights': WEIGHTS_B},
        ])
        self.assertEqual(config.variants[1].weights, WEIGHTS_B)

    def test_setup_invalid(self):
        self.assertIsNone(self.manager.setup_test('empty', []))
        self.assertIsNone(self.manager.setup_test('mismatch', self.variants, [100]))
        self.assertIsNone(self.manager.setup_test('zero', self.variants, [0, 0]))
        self.assertEqual(self.manager.list_tests(), [])

    def test_setup_replaces_existing(self):
        self.manager.setup_test('dup', self.variants)
        with self.assertLogs('scorecard.abtest.engine', level='WARNING'):
            config = self.manager.setup_test('dup', [ABTestVariant('X', WEIGHTS_A)])
        self.assertIs(self.manager.get_test('dup'), config)
        self.assertEqual(self.manager.list_tests(), ['dup'])

    def test_assignment_is_deterministic(self):
        self.manager.setup_test('stable', self.variants)
        first = self.manager.assign_variant('stable', 'customer-42')
        for _ in range(5):
            self.assertEqual(self.manager.assign_variant('stable', 'customer-42').name, first.name)

    def test_assignment_counts(self):
        self.manager.setup_test('counts', self.variants)
        for i in range(100):
            self.manager.assign_variant('counts', f'cust_{i}')
        config = self.manager.get_test('counts')
        self.assertEqual(sum(s.total for s in config.results.values()), 100)

    def test_distribution(self):
        self.manager.setup_test('dist', self.variants)
        count_a = 0
        for i in range(10000):
            if self.manager.assign_variant('dist', f'cust_{i}').name == 'A':
                count_a += 1
        self.assertGreaterEqual(count_a, 4500)
        self.assertLessEqual(count_a, 5500)

    def test_single_variant_gets_everyone(self):
        self.manager.setup_test('solo', [ABTestVariant('only', WEIGHTS_A)])
        for i in range(50):
            self.assertEqual(self.manager.assign_variant('solo', f'cust_{i}').name, 'only')

    def test_unknown_test_assignment(self):
        variant = self.manager.assign_variant('missing', 'cust_1')
        self.assertEqual(variant.name, DEFAULT_VARIANT_NAME)
        self.assertEqual(variant.weights, {'usage': 100})

    def test_unknown_test_uses_live_weights(self):
        current = {'usage': 60}
        manager = ABTestManager(default_weights={'stale': 100}, weights_provider=lambda: current)

        self.assertEqual(manager.assign_variant('missing', 'cust_1').weights, {'usage': 60})
        current['usage'] = 40
        self.assertEqual(manager.assign_variant('missing', 'cust_1').weights, {'usage': 40})

    def test_assign_lone_surrogate_id(self):
        self.manager.setup_test('odd', self.variants)
        variant = self.manager.assign_variant('odd', 'cust_\ud800')
        self.assertIn(variant.name, ('A', 'B'))
        self.assertEqual(self.manager.assign_variant('odd', 'cust_\ud800').name, variant.name)

    def test_record_conversion(self):
        self.manager.setup_test('conv', self.variants)
        self.assertTrue(self.manager.record_conversion('conv', 'A'))
        self.assertTrue(self.manager.record_conversion('conv', 'A', converted=False))
        self.assertEqual(self.manager.get_test('conv').results['A'].conversions, 1)

    def test_record_conversion_unknown(self):
        self.manager.setup_test('conv', self.variants)
        self.assertFalse(self.manager.record_conversion('missing', 'A'))
        self.assertFalse(self.manager.record_conversion('conv', 'Z'))

    def test_analyze_unknown(self):
        report = self.manager.analyze_results('missing')
        self.assertIsNotNone(report.error)
        self.assertIn('error', report.to_dict())

    def test_analyze_significant_winner(self):
        self.manager.setup_test('win', self.variants)
        self._set_counts('win', {'A': (100, 1000), 'B': (300, 1000)})

        report = self.manager.analyze_results('win')

        self.assertEqual(report.control, 'A')
        self.assertEqual(report.best_performer, 'B')
        self.assertTrue(report.significant)
        self.assertEqual(report.recommendation, 'B')
        self.assertAlmostEqual(report.results['B'].conversion_rate, 0.3)
        self.assertLess(report.results['B'].ci_lower, 0.3)
        self.assertGreater(report.results['B'].ci_upper, 0.3)

    def test_analyze_not_significant(self):
        self.manager.setup_test('close', self.variants)
        self._set_counts('close', {'A': (100, 1000), 'B': (105, 1000)})

        report = self.manager.analyze_results('close')

        self.assertEqual(report.best_performer, 'B')
        self.assertFalse(report.significant)
        self.assertEqual(report.recommendation, 'A')

    def test_analyze_no_data(self):
        """With all rates zero the control is the best performer."""
        self.manager.setup_test('quiet', self.variants)

        report = self.manager.analyze_results('quiet')

        self.assertEqual(report.best_performer, 'A')
        self.assertEqual(report.recommendation, 'A')
        self.assertEqual(report.p_value, 1.0)
        self.assertEqual(report.results['B'].total, 0)

    def test_analyze_tied_rates(self):
        """Equal nonzero rates keep the control as best performer."""
        self.manager.setup_test('tie', self.variants)
        self._set_counts('tie', {'A': (10, 100), 'B': (10, 100)})

        report = self.manager.analyze_results('tie')

        self.assertEqual(report.best_performer, 'A')
        self.assertEqual(report.recommendation, 'A')
        self.assertFalse(report.significant)

    def test_analyze_single_variant(self):
        self.manager.setup_test('solo', [ABTestVariant('only', WEIGHTS_A)])
        report = self.manager.analyze_results('solo')
        self.assertIsNone(report.p_value)
        self.assertEqual(report.recommendation, 'only')
        self.assertNotIn('p_value', report.to_dict()['analysis'])

    def test_concurrent_assignment(self):
        self.manager.setup_test('threads', self.variants)

        def worker(offset):
            for i in range(500):
                self.manager.assign_variant('threads', f'cust_{offset}_{i}')

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        config = self.manager.get_test('threads')
        self.assertEqual(sum(s.total for s in config.results.values()), 4000)

    def test_generate_report(self):
        self.manager.setup_test('report', self.variants)
        self._set_counts('report', {'A': (10, 100), 'B': (12, 100)})

        text = self.manager.generate_report('report')

        self.assertIn('A/B TEST REPORT: report', text)
        self.assertIn('RECOMMENDATION:', text)
        self.assertIn('Samples needed per variant', text)

    def test_generate_report_unknown(self):
        self.assertIn('not found', self.manager.generate_report('missing'))


if __name__ == '__main__':
    unittest.main()
