"""
Scorecard Optimizer - A/B Test Engine

Runs A/B tests between competing weight maps.
Customers are assigned to variants by a deterministic hash, so the same
customer always lands in the same variant of a given test.

Tests live for the lifetime of the manager; nothing is persisted.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, List, Any, Sequence, Union, Mapping, Callable

from .confidence_engine import ConfidenceEngine, ConversionCounts

logger = logging.getLogger('scorecard.abtest.engine')


STATUS_ACTIVE = 'active'
STATUS_PAUSED = 'paused'
STATUS_COMPLETED = 'completed'
VALID_STATUSES = (STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED)

DEFAULT_VARIANT_NAME = 'default'


@dataclass
class ABTestVariant:
    """One weight configuration under test."""
    name: str
    weights: Dict[str, float] = field(default_factory=dict)


@dataclass
class VariantStats:
    """Running counters for a variant."""
    conversions: int = 0
    total: int = 0


@dataclass
class ABTestConfig:
    """A/B test configuration and running counters."""
    name: str
    variants: List[ABTestVariant]
    allocation: List[float]     # percentages, sum to 100
    start_date: datetime
    status: str = STATUS_ACTIVE  # active, paused, completed
    results: Dict[str, VariantStats] = field(default_factory=dict)


@dataclass
class VariantResult:
    """Analysis of a single variant."""
    conversions: int
    total: int
    conversion_rate: float
    ci_lower: float
    ci_upper: float


@dataclass
class ABTestReport:
    """Complete A/B test analysis results."""
    test_name: str
    results: Dict[str, VariantResult] = field(default_factory=dict)
    control: Optional[str] = None
    best_performer: Optional[str] = None
    recommendation: Optional[str] = None

    # Only set when more than one variant was compared
    p_value: Optional[float] = None
    significant: Optional[bool] = None

    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.error:
            return {'test_name': self.test_name, 'error': self.error}

        analysis = {
            'control': self.control,
            'best_performer': self.best_performer,
            'recommendation': self.recommendation,
        }
        if self.p_value is not None:
            analysis['p_value'] = self.p_value
            analysis['significant'] = self.significant

        return {
            'test_name': self.test_name,
            'results': {
                name: {
                    'conversions': r.conversions,
                    'total': r.total,
                    'conversion_rate': r.conversion_rate,
                    'ci_lower': r.ci_lower,
                    'ci_upper': r.ci_upper,
                } for name, r in self.results.items()
            },
            'analysis': analysis,
        }


def _to_int32(value: int) -> int:
    """Wrap an integer to signed 32 bits."""
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def customer_hash(text: str) -> int:
    """
    32-bit rolling string hash (h * 31 + c over UTF-16 code units).

    Wraps to signed 32 bits after every character.
    """
    # Lone surrogates hash as their own code unit
    data = text.encode('utf-16-le', 'surrogatepass')
    h = 0

    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = _to_int32((_to_int32(h << 5) - h) + code)

    return h


def hash_bucket(customer_id: str, test_name: str) -> int:
    """Percentile bucket (0-99) for a customer within a test."""
    # abs() before modulo matches a truncating remainder on negatives
    return abs(customer_hash(f"{customer_id}:{test_name}")) % 100


class ABTestManager:
    """
    Manages A/B tests of scoring weights.

    Features:
    - Set up tests with any number of variants and traffic allocation
    - Deterministic customer-to-variant assignment
    - Conversion tracking
    - Significance analysis with recommendations

    Counters are updated under a per-test lock so one manager can serve
    concurrent callers.
    """

    def __init__(
        self,
        default_weights: Optional[Mapping[str, float]] = None,
        weights_provider: Optional[Callable[[], Mapping[str, float]]] = None,
        confidence_engine: Optional[ConfidenceEngine] = None,
        significance_level: float = 0.05
    ):
        """
        Initialize the A/B test manager.

        Args:
            default_weights: Weights of the fallback variant for unknown tests
            weights_provider: Callable returning the live fallback weights;
                takes precedence over default_weights
            confidence_engine: Statistics helper (z = 1.96 by default)
            significance_level: p-value below which a winner is recommended
        """
        self.default_weights = dict(default_weights or {})
        self.weights_provider = weights_provider
        self.confidence_engine = confidence_engine or ConfidenceEngine()
        self.significance_level = significance_level

        self._tests: Dict[str, ABTestConfig] = {}
        self._test_locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _coerce_variant(self, variant: Union[ABTestVariant, Mapping[str, Any]]) -> ABTestVariant:
        if isinstance(variant, ABTestVariant):
            return variant
        return ABTestVariant(
            name=str(variant['name']),
            weights=dict(variant.get('weights') or {})
        )

    def setup_test(
        self,
        name: str,
        variants: Sequence[Union[ABTestVariant, Mapping[str, Any]]],
        allocation: Optional[Sequence[float]] = None
    ) -> Optional[ABTestConfig]:
        """
        Set up an A/B test.

        An existing test with the same name is replaced.

        Args:
            name: Test name
            variants: Variants in order; the first is the control
            allocation: Traffic percentages per variant (equal split if
                omitted); rescaled to sum to 100

        Returns:
            Created ABTestConfig, or None if the input is invalid
        """
        try:
            if not variants:
                raise ValueError("No variants provided for A/B test")

            variant_list = [self._coerce_variant(v) for v in variants]

            if allocation is None:
                use_allocation = [100.0 / len(variant_list)] * len(variant_list)
            else:
                use_allocation = [float(a) for a in allocation]

            if len(use_allocation) != len(variant_list):
                raise ValueError(
                    f"Allocation has {len(use_allocation)} entries "
                    f"for {len(variant_list)} variants"
                )

            total = sum(use_allocation)
            if total <= 0:
                raise ValueError(f"Allocation must sum to a positive value, got {total}")

            if abs(total - 100.0) > 0.001:
                use_allocation = [a * 100.0 / total for a in use_allocation]

        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error setting up A/B test '{name}': {e}")
            return None

        config = ABTestConfig(
            name=name,
            variants=variant_list,
            allocation=use_allocation,
            start_date=datetime.now(),
            status=STATUS_ACTIVE,
            results={v.name: VariantStats() for v in variant_list}
        )

        with self._registry_lock:
            if name in self._tests:
                logger.warning(f"A/B test '{name}' already exists and will be replaced")
            self._tests[name] = config
            self._test_locks[name] = threading.Lock()

        logger.info(f"A/B test '{name}' set up with {len(variant_list)} variants")
        return config

    def get_test(self, name: str) -> Optional[ABTestConfig]:
        """Get a test configuration by name."""
        with self._registry_lock:
            return self._tests.get(name)

    def list_tests(self) -> List[str]:
        """Names of all configured tests, in creation order."""
        with self._registry_lock:
            return list(self._tests)

    def _lookup(self, name: str):
        with self._registry_lock:
            return self._tests.get(name), self._test_locks.get(name)

    def _default_variant(self) -> ABTestVariant:
        if self.weights_provider is not None:
            weights = self.weights_provider()
        else:
            weights = self.default_weights
        return ABTestVariant(name=DEFAULT_VARIANT_NAME, weights=dict(weights))

    def assign_variant(self, test_name: str, customer_id: str) -> ABTestVariant:
        """
        Assign a customer to a variant.

        The bucket for (customer, test) is fixed, so repeated calls return
        the same variant. Each call counts one assignment.

        Args:
            test_name: Test name
            customer_id: Customer identifier

        Returns:
            Assigned variant; the default variant if the test is unknown
        """
        config, lock = self._lookup(test_name)
        if config is None:
            logger.error(f"Error assigning variant: A/B test '{test_name}' not found")
            return self._default_variant()

        bucket = hash_bucket(str(customer_id), test_name)

        with lock:
            cumulative = 0.0
            for variant, share in zip(config.variants, config.allocation):
                cumulative += share
                if bucket < cumulative:
                    config.results[variant.name].total += 1
                    return variant

        logger.warning(
            f"Bucket {bucket} fell outside allocation of '{test_name}'; using first variant"
        )
        return config.variants[0]

    def record_conversion(
        self,
        test_name: str,
        variant_name: str,
        converted: bool = True
    ) -> bool:
        """
        Record a conversion for a variant.

        Args:
            test_name: Test name
            variant_name: Variant name
            converted: Whether the customer converted

        Returns:
            True if recorded, False if the test or variant is unknown
        """
        config, lock = self._lookup(test_name)
        if config is None:
            logger.error(f"Error recording conversion: A/B test '{test_name}' not found")
            return False

        with lock:
            stats = config.results.get(variant_name)
            if stats is None:
                logger.error(
                    f"Error recording conversion: variant '{variant_name}' "
                    f"not found in test '{test_name}'"
                )
                return False

            if converted:
                stats.conversions += 1

        return True

    def analyze_results(self, test_name: str) -> ABTestReport:
        """
        Analyze an A/B test.

        The control is the first configured variant. The best performer
        has the highest conversion rate (first wins ties). With two or more
        variants, a chi-squared test between them decides the
        recommendation.

        Args:
            test_name: Test name

        Returns:
            ABTestReport; its error field is set if the test is unknown
        """
        config, lock = self._lookup(test_name)
        if config is None:
            message = f"A/B test '{test_name}' not found"
            logger.error(f"Error analyzing A/B test results: {message}")
            return ABTestReport(test_name=test_name, error=message)

        with lock:
            snapshot = {
                name: (stats.conversions, stats.total)
                for name, stats in config.results.items()
            }

        results: Dict[str, VariantResult] = {}
        for name, (conversions, total) in snapshot.items():
            if total > 0:
                rate = conversions / total
                ci_lower, ci_upper = self.confidence_engine.wilson_interval(conversions, total)
                results[name] = VariantResult(conversions, total, rate, ci_lower, ci_upper)
            else:
                results[name] = VariantResult(0, 0, 0.0, 0.0, 0.0)

        control = None
        best_performer = None
        best_rate = None
        for name, result in results.items():
            if control is None:
                control = name
            if best_rate is None or result.conversion_rate > best_rate:
                best_rate = result.conversion_rate
                best_performer = name

        report = ABTestReport(
            test_name=test_name,
            results=results,
            control=control,
            best_performer=best_performer,
            recommendation=best_performer
        )

        if len(results) > 1 and control in results:
            control_result = results[control]
            best_result = results[best_performer]

            p_value = self.confidence_engine.chi_squared_p_value(
                ConversionCounts(control_result.conversions, control_result.total),
                ConversionCounts(best_result.conversions, best_result.total)
            )
            significant = p_value < self.significance_level

            report.p_value = p_value
            report.significant = significant
            report.recommendation = best_performer if significant else control

        logger.debug(
            f"Analyzed '{test_name}': best={best_performer}, "
            f"p={report.p_value}, recommendation={report.recommendation}"
        )
        return report

    def generate_report(self, test_name: str) -> str:
        """Generate a human-readable A/B test report."""
        report = self.analyze_results(test_name)

        if report.error:
            return f"A/B TEST REPORT: {report.error}"

        config = self.get_test(test_name)

        lines = []
        lines.append("=" * 60)
        lines.append(f"A/B TEST REPORT: {test_name}")
        lines.append("=" * 60)
        lines.append(f"Status: {config.status.upper()}")
        lines.append(f"Started: {config.start_date:%Y-%m-%d %H:%M:%S}")
        lines.append("")

        lines.append("VARIANTS:")
        lines.append("-" * 60)
        for variant, share in zip(config.variants, config.allocation):
            r = report.results.get(variant.name)
            if r is None:
                continue
            marker = "*" if variant.name == report.best_performer else " "
            lines.append(
                f"{marker} {variant.name:15} alloc={share:5.1f}%  "
                f"{r.conversions:>5}/{r.total:<5}  "
                f"rate={r.conversion_rate:.1%}  "
                f"95% CI=[{r.ci_lower:.1%}, {r.ci_upper:.1%}]"
            )
        lines.append("")

        lines.append("SIGNIFICANCE:")
        if report.p_value is None:
            lines.append("  Single variant - no comparison")
        else:
            lines.append(f"  Control: {report.control}")
            lines.append(f"  Best performer: {report.best_performer}")
            lines.append(f"  P-value: {report.p_value:.4f}")
            lines.append(f"  Significant: {'YES' if report.significant else 'NO'}")

            control_rate = report.results[report.control].conversion_rate
            best_rate = report.results[report.best_performer].conversion_rate
            if not report.significant and best_rate > control_rate:
                needed = self.confidence_engine.required_sample_size(
                    control_rate, best_rate - control_rate, self.significance_level
                )
                lines.append(f"  Samples needed per variant: {needed}")
        lines.append("")

        lines.append("RECOMMENDATION:")
        lines.append(f"  {report.recommendation}")
        lines.append("")
        lines.append("* = best performer")

        return "\n".join(lines)
