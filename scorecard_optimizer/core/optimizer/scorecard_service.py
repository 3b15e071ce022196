"""
Scorecard Optimizer - Scorecard Service

Coordinates the optimizer components:
- Weight optimization
- Customer scoring and explanations
- A/B testing of weight maps
- Reports
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, List, Mapping, Sequence

from sqlalchemy.orm import Session

from scorecard_optimizer.data.repositories.optimization_repo import OptimizationRepository
from scorecard_optimizer.utils.config import (
    DEFAULT_CONFIG, get_scoring_config, get_optimizer_config, get_ab_testing_config
)
from .ab_test_engine import ABTestManager, ABTestVariant, ABTestConfig, ABTestReport
from .confidence_engine import ConfidenceEngine
from .explainer import ScoreExplainer
from .health_calculator import HealthScoreCalculator
from .scorer import RealTimeScorer, ScoringResult
from .weight_optimizer import WeightOptimizer, OptimizationResult, METHOD_CORRELATION, METHOD_SEARCH

logger = logging.getLogger('scorecard.optimizer.service')


@dataclass
class ServiceStatus:
    """Current status of the scorecard service."""
    weights: Dict[str, float]
    runs_this_session: int
    runs_stored: Optional[int]      # None without a database
    last_method: Optional[str]
    last_score: Optional[float]
    ab_tests: List[str]


class ScorecardService:
    """
    High-level interface over the optimizer components.

    Every service owns its components; two services never share
    weights or A/B tests.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[Session] = None
    ):
        """
        Initialize the scorecard service.

        Args:
            config: Configuration dictionary (defaults if omitted)
            session: SQLAlchemy session for run history (none kept if omitted)
        """
        config = config or DEFAULT_CONFIG
        scoring_cfg = get_scoring_config(config)
        optimizer_cfg = get_optimizer_config(config)
        ab_cfg = get_ab_testing_config(config)

        self.session = session
        self.repo = OptimizationRepository(session) if session is not None else None

        self.optimizer_settings = dict(optimizer_cfg)

        self.calculator = HealthScoreCalculator(
            inverted_features=scoring_cfg.get('inverted_features'),
            fallback_score=scoring_cfg.get('fallback_score', 50.0)
        )
        self.optimizer = WeightOptimizer(
            initial_weights=optimizer_cfg.get('default_weights'),
            calculator=self.calculator,
            repo=self.repo
        )
        self.explainer = ScoreExplainer(self.calculator)
        self.scorer = RealTimeScorer(
            calculator=self.calculator,
            weights_provider=self.optimizer.get_weights,
            explainer=self.explainer,
            threshold=scoring_cfg.get('threshold', 0.5),
            model_name=scoring_cfg.get('model_name', 'weighted')
        )
        self.ab_manager = ABTestManager(
            weights_provider=self.optimizer.get_weights,
            confidence_engine=ConfidenceEngine(z=ab_cfg.get('z_score', 1.96)),
            significance_level=ab_cfg.get('significance_level', 0.05)
        )

    # =========================================
    # Optimization
    # =========================================

    def optimize(
        self,
        records: List[Mapping[str, Any]],
        target_column: str,
        method: str = METHOD_CORRELATION,
        **search_params
    ) -> OptimizationResult:
        """
        Optimize weights from labelled records.

        Args:
            records: Customer feature records including the target
            target_column: Outcome column
            method: 'correlation' or 'search'
            **search_params: Overrides for the search settings
                (iterations, population_size, mutation_rate,
                mutation_strength, seed)

        Returns:
            OptimizationResult
        """
        if method == METHOD_CORRELATION:
            result = self.optimizer.optimize_from_correlations(records, target_column)
        elif method == METHOD_SEARCH:
            params = {
                key: self.optimizer_settings.get(key)
                for key in ('iterations', 'population_size', 'mutation_rate',
                            'mutation_strength', 'seed')
                if self.optimizer_settings.get(key) is not None
            }
            params.update({k: v for k, v in search_params.items() if v is not None})
            result = self.optimizer.optimize_search(records, target_column, **params)
        else:
            raise ValueError(f"Unknown optimization method '{method}'")

        if self.session is not None:
            self.session.commit()

        return result

    def get_weights(self) -> Dict[str, float]:
        return self.optimizer.get_weights()

    # =========================================
    # Scoring
    # =========================================

    def score(self, record: Mapping[str, Any], explain: bool = True) -> ScoringResult:
        return self.scorer.score_customer(record, explain=explain)

    def batch_score(self, records: List[Mapping[str, Any]]) -> List[ScoringResult]:
        return self.scorer.batch_score(records)

    # =========================================
    # A/B Testing
    # =========================================

    def setup_ab_test(
        self,
        name: str,
        variants: Sequence[Any],
        allocation: Optional[Sequence[float]] = None
    ) -> Optional[ABTestConfig]:
        return self.ab_manager.setup_test(name, variants, allocation)

    def assign_variant(self, test_name: str, customer_id: str) -> ABTestVariant:
        return self.ab_manager.assign_variant(test_name, customer_id)

    def record_conversion(self, test_name: str, variant_name: str, converted: bool = True) -> bool:
        return self.ab_manager.record_conversion(test_name, variant_name, converted)

    def analyze_ab_test(self, test_name: str) -> ABTestReport:
        return self.ab_manager.analyze_results(test_name)

    # =========================================
    # Status and Reports
    # =========================================

    def get_status(self) -> ServiceStatus:
        history = self.optimizer.history
        last = history[-1] if history else None

        return ServiceStatus(
            weights=self.optimizer.get_weights(),
            runs_this_session=len(history),
            runs_stored=self.repo.get_run_count() if self.repo is not None else None,
            last_method=last.method if last else None,
            last_score=last.score if last else None,
            ab_tests=self.ab_manager.list_tests()
        )

    def generate_full_report(self) -> str:
        """Generate a report covering weights, recent runs and all A/B tests."""
        status = self.get_status()

        lines = []
        lines.append("=" * 60)
        lines.append("SCORECARD OPTIMIZER STATUS")
        lines.append("=" * 60)
        lines.append("")

        lines.append("CURRENT WEIGHTS:")
        lines.append("-" * 40)
        for feature, weight in sorted(status.weights.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"  {feature:25} {weight:6.1%}")
        lines.append("")

        lines.append("OPTIMIZATION:")
        lines.append("-" * 40)
        lines.append(f"  Runs this session: {status.runs_this_session}")
        if status.runs_stored is not None:
            lines.append(f"  Runs stored: {status.runs_stored}")
        if status.last_method:
            score = f"{status.last_score:.3f}" if status.last_score is not None else "n/a"
            lines.append(f"  Last run: {status.last_method} (score {score})")
        lines.append("")

        if status.ab_tests:
            for name in status.ab_tests:
                lines.append(self.ab_manager.generate_report(name))
                lines.append("")
        else:
            lines.append("A/B TESTS: none configured")

        return "\n".join(lines)
