"""
Scorecard Optimizer - Weight Optimizer

Derives scoring weights from customer outcome data.

Two methods:
- correlation: weight each feature by |correlation| with the target
- search: gradient-free evolutionary search maximizing predictive power
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional, Mapping

from .correlation import feature_correlations, infer_features, pearson_correlation
from .health_calculator import HealthScoreCalculator
from .weight_normalizer import (
    normalize_to_percent, normalize_weights, WeightNormalizationError
)

logger = logging.getLogger('scorecard.optimizer.weights')


METHOD_CORRELATION = 'correlation'
METHOD_SEARCH = 'search'

# Starting weights for the standard customer feature set
DEFAULT_WEIGHTS = {
    'productUsageFrequency': 0.25,
    'supportTicketVolume': 0.15,
    'featureAdoptionRate': 0.20,
    'npsScore': 0.10,
    'contractValue': 0.10,
    'timeSinceLastLogin': 0.20,
}

# Mutations never push a weight below this share
MIN_WEIGHT = 0.001


@dataclass
class OptimizationResult:
    """Results of one weight optimization run."""
    method: str
    weights: Dict[str, int]             # integer weights summing to 100
    correlations: Dict[str, float]      # per-feature |r|, correlation method only
    score: Optional[float]              # predictive power of the weights
    sample_size: int
    target_column: str
    iterations: int = 0
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'method': self.method,
            'weights': dict(self.weights),
            'correlations': dict(self.correlations),
            'score': self.score,
            'sample_size': self.sample_size,
            'target_column': self.target_column,
            'iterations': self.iterations,
            'timestamp': self.timestamp.isoformat(),
            'error': self.error,
        }


class WeightOptimizer:
    """
    Optimizes health score weights from labelled customer records.

    Holds the current fractional weights (summing to 1). Every run updates
    them on success, is appended to the in-process history and, when a
    repository is given, stored.
    """

    def __init__(
        self,
        initial_weights: Optional[Mapping[str, float]] = None,
        calculator: Optional[HealthScoreCalculator] = None,
        repo=None
    ):
        """
        Initialize the optimizer.

        Args:
            initial_weights: Starting weights (defaults to DEFAULT_WEIGHTS)
            calculator: Health score calculator used to evaluate weights
            repo: Optional OptimizationRepository for run history
        """
        if initial_weights is None:
            initial_weights = DEFAULT_WEIGHTS

        self.feature_weights: Dict[str, float] = normalize_weights(initial_weights)
        self.calculator = calculator or HealthScoreCalculator()
        self.repo = repo
        self._history: List[OptimizationResult] = []

    def get_weights(self) -> Dict[str, float]:
        """Current fractional weights."""
        return dict(self.feature_weights)

    @property
    def history(self) -> List[OptimizationResult]:
        return list(self._history)

    def _current_percent(self) -> Dict[str, int]:
        try:
            return normalize_to_percent(self.feature_weights)
        except WeightNormalizationError:
            return {}

    def _labelled(self, records: List[Mapping[str, Any]], target_column: str) -> List[Mapping[str, Any]]:
        return [r for r in records if r.get(target_column) is not None]

    def _failed(
        self,
        method: str,
        target_column: str,
        sample_size: int,
        message: str
    ) -> OptimizationResult:
        logger.error(f"Weight optimization ({method}) failed: {message}")
        return OptimizationResult(
            method=method,
            weights=self._current_percent(),
            correlations={},
            score=None,
            sample_size=sample_size,
            target_column=target_column,
            error=message
        )

    def _finish(self, result: OptimizationResult) -> OptimizationResult:
        self._history.append(result)
        if self.repo is not None:
            self.save_result(result)
        return result

    def optimize_from_correlations(
        self,
        records: List[Mapping[str, Any]],
        target_column: str,
        features: Optional[List[str]] = None
    ) -> OptimizationResult:
        """
        Weight each feature by its correlation magnitude with the target.

        Args:
            records: Customer feature records including the target column
            target_column: Outcome column (e.g. churned)
            features: Features to weight (inferred if omitted)

        Returns:
            OptimizationResult with integer weights summing to 100
        """
        labelled = self._labelled(records, target_column)

        try:
            correlations = feature_correlations(
                labelled, target_column, features=features, absolute=True
            )
            weights = normalize_to_percent(correlations)

        except WeightNormalizationError:
            logger.warning(
                f"No feature correlates with '{target_column}'; keeping current weights"
            )
            return self._finish(self._failed(
                METHOD_CORRELATION, target_column, len(labelled),
                "total feature importance is zero"
            ))

        except (ValueError, TypeError) as e:
            return self._finish(self._failed(
                METHOD_CORRELATION, target_column, len(labelled), str(e)
            ))

        self.feature_weights = normalize_weights(correlations)

        result = OptimizationResult(
            method=METHOD_CORRELATION,
            weights=weights,
            correlations=correlations,
            score=self.evaluate_weights(weights, labelled, target_column),
            sample_size=len(labelled),
            target_column=target_column
        )

        logger.info(
            f"Correlation weights over {result.sample_size} records: "
            f"score={result.score:.3f}"
        )
        return self._finish(result)

    def evaluate_weights(
        self,
        weights: Mapping[str, float],
        records: List[Mapping[str, Any]],
        target_column: str
    ) -> float:
        """
        Score how well weights predict the target.

        Returns the negated correlation between health (0-1) and the
        target, so higher is better when the target marks a bad outcome.
        """
        scores = []
        targets = []

        for record in records:
            target = record.get(target_column)
            if target is None:
                continue
            features = {k: v for k, v in record.items() if k != target_column}
            scores.append(self.calculator.calculate(features, weights) / 100.0)
            targets.append(float(target))

        return -pearson_correlation(scores, targets)

    def _mutate_weights(
        self,
        weights: Dict[str, float],
        rng: random.Random,
        mutation_rate: float,
        mutation_strength: float
    ) -> Dict[str, float]:
        """Create a mutated copy of weights, renormalized to sum to 1."""
        mutated = weights.copy()

        for key in mutated:
            if rng.random() < mutation_rate:
                factor = 1 + rng.uniform(-mutation_strength, mutation_strength)
                mutated[key] = max(MIN_WEIGHT, mutated[key] * factor)

        return normalize_weights(mutated)

    def optimize_search(
        self,
        records: List[Mapping[str, Any]],
        target_column: str,
        iterations: int = 100,
        population_size: int = 20,
        mutation_rate: float = 0.3,
        mutation_strength: float = 0.2,
        seed: Optional[int] = None
    ) -> OptimizationResult:
        """
        Optimize weights using an evolutionary strategy.

        Args:
            records: Customer feature records including the target column
            target_column: Outcome column
            iterations: Number of generations
            population_size: Size of weight population
            mutation_rate: Probability of mutating each weight
            mutation_strength: Magnitude of mutations
            seed: Random seed for reproducible runs

        Returns:
            OptimizationResult with integer weights summing to 100
        """
        labelled = self._labelled(records, target_column)

        try:
            if len(labelled) < 2:
                raise ValueError(
                    f"Need at least 2 records with '{target_column}', got {len(labelled)}"
                )
            features = infer_features(labelled, target_column)
            if not features:
                raise ValueError("No features to optimize")

            # Search over the data's features; unseen ones start at zero
            initial = {f: float(self.feature_weights.get(f, 0.0)) for f in features}
            if sum(initial.values()) <= 0:
                logger.info(
                    f"No current weight matches the data features, "
                    f"starting from an equal split over {len(features)}"
                )
                initial = {f: 1.0 for f in features}
            initial = normalize_weights(initial)

            rng = random.Random(seed)

            baseline = self.evaluate_weights(initial, labelled, target_column)
            logger.info(f"Baseline score: {baseline:.3f}")

            population = [initial]
            while len(population) < population_size:
                population.append(self._mutate_weights(initial, rng, 0.5, 0.3))

            best_weights = initial
            best_fitness = baseline

            for iteration in range(iterations):
                fitness_scores = [
                    (self.evaluate_weights(w, labelled, target_column), w)
                    for w in population
                ]
                fitness_scores.sort(key=lambda x: x[0], reverse=True)

                if fitness_scores[0][0] > best_fitness:
                    best_fitness, best_weights = fitness_scores[0]

                survivors = [w for f, w in fitness_scores[:max(1, population_size // 2)]]

                population = survivors.copy()
                while len(population) < population_size:
                    parent = rng.choice(survivors)
                    population.append(
                        self._mutate_weights(parent, rng, mutation_rate, mutation_strength)
                    )

                if (iteration + 1) % 20 == 0:
                    logger.debug(f"Iteration {iteration + 1}: best score = {best_fitness:.3f}")

            weights = normalize_to_percent(best_weights)

        except (ValueError, TypeError) as e:
            return self._finish(self._failed(
                METHOD_SEARCH, target_column, len(labelled), str(e)
            ))

        self.feature_weights = dict(best_weights)

        result = OptimizationResult(
            method=METHOD_SEARCH,
            weights=weights,
            correlations={},
            score=best_fitness,
            sample_size=len(labelled),
            target_column=target_column,
            iterations=iterations
        )

        logger.info(
            f"Search complete after {iterations} iterations: "
            f"score {baseline:.3f} -> {best_fitness:.3f}"
        )
        return self._finish(result)

    def save_result(self, result: OptimizationResult) -> Optional[int]:
        """
        Store an optimization result.

        Returns:
            ID of the stored run, or None without a repository
        """
        if self.repo is None:
            return None

        run = self.repo.record_run(result)
        return run.id

    def generate_report(self, result: OptimizationResult) -> str:
        """Generate optimization report."""
        lines = []
        lines.append("=" * 60)
        lines.append("WEIGHT OPTIMIZATION REPORT")
        lines.append("=" * 60)
        lines.append(f"Method: {result.method}")
        lines.append(f"Target: {result.target_column}")
        lines.append(f"Sample size: {result.sample_size} records")
        if result.iterations:
            lines.append(f"Iterations: {result.iterations}")
        if result.score is not None:
            lines.append(f"Score: {result.score:.3f}")
        if result.error:
            lines.append(f"Error: {result.error} (current weights kept)")
        lines.append("")

        if result.correlations:
            lines.append("CORRELATIONS:")
            lines.append("-" * 40)
            for feature, r in sorted(result.correlations.items(), key=lambda x: x[1], reverse=True):
                lines.append(f"  {feature:25} |r|={r:.3f}")
            lines.append("")

        lines.append("WEIGHTS:")
        lines.append("-" * 40)
        for feature, weight in sorted(result.weights.items(), key=lambda x: x[1], reverse=True):
            bar = "#" * int(weight / 2)
            lines.append(f"  {feature:25} {weight:3d}  {bar}")

        return "\n".join(lines)
