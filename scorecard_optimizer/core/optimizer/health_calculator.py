"""
Scorecard Optimizer - Health Score Calculator

Weighted linear health score in the 0-100 range.

Feature values are expected pre-normalized to [0, 1]. Features whose
name matches an inverted marker (lower is better) contribute 1 - value.
Scoring never raises: any failure yields the fallback score.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Mapping, Any, Sequence

logger = logging.getLogger('scorecard.scoring.health')


DEFAULT_INVERTED_FEATURES = (
    'churnProbability',
    'daysSinceLastLogin',
    'supportTickets',
)

DEFAULT_FALLBACK_SCORE = 50.0


@dataclass
class FeatureContribution:
    """One feature's part in a health score."""
    feature: str
    raw_value: float
    adjusted_value: float   # after inversion
    weight: float
    inverted: bool

    @property
    def weighted_value(self) -> float:
        return self.adjusted_value * self.weight


class HealthScoreCalculator:
    """
    Calculate customer health scores from a weight map.

    Score = 100 * sum(value * weight) / sum(weight) over the features
    present in both the record and the weights.
    """

    def __init__(
        self,
        inverted_features: Optional[Sequence[str]] = None,
        fallback_score: float = DEFAULT_FALLBACK_SCORE
    ):
        """
        Initialize health score calculator.

        Args:
            inverted_features: Lower-is-better name markers
            fallback_score: Score returned when nothing can be computed
        """
        if inverted_features is None:
            inverted_features = DEFAULT_INVERTED_FEATURES
        self.inverted_features = tuple(inverted_features)
        self._inverted_lower = tuple(marker.lower() for marker in self.inverted_features)
        self.fallback_score = fallback_score

    def is_inverted(self, feature: str) -> bool:
        """Check whether a feature is lower-is-better."""
        name = feature.lower()
        return any(marker in name for marker in self._inverted_lower)

    def contributions(
        self,
        record: Mapping[str, Any],
        weights: Mapping[str, float]
    ) -> List[FeatureContribution]:
        """
        Break a record down into per-feature contributions.

        Follows weight-map order and skips features the record lacks.
        Errors propagate; calculate() is the fail-soft entry point.
        """
        result = []

        for feature, weight in weights.items():
            if feature not in record:
                continue

            value = record[feature]
            inverted = self.is_inverted(feature)
            adjusted = 1.0 - value if inverted else value

            result.append(FeatureContribution(
                feature=feature,
                raw_value=value,
                adjusted_value=adjusted,
                weight=weight,
                inverted=inverted
            ))

        return result

    def calculate(
        self,
        record: Mapping[str, Any],
        weights: Mapping[str, float]
    ) -> float:
        """
        Calculate the health score for one customer.

        Args:
            record: Feature name to value (pre-normalized to [0, 1])
            weights: Feature name to weight

        Returns:
            Score in [0, 100], or the fallback score when no weighted
            feature is present or the computation fails
        """
        try:
            score = 0.0
            total_weight = 0.0

            for item in self.contributions(record, weights):
                score += item.weighted_value
                total_weight += item.weight

            if total_weight > 0:
                return 100.0 * (score / total_weight)

            return self.fallback_score

        except Exception as e:
            logger.error(f"Error calculating health score: {e}")
            return self.fallback_score
