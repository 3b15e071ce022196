"""
Scorecard Optimizer - Score Explainer

Human-readable explanations of a health score.

Each feature's impact is its weight share times how far its adjusted
value sits from the neutral midpoint (0.5). Positive impact raises the
health score, negative impact lowers it.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Any, Optional

from .correlation import ID_FIELDS
from .health_calculator import HealthScoreCalculator
from .weight_normalizer import normalize_weights

logger = logging.getLogger('scorecard.scoring.explainer')


NEUTRAL_VALUE = 0.5

# |impact| thresholds for the magnitude label
SIGNIFICANT_IMPACT = 0.1
MODERATE_IMPACT = 0.05

# Churn risk (100 - health) thresholds
HIGH_RISK = 70
MEDIUM_RISK = 30


@dataclass
class FeatureExplanation:
    """One feature's effect on a score."""
    feature: str
    value: float
    impact: float
    direction: str  # increases, decreases
    magnitude: str  # significantly, somewhat, slightly


def magnitude_label(impact: float) -> str:
    size = abs(impact)
    if size > SIGNIFICANT_IMPACT:
        return 'significantly'
    if size > MODERATE_IMPACT:
        return 'somewhat'
    return 'slightly'


def risk_label(risk_pct: float) -> str:
    if risk_pct > HIGH_RISK:
        return 'HIGH'
    if risk_pct > MEDIUM_RISK:
        return 'MEDIUM'
    return 'LOW'


class ScoreExplainer:
    """
    Explains health scores feature by feature.

    Explanations are deterministic: the same record and weights always
    give the same text.
    """

    def __init__(
        self,
        calculator: Optional[HealthScoreCalculator] = None,
        top_features: int = 5
    ):
        self.calculator = calculator or HealthScoreCalculator()
        self.top_features = top_features

    def explain(
        self,
        record: Mapping[str, Any],
        weights: Mapping[str, float]
    ) -> List[FeatureExplanation]:
        """
        Per-feature explanations sorted by |impact|, largest first.

        Identifier fields are ignored. Errors propagate.
        """
        shares = normalize_weights(weights)
        scoring = {k: v for k, v in record.items() if k not in ID_FIELDS}

        explanations = []
        for item in self.calculator.contributions(scoring, shares):
            impact = item.weight * (item.adjusted_value - NEUTRAL_VALUE)
            explanations.append(FeatureExplanation(
                feature=item.feature,
                value=item.raw_value,
                impact=impact,
                direction='increases' if impact > 0 else 'decreases',
                magnitude=magnitude_label(impact)
            ))

        # Stable sort keeps weight order among equal impacts
        explanations.sort(key=lambda e: abs(e.impact), reverse=True)
        return explanations

    def generate_explanation(
        self,
        record: Mapping[str, Any],
        weights: Mapping[str, float],
        score: float,
        top_features: Optional[int] = None
    ) -> str:
        """
        Generate an explanation of a customer's score.

        Args:
            record: Customer feature record
            weights: Weights the score was computed with
            score: Health score (0-100)
            top_features: Number of features to list

        Returns:
            Multi-line explanation text; an error message if explaining fails
        """
        if top_features is None:
            top_features = self.top_features

        try:
            explanations = self.explain(record, weights)[:top_features]

            risk_pct = 100.0 - score

            lines = [
                f"Customer Churn Risk: {risk_label(risk_pct)} ({risk_pct:.1f}%)",
                f"Health score: {score:.1f}",
                "",
                "Top factors influencing this score:",
            ]
            for exp in explanations:
                lines.append(
                    f"- {exp.feature} = {exp.value:.2f} {exp.direction} health {exp.magnitude}"
                )

            return "\n".join(lines)

        except Exception as e:
            logger.error(f"Error generating customer explanation: {e}")
            return f"Unable to generate explanation due to an error: {e}"
