"""
Scorecard Optimizer - Weight Normalizer

Turns raw per-feature scores into weight maps.

The integer form gives the whole rounding residual to the largest weight
(first on ties). It is not a largest-remainder split, and with many small
equal shares the residual can make that weight negative.
"""

import math
from typing import Dict, Mapping


class WeightNormalizationError(ValueError):
    """Raised when raw scores cannot be turned into a weight map."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def normalize_to_percent(raw_scores: Mapping[str, float]) -> Dict[str, int]:
    """
    Convert raw scores into integer weights summing to exactly 100.

    Args:
        raw_scores: Feature name to raw score (typically |correlation|)

    Returns:
        Feature name to integer weight, in input order

    Raises:
        WeightNormalizationError: If the scores total zero
    """
    total = sum(raw_scores.values())
    if total == 0:
        raise WeightNormalizationError("Raw scores sum to zero; nothing to normalize")

    weights = {
        feature: round_half_up(score / total * 100)
        for feature, score in raw_scores.items()
    }

    residual = 100 - sum(weights.values())
    if residual != 0:
        # max() keeps the first key on ties
        highest = max(weights, key=weights.get)
        weights[highest] += residual

    return weights


def normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """
    Scale weights so they sum to 1.0.

    A zero total returns the weights unchanged.
    """
    total = sum(weights.values())
    if total == 0:
        return dict(weights)

    return {feature: weight / total for feature, weight in weights.items()}
