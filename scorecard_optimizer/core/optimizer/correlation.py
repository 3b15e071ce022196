"""
Scorecard Optimizer - Correlation Engine

Pearson correlation between customer features and an outcome column.
Feature importance downstream uses correlation magnitude only.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Mapping, Any

logger = logging.getLogger('scorecard.optimizer.correlation')


# Fields that identify a customer rather than describe one
ID_FIELDS = ('id', 'customerId', 'customer_id')


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Calculate the Pearson correlation coefficient.

    Uses population covariance and variances, means first and residuals
    second. Returns 0.0 when either input is constant.

    Args:
        x: First series
        y: Second series, same length as x

    Returns:
        Coefficient in [-1, 1]

    Raises:
        ValueError: If the series differ in length
    """
    n = len(x)
    if n != len(y):
        raise ValueError(f"Series length mismatch: {n} != {len(y)}")
    if n < 2:
        return 0.0

    mean_x = sum(x) / n
    mean_y = sum(y) / n

    covariance = 0.0
    variance_x = 0.0
    variance_y = 0.0
    for xi, yi in zip(x, y):
        dx = xi - mean_x
        dy = yi - mean_y
        covariance += dx * dy
        variance_x += dx * dx
        variance_y += dy * dy

    if variance_x == 0 or variance_y == 0:
        return 0.0

    r = (covariance / n) / math.sqrt((variance_x / n) * (variance_y / n))

    # Rounding can push |r| a hair past 1
    return max(-1.0, min(1.0, r))


def infer_features(
    records: List[Mapping[str, Any]],
    target_column: str
) -> List[str]:
    """
    Collect numeric feature names in first-seen order.

    Identifier fields and the target column are skipped.
    """
    features: List[str] = []
    seen = set()

    for record in records:
        for key, value in record.items():
            if key in seen or key == target_column or key in ID_FIELDS:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            seen.add(key)
            features.append(key)

    return features


def feature_correlations(
    records: List[Mapping[str, Any]],
    target_column: str,
    features: Optional[List[str]] = None,
    absolute: bool = False
) -> Dict[str, float]:
    """
    Correlate every feature with the target column.

    Records missing either the feature or the target are skipped for that
    feature only.

    Args:
        records: Customer feature records
        target_column: Name of the outcome column
        features: Feature names (inferred from the records if omitted)
        absolute: Return magnitudes instead of signed coefficients

    Returns:
        Mapping of feature name to coefficient
    """
    if features is None:
        features = infer_features(records, target_column)

    correlations: Dict[str, float] = {}

    for feature in features:
        xs = []
        ys = []
        for record in records:
            value = record.get(feature)
            target = record.get(target_column)
            if value is None or target is None:
                continue
            xs.append(float(value))
            ys.append(float(target))

        r = pearson_correlation(xs, ys)
        correlations[feature] = abs(r) if absolute else r

        logger.debug(f"{feature}: r={r:+.4f} over {len(xs)} records")

    return correlations
