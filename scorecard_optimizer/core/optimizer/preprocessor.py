"""
Scorecard Optimizer - Feature Preprocessor

Brings raw customer features into the [0, 1] range the health score
calculator expects, and tames outliers before scaling.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple, Any

import pandas as pd

from .correlation import ID_FIELDS

logger = logging.getLogger('scorecard.optimizer.preprocessor')


OUTLIER_METHODS = ('iqr', 'zscore')


class FeaturePreprocessor:
    """
    Min-max scaler fitted on training data.

    Values outside the fitted range are clipped to [0, 1]. A column that
    was constant during fitting always maps to 0.
    """

    def __init__(
        self,
        numerical_features: Optional[List[str]] = None,
        target: Optional[str] = None
    ):
        """
        Args:
            numerical_features: Columns to scale (numeric columns if omitted)
            target: Outcome column, never scaled
        """
        self.numerical_features = list(numerical_features) if numerical_features else None
        self.target = target
        self._ranges: Dict[str, Tuple[float, float]] = {}

    @property
    def is_fitted(self) -> bool:
        return bool(self._ranges)

    def _feature_columns(self, df: pd.DataFrame) -> List[str]:
        if self.numerical_features is not None:
            return [c for c in self.numerical_features if c in df.columns]

        numeric = df.select_dtypes(include='number').columns
        return [c for c in numeric if c != self.target and c not in ID_FIELDS]

    def fit(self, df: pd.DataFrame) -> 'FeaturePreprocessor':
        """Learn per-column min and max."""
        self._ranges = {}

        for col in self._feature_columns(df):
            values = df[col].dropna()
            if values.empty:
                continue
            self._ranges[col] = (float(values.min()), float(values.max()))

        logger.debug(f"Fitted preprocessor on {len(df)} rows, {len(self._ranges)} features")
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Scale fitted columns to [0, 1].

        Missing values count as 0 before scaling.

        Raises:
            ValueError: If the preprocessor has not been fitted
        """
        if not self.is_fitted:
            raise ValueError("Preprocessor not fitted - call fit() first")

        result = df.copy()

        for col, (low, high) in self._ranges.items():
            if col not in result.columns:
                continue

            values = result[col].fillna(0).astype(float)
            if high > low:
                result[col] = ((values - low) / (high - low)).clip(0.0, 1.0)
            else:
                result[col] = 0.0

        return result

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)

    def handle_outliers(
        self,
        df: pd.DataFrame,
        method: str = 'iqr',
        threshold: float = 1.5
    ) -> pd.DataFrame:
        """
        Detect and handle outliers in the feature columns.

        Args:
            df: Input data (not modified)
            method: 'iqr' caps values at q1 - k*IQR and q3 + k*IQR;
                'zscore' replaces values with |z| > k by the column mean
            threshold: k

        Returns:
            Copy of the data with outliers handled
        """
        method = method.lower()
        if method not in OUTLIER_METHODS:
            raise ValueError(f"Unknown outlier method '{method}', expected one of {OUTLIER_METHODS}")

        result = df.copy()

        for col in self._feature_columns(df):
            values = df[col].dropna().astype(float)
            if values.empty:
                continue

            result[col] = result[col].astype(float)

            if method == 'iqr':
                # Index-based quartiles, no interpolation
                ordered = values.sort_values().tolist()
                n = len(ordered)
                q1 = ordered[math.floor(n * 0.25)]
                q3 = ordered[math.floor(n * 0.75)]
                iqr = q3 - q1

                lower = q1 - threshold * iqr
                upper = q3 + threshold * iqr
                result[col] = result[col].clip(lower, upper)

            else:
                mean = values.mean()
                std = values.std(ddof=0)
                if std == 0:
                    continue

                outliers = ((result[col] - mean) / std).abs() > threshold
                result.loc[outliers, col] = mean

        return result


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame to customer records, with NaN dropped from each record."""
    records = []
    for row in df.to_dict('records'):
        records.append({
            k: v for k, v in row.items()
            if not (isinstance(v, float) and math.isnan(v))
        })
    return records
