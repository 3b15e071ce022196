"""
Scorecard Optimizer - Real-Time Scorer

Scores customers with the current weights and turns the health score
into a binary prediction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Any, Optional

from .correlation import ID_FIELDS
from .explainer import ScoreExplainer
from .health_calculator import HealthScoreCalculator, DEFAULT_FALLBACK_SCORE

logger = logging.getLogger('scorecard.scoring.scorer')


DEFAULT_THRESHOLD = 0.5
DEFAULT_MODEL_NAME = 'weighted'


@dataclass(frozen=True)
class ScoringResult:
    """Outcome of scoring one customer."""
    customer_id: Optional[str]
    score: float
    prediction: int     # 1 = healthy (score/100 >= threshold)
    threshold: float
    model: str
    timestamp: datetime = field(default_factory=datetime.now)
    explanation: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customer_id': self.customer_id,
            'score': self.score,
            'prediction': self.prediction,
            'threshold': self.threshold,
            'model': self.model,
            'timestamp': self.timestamp.isoformat(),
            'explanation': self.explanation,
            'error': self.error,
        }


def customer_id_of(record: Any) -> Optional[str]:
    """First identifier field present in a record."""
    if not isinstance(record, Mapping):
        return None
    for key in ID_FIELDS:
        value = record.get(key)
        if value is not None and value != '':
            return str(value)
    return None


class RealTimeScorer:
    """
    Scores customers one at a time or in batches.

    The weights are read from weights_provider on every call, so the
    scorer follows the optimizer as it learns.
    """

    def __init__(
        self,
        calculator: HealthScoreCalculator,
        weights_provider: Callable[[], Mapping[str, float]],
        explainer: Optional[ScoreExplainer] = None,
        threshold: float = DEFAULT_THRESHOLD,
        model_name: str = DEFAULT_MODEL_NAME
    ):
        """
        Args:
            calculator: Health score calculator
            weights_provider: Returns the weights to score with
            explainer: Explanation generator (one is built if omitted)
            threshold: Prediction cutoff on the 0-1 score
            model_name: Label reported with each result
        """
        self.calculator = calculator
        self.weights_provider = weights_provider
        self.explainer = explainer or ScoreExplainer(calculator)
        self.threshold = threshold
        self.model_name = model_name

    def score_customer(self, record: Any, explain: bool = True) -> ScoringResult:
        """
        Score one customer.

        Args:
            record: Customer feature record (a list scores its first item)
            explain: Attach an explanation

        Returns:
            ScoringResult; on failure score is the fallback and prediction 0
        """
        try:
            customer = record[0] if isinstance(record, (list, tuple)) else record

            weights = self.weights_provider()
            score = self.calculator.calculate(customer, weights)
            prediction = 1 if score / 100.0 >= self.threshold else 0

            explanation = None
            if explain:
                explanation = self.explainer.generate_explanation(customer, weights, score)

            return ScoringResult(
                customer_id=customer_id_of(customer),
                score=score,
                prediction=prediction,
                threshold=self.threshold,
                model=self.model_name,
                explanation=explanation
            )

        except Exception as e:
            logger.error(f"Error scoring customer: {e}")
            return ScoringResult(
                customer_id=customer_id_of(record),
                score=DEFAULT_FALLBACK_SCORE,
                prediction=0,
                threshold=self.threshold,
                model=self.model_name,
                error=str(e)
            )

    def batch_score(self, records: List[Any]) -> List[ScoringResult]:
        """Score many customers without explanations."""
        results = [self.score_customer(record, explain=False) for record in records]
        logger.debug(f"Batch scored {len(results)} customers")
        return results
