"""
Scorecard Optimizer - Optimizer Package

Turns customer outcome data into health score weights and tests
competing weights against each other.

Components:
- feature_correlations: Pearson correlation of features with an outcome
- normalize_to_percent: Integer weights summing to 100
- HealthScoreCalculator: Weighted 0-100 health score
- ABTestManager: Deterministic A/B tests of weight maps
- ConfidenceEngine: Wilson intervals and chi-squared significance
- WeightOptimizer: Correlation and evolutionary weight optimization
- ScoreExplainer: Per-feature score explanations
- RealTimeScorer: Single and batch customer scoring
- FeaturePreprocessor: Min-max scaling and outlier handling
- ScorecardService: Coordinates all components
"""

from .correlation import pearson_correlation, feature_correlations
from .weight_normalizer import normalize_to_percent, normalize_weights, WeightNormalizationError
from .health_calculator import HealthScoreCalculator, FeatureContribution
from .confidence_engine import ConfidenceEngine, ConversionCounts
from .ab_test_engine import (
    ABTestManager, ABTestVariant, ABTestConfig, ABTestReport, VariantResult
)
from .weight_optimizer import WeightOptimizer, OptimizationResult, DEFAULT_WEIGHTS
from .explainer import ScoreExplainer, FeatureExplanation
from .scorer import RealTimeScorer, ScoringResult
from .preprocessor import FeaturePreprocessor
from .scorecard_service import ScorecardService

__all__ = [
    'pearson_correlation',
    'feature_correlations',
    'normalize_to_percent',
    'normalize_weights',
    'WeightNormalizationError',
    'HealthScoreCalculator',
    'FeatureContribution',
    'ConfidenceEngine',
    'ConversionCounts',
    'ABTestManager',
    'ABTestVariant',
    'ABTestConfig',
    'ABTestReport',
    'VariantResult',
    'WeightOptimizer',
    'OptimizationResult',
    'DEFAULT_WEIGHTS',
    'ScoreExplainer',
    'FeatureExplanation',
    'RealTimeScorer',
    'ScoringResult',
    'FeaturePreprocessor',
    'ScorecardService',
]
