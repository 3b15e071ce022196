"""
Scorecard Optimizer - Repository Layer

Provides data access abstractions for database entities.
"""

from scorecard_optimizer.data.repositories.optimization_repo import OptimizationRepository

__all__ = [
    'OptimizationRepository',
]
