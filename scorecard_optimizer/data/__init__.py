"""
Scorecard Optimizer - Data Layer

SQLAlchemy storage for optimization history.
"""

from scorecard_optimizer.data.models import Base, OptimizationRun
from scorecard_optimizer.data.database import DatabaseManager, init_database
from scorecard_optimizer.data.repositories import OptimizationRepository

__all__ = [
    'Base',
    'OptimizationRun',
    'DatabaseManager',
    'init_database',
    'OptimizationRepository',
]
