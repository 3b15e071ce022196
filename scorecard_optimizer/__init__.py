"""
Scorecard Optimizer - Customer Health Scorecard Tuning
Learns health score weights from customer outcomes and A/B tests them.

Usage:
    python -m scorecard_optimizer optimize --data customers.csv --target churned
    python -m scorecard_optimizer score --data customers.csv
    python -m scorecard_optimizer abtest --customers 10000
"""

__version__ = '0.1.0'
__author__ = 'Scorecard Optimizer Project'


def get_database_manager():
    """Lazy import of DatabaseManager."""
    from scorecard_optimizer.data.database import DatabaseManager
    return DatabaseManager


def get_service():
    """Lazy import of ScorecardService."""
    from scorecard_optimizer.core.optimizer.scorecard_service import ScorecardService
    return ScorecardService


__all__ = [
    '__version__',
    'get_database_manager',
    'get_service',
]
