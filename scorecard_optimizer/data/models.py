"""
Scorecard Optimizer - SQLAlchemy ORM Models

Optimization run history. A/B tests are process-lifetime only and have
no table.
"""

import json
from typing import Dict, Any

from sqlalchemy import Column, Integer, String, Float, Text, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class OptimizationRun(Base):
    """
    One weight optimization run and the weights it produced.
    """
    __tablename__ = 'optimization_runs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=func.now(), index=True)

    # Versioning (for tracking weight evolution)
    version = Column(Integer, default=1)

    # Run setup
    method = Column(String(20), nullable=False)  # correlation, search
    target_column = Column(String(100))
    sample_size = Column(Integer)
    iterations = Column(Integer, default=0)

    # Results (JSON)
    weights = Column(Text)          # {"npsScore": 22, ...}
    correlations = Column(Text)     # {"npsScore": 0.41, ...}

    # Predictive power of the weights
    score = Column(Float)

    # Set when the run failed and the previous weights were kept
    error = Column(Text)

    def get_weights(self) -> Dict[str, Any]:
        return json.loads(self.weights) if self.weights else {}

    def get_correlations(self) -> Dict[str, float]:
        return json.loads(self.correlations) if self.correlations else {}

    def __repr__(self):
        return f"<OptimizationRun(id={self.id}, v{self.version}, method={self.method}, score={self.score})>"
