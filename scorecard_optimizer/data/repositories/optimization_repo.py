"""
Scorecard Optimizer - Optimization Repository

Data access for weight optimization history.
"""

import json
import logging
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from scorecard_optimizer.data.models import OptimizationRun

logger = logging.getLogger('scorecard.database.optimization')


class OptimizationRepository:
    """Repository for optimization run history."""

    def __init__(self, session: Session):
        self.session = session

    def record_run(self, result) -> OptimizationRun:
        """
        Store an optimization result.

        Args:
            result: OptimizationResult from the weight optimizer

        Returns:
            Created OptimizationRun record (flushed, not committed)
        """
        max_version = self.session.query(
            func.max(OptimizationRun.version)
        ).scalar() or 0

        run = OptimizationRun(
            created_at=result.timestamp,
            version=max_version + 1,
            method=result.method,
            target_column=result.target_column,
            sample_size=result.sample_size,
            iterations=result.iterations,
            weights=json.dumps(result.weights),
            correlations=json.dumps(result.correlations),
            score=result.score,
            error=result.error
        )

        self.session.add(run)
        self.session.flush()

        logger.info(
            f"Recorded optimization run v{run.version} ({run.method}) "
            f"with {run.sample_size} samples"
        )
        return run

    def get_history(self, limit: int = 50) -> List[OptimizationRun]:
        """Get optimization runs, most recent first."""
        return self.session.query(OptimizationRun).order_by(
            desc(OptimizationRun.version)
        ).limit(limit).all()

    def get_latest(self, successful_only: bool = True) -> Optional[OptimizationRun]:
        """Get the most recent run (by default the most recent successful one)."""
        query = self.session.query(OptimizationRun)
        if successful_only:
            query = query.filter(OptimizationRun.error.is_(None))
        return query.order_by(desc(OptimizationRun.version)).first()

    def get_by_id(self, run_id: int) -> Optional[OptimizationRun]:
        return self.session.query(OptimizationRun).filter(
            OptimizationRun.id == run_id
        ).first()

    def get_run_count(self) -> int:
        return self.session.query(OptimizationRun).count()
