import logging
from datetime import datetime
from typing import Dict, List, Optional, Any

from sqlalchemy import select, update

from database.models import ExperimentDefinition, ExperimentVariantResult
from database.models.experiment import STATUS_ACTIVE, STATUS_COMPLETED, NO_WINNER
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

VARIANTS = ('A', 'B')
COUNTER_FIELDS = ('sent', 'opened', 'clicked', 'converted')


class ExperimentRepository(BaseRepository):
    def create(self, experiment: ExperimentDefinition) -> ExperimentDefinition:
        self.db.add(experiment)
        self.db.flush()
        self.ensure_variants(experiment.id)
        return experiment

    def get_by_id(self, experiment_id: Any) -> Optional[ExperimentDefinition]:
        stmt = select(ExperimentDefinition).where(
            ExperimentDefinition.id == experiment_id
        ).execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def ensure_variants(self, experiment_id: Any) -> None:
        existing = self.get_variant_results(experiment_id)
        for variant in VARIANTS:
            if variant not in existing:
                self.db.add(ExperimentVariantResult(
                    experiment_id=experiment_id,
                    variant=variant,
                    sent=0, opened=0, clicked=0, converted=0
                ))
        self.db.flush()

    def get_variant_results(self, experiment_id: Any) -> Dict[str, ExperimentVariantResult]:
        stmt = select(ExperimentVariantResult).where(
            ExperimentVariantResult.experiment_id == experiment_id
        ).execution_options(populate_existing=True)
        rows = self.db.execute(stmt).scalars().all()
        return {row.variant: row for row in rows}

    def increment_counts(
        self,
        experiment_id: Any,
        variant: str,
        **deltas: int
    ) -> int:
        """Atomically add non-negative deltas to a variant's counters."""
        if variant not in VARIANTS:
            raise ValueError(f"Unknown variant: {variant}")

        values = {}
        for field, delta in deltas.items():
            if field not in COUNTER_FIELDS:
                raise ValueError(f"Unknown counter: {field}")
            if delta < 0:
                raise ValueError(f"Counter {field} cannot decrease (delta={delta})")
            if delta:
                values[field] = getattr(ExperimentVariantResult, field) + delta

        if not values:
            return 0

        stmt = (
            update(ExperimentVariantResult)
            .where(
                ExperimentVariantResult.experiment_id == experiment_id,
                ExperimentVariantResult.variant == variant
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def transition_status(
        self,
        experiment_id: Any,
        from_status: str,
        to_status: str,
        now: datetime,
        **extra: Any
    ) -> bool:
        """Compare-and-set on status. True only for the writer that moved it."""
        values = {'status': to_status, 'updated_at': now}
        values.update(extra)
        stmt = (
            update(ExperimentDefinition)
            .where(
                ExperimentDefinition.id == experiment_id,
                ExperimentDefinition.status == from_status
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def complete_with_winner(
        self,
        experiment_id: Any,
        winner: str,
        confidence_level: int,
        improvement: float,
        z_score: float,
        now: datetime
    ) -> bool:
        """Declare a winner only if the experiment is still active."""
        return self.transition_status(
            experiment_id,
            STATUS_ACTIVE,
            STATUS_COMPLETED,
            now,
            winner_variant=winner,
            confidence_level=confidence_level,
            improvement=improvement,
            z_score=z_score,
            completed_at=now,
            winner_determined_at=now,
        )

    def list_active_without_winner(self) -> List[ExperimentDefinition]:
        stmt = select(ExperimentDefinition).where(
            ExperimentDefinition.status == STATUS_ACTIVE,
            ExperimentDefinition.winner_variant == NO_WINNER
        ).order_by(ExperimentDefinition.created_at.asc())
        return self.db.execute(stmt).scalars().all()

    def list_completed_since(self, cutoff: datetime) -> List[ExperimentDefinition]:
        stmt = select(ExperimentDefinition).where(
            ExperimentDefinition.status == STATUS_COMPLETED,
            ExperimentDefinition.winner_variant != NO_WINNER,
            ExperimentDefinition.completed_at >= cutoff
        ).order_by(ExperimentDefinition.completed_at.asc())
        return self.db.execute(stmt).scalars().all()
