import logging
from datetime import datetime
from typing import List, Optional, Any

from sqlalchemy import select, update, or_

from database.models import MatchRecord
from database.models.match import OUTCOME_PENDING
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

LIFECYCLE_FLAGS = ('was_viewed', 'was_recommended', 'was_applied')


class MatchRecordRepository(BaseRepository):
    def add(self, record: MatchRecord) -> MatchRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def get_by_id(self, match_id: Any) -> Optional[MatchRecord]:
        stmt = select(MatchRecord).where(
            MatchRecord.id == match_id
        ).execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def set_flag(self, match_id: Any, flag: str, now: datetime) -> int:
        """Set a one-way lifecycle flag. Returns 1 if it flipped, 0 if already set."""
        if flag not in LIFECYCLE_FLAGS:
            raise ValueError(f"Unknown lifecycle flag: {flag}")
        column = getattr(MatchRecord, flag)
        stmt = (
            update(MatchRecord)
            .where(MatchRecord.id == match_id, column == False)  # noqa: E712
            .values({flag: True, 'updated_at': now})
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def set_outcome(
        self,
        match_id: Any,
        outcome: str,
        outcome_date: datetime,
        notes: Optional[str],
        time_to_hire_days: Optional[int],
        now: datetime,
        correction: bool = False
    ) -> int:
        """Conditionally write the outcome fields.

        Without correction the update only applies while the row has no
        terminal outcome, so two concurrent writers cannot both land one.
        Returns the number of rows updated (0 or 1).
        """
        values = {
            'outcome': outcome,
            'outcome_date': outcome_date,
            'outcome_notes': notes,
            'time_to_hire_days': time_to_hire_days,
            'updated_at': now,
        }
        stmt = update(MatchRecord).where(MatchRecord.id == match_id)

        if correction:
            values['outcome_revision'] = MatchRecord.outcome_revision + 1
        else:
            stmt = stmt.where(or_(
                MatchRecord.outcome.is_(None),
                MatchRecord.outcome == OUTCOME_PENDING
            ))

        stmt = stmt.values(values).execution_options(synchronize_session=False)
        return self.db.execute(stmt).rowcount

    def set_retention(
        self,
        match_id: Any,
        retention_months: int,
        performance_rating: Optional[int],
        now: datetime
    ) -> int:
        values = {'retention_months': retention_months, 'updated_at': now}
        if performance_rating is not None:
            values['performance_rating'] = performance_rating
        stmt = (
            update(MatchRecord)
            .where(MatchRecord.id == match_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def list_for_owner(
        self,
        owner_user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[MatchRecord]:
        stmt = select(MatchRecord).where(MatchRecord.owner_user_id == owner_user_id)

        if start is not None:
            stmt = stmt.where(MatchRecord.created_at >= start)
        if end is not None:
            stmt = stmt.where(MatchRecord.created_at <= end)

        stmt = stmt.order_by(MatchRecord.created_at.asc(), MatchRecord.id.asc())
        return self.db.execute(stmt).scalars().all()

    def list_by_score(
        self,
        owner_user_id: str,
        min_score: Optional[float] = None,
        limit: int = 100
    ) -> List[MatchRecord]:
        stmt = select(MatchRecord).where(MatchRecord.owner_user_id == owner_user_id)

        if min_score is not None:
            stmt = stmt.where(MatchRecord.overall_score >= min_score)

        stmt = stmt.order_by(
            MatchRecord.overall_score.desc(),
            MatchRecord.job_id.asc()
        ).limit(limit)
        return self.db.execute(stmt).scalars().all()

    def list_history_for_pair(self, candidate_id: str, job_id: str) -> List[MatchRecord]:
        """All scoring runs for a candidate/job pair, oldest first (point-in-time replay)."""
        stmt = select(MatchRecord).where(
            MatchRecord.candidate_id == candidate_id,
            MatchRecord.job_id == job_id
        ).order_by(MatchRecord.created_at.asc())
        return self.db.execute(stmt).scalars().all()
