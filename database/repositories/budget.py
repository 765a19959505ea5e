from typing import List

from sqlalchemy import select

from database.models import BudgetThreshold
from database.repositories.base import BaseRepository


class BudgetThresholdRepository(BaseRepository):
    def list_active(self) -> List[BudgetThreshold]:
        stmt = select(BudgetThreshold).where(
            BudgetThreshold.is_active == True  # noqa: E712
        ).order_by(BudgetThreshold.created_at.asc())
        return self.db.execute(stmt).scalars().all()
