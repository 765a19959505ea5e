import logging

from sqlalchemy.orm import Session

from database.repositories import (
    MatchRecordRepository,
    ExperimentRepository,
    NotificationRecordRepository,
    WeightProfileRepository,
    BudgetThresholdRepository,
)

logger = logging.getLogger(__name__)


class DecisionRepository:
    """Session-scoped facade over the per-aggregate repositories.

    All sub-repositories share one Session, so a unit of work spanning a
    match write and its notification claim commits or rolls back together.
    """

    def __init__(self, db: Session):
        self.db = db
        self.matches = MatchRecordRepository(db)
        self.experiments = ExperimentRepository(db)
        self.notifications = NotificationRecordRepository(db)
        self.weights = WeightProfileRepository(db)
        self.budgets = BudgetThresholdRepository(db)

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
