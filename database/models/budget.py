import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Integer, Boolean, Uuid, Index

from .base import Base, utc_timestamp

PERIOD_DAILY = 'daily'
PERIOD_WEEKLY = 'weekly'
PERIOD_MONTHLY = 'monthly'
PERIOD_TOTAL = 'total'


class BudgetThreshold(Base):
    """Spending threshold that raises warning/critical/exceeded alerts."""
    __tablename__ = 'budget_threshold'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    period = Column(Text, nullable=False, default=PERIOD_MONTHLY)
    threshold_amount = Column(Integer, nullable=False)  # smallest currency unit
    currency = Column(Text, nullable=False, default='SAR')
    warning_percentage = Column(Integer, nullable=True)
    critical_percentage = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)

    __table_args__ = (
        Index('idx_budget_threshold_active', 'is_active'),
    )
