import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Integer, Numeric, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from .base import Base, utc_timestamp

STATUS_DRAFT = 'draft'
STATUS_ACTIVE = 'active'
STATUS_PAUSED = 'paused'
STATUS_COMPLETED = 'completed'

WINNER_A = 'A'
WINNER_B = 'B'
NO_WINNER = 'no_winner'

METRIC_OPEN_RATE = 'open_rate'
METRIC_CLICK_RATE = 'click_rate'
METRIC_CONVERSION_RATE = 'conversion_rate'


class ExperimentDefinition(Base):
    """
    A two-variant email experiment.

    Lifecycle: draft -> active -> completed (terminal), active <-> paused.
    The completed transition is a compare-and-set on status; once completed
    the winner and its decision inputs are immutable.
    """
    __tablename__ = 'experiment_definition'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    email_type = Column(Text, nullable=False)
    primary_metric = Column(Text, nullable=False, default=METRIC_OPEN_RATE)

    status = Column(Text, nullable=False, default=STATUS_DRAFT)
    winner_variant = Column(Text, nullable=False, default=NO_WINNER)

    # Decision inputs (set once on completion)
    confidence_level = Column(Integer, nullable=True)
    improvement = Column(Numeric(8, 2, asdecimal=False), nullable=True)
    z_score = Column(Numeric(8, 4, asdecimal=False), nullable=True)

    started_at = Column(TIMESTAMP(timezone=True), nullable=True)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    winner_determined_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp, onupdate=utc_timestamp)

    variant_results = relationship("ExperimentVariantResult", back_populates="experiment", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_experiment_owner', 'owner_user_id'),
        Index('idx_experiment_status', 'status'),
    )


class ExperimentVariantResult(Base):
    """
    Engagement counters per (experiment, variant).

    Counters only ever increase while the experiment is active.
    """
    __tablename__ = 'experiment_variant_result'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    experiment_id = Column(Uuid(as_uuid=True), ForeignKey('experiment_definition.id', ondelete='CASCADE'), nullable=False)
    variant = Column(Text, nullable=False)  # A|B

    sent = Column(Integer, nullable=False, default=0)
    opened = Column(Integer, nullable=False, default=0)
    clicked = Column(Integer, nullable=False, default=0)
    converted = Column(Integer, nullable=False, default=0)

    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp, onupdate=utc_timestamp)

    experiment = relationship("ExperimentDefinition", back_populates="variant_results")

    __table_args__ = (
        UniqueConstraint('experiment_id', 'variant', name='uq_experiment_variant'),
        Index('idx_variant_experiment', 'experiment_id'),
    )
