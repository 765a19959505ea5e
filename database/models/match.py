import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Boolean, Integer, Numeric, Uuid, Index

from .base import Base, JSONType, utc_timestamp

OUTCOME_HIRED = 'hired'
OUTCOME_REJECTED = 'rejected'
OUTCOME_WITHDRAWN = 'withdrawn'
OUTCOME_PENDING = 'pending'

TERMINAL_OUTCOMES = frozenset({OUTCOME_HIRED, OUTCOME_REJECTED, OUTCOME_WITHDRAWN})
ALL_OUTCOMES = TERMINAL_OUTCOMES | {OUTCOME_PENDING}


class MatchRecord(Base):
    """
    One scored candidate-job pairing per scoring run.

    Tracks:
    - Component scores and the weight snapshot they were computed with
    - Top contributing attributes (used for correlation analytics)
    - Monotonic lifecycle flags (viewed / recommended / applied)
    - Terminal outcome and derived post-hire metrics

    Re-scoring appends a new row; only the outcome fields and the lifecycle
    flags are ever updated in place.
    """
    __tablename__ = 'match_record'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    candidate_id = Column(Text, nullable=False)
    job_id = Column(Text, nullable=False)
    owner_user_id = Column(Text, nullable=False)
    tenant_id = Column(Text, nullable=True)

    overall_score = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    skill_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    technical_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    culture_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    wellbeing_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    burnout_risk = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    top_attributes = Column(JSONType, default=list)  # [{"name": ..., "contribution": ...}]
    reasons = Column(JSONType, default=list)
    score_breakdown = Column(JSONType, default=dict)

    was_viewed = Column(Boolean, nullable=False, default=False)
    was_recommended = Column(Boolean, nullable=False, default=False)
    was_applied = Column(Boolean, nullable=False, default=False)

    outcome = Column(Text, nullable=True)  # hired|rejected|withdrawn|pending
    outcome_date = Column(TIMESTAMP(timezone=True), nullable=True)
    outcome_notes = Column(Text, nullable=True)
    outcome_revision = Column(Integer, nullable=False, default=0)  # bumped by corrections

    time_to_hire_days = Column(Integer, nullable=True)
    retention_months = Column(Integer, nullable=True)
    performance_rating = Column(Integer, nullable=True)

    weight_profile_version = Column(Text, nullable=True)
    attribute_weights = Column(JSONType, default=dict)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp, onupdate=utc_timestamp)

    __table_args__ = (
        Index('idx_match_record_owner_created', 'owner_user_id', 'created_at'),
        Index('idx_match_record_candidate', 'candidate_id'),
        Index('idx_match_record_job', 'job_id'),
        Index('idx_match_record_score', 'overall_score'),
        Index('idx_match_record_outcome', 'outcome'),
    )

    @property
    def has_terminal_outcome(self) -> bool:
        return self.outcome in TERMINAL_OUTCOMES
