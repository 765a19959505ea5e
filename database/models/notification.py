import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Integer, Uuid, UniqueConstraint, Index

from .base import Base, JSONType, utc_timestamp


class NotificationRecord(Base):
    """
    Durable ledger of emitted decision events.

    The unique dedupe_key is the sole source of truth for "already notified":
    a key is claimed by a single atomic insert-or-conditional-update, so
    concurrent emitters for the same logical event cannot both win.
    """
    __tablename__ = 'notification_record'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Deduplication key, e.g. "match:<id>", "experiment:<id>:winner"
    dedupe_key = Column(Text, nullable=False)

    # Event content (filled in by the claiming emitter)
    recipient_user_id = Column(Text, nullable=True)
    kind = Column(Text, nullable=True)  # high_score_match, experiment_winner, budget_alert
    title = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    related_entity_type = Column(Text, nullable=True)
    related_entity_id = Column(Text, nullable=True)
    event_data = Column(JSONType, default=dict)

    # Timestamps
    first_emitted_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)
    last_emitted_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)
    emit_count = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint('dedupe_key', name='uq_notification_dedupe_key'),
        Index('idx_notification_recipient', 'recipient_user_id', 'first_emitted_at'),
    )
