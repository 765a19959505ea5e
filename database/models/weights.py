import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Numeric, Uuid, Index

from .base import Base, utc_timestamp


class AttributeWeightProfile(Base):
    """
    Per-tenant weight configuration (tenant_id NULL = platform default).

    Written by the external configuration path only; the decision core
    reads it when scoring and recommends new weights from outcomes.
    Weights need not sum to 100; they are normalized at use time.
    """
    __tablename__ = 'attribute_weight_profile'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=True)
    version = Column(Text, nullable=False, default='1')

    technical_weight = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=50)
    culture_weight = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=30)
    wellbeing_weight = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=20)

    min_technical_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    min_culture_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    min_wellbeing_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_timestamp)

    __table_args__ = (
        Index('idx_weight_profile_tenant', 'tenant_id', 'created_at'),
    )
