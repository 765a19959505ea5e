import logging
from typing import Optional

from sqlalchemy import select

from database.models import AttributeWeightProfile
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class WeightProfileRepository(BaseRepository):
    def get_active(self, tenant_id: Optional[str] = None) -> Optional[AttributeWeightProfile]:
        """Latest profile for the tenant, falling back to the platform default."""
        if tenant_id is not None:
            stmt = select(AttributeWeightProfile).where(
                AttributeWeightProfile.tenant_id == tenant_id
            ).order_by(AttributeWeightProfile.created_at.desc()).limit(1)
            profile = self.db.execute(stmt).scalar_one_or_none()
            if profile is not None:
                return profile
            logger.debug(f"No weight profile for tenant {tenant_id}; using default")

        stmt = select(AttributeWeightProfile).where(
            AttributeWeightProfile.tenant_id.is_(None)
        ).order_by(AttributeWeightProfile.created_at.desc()).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()
