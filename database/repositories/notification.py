import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional, Dict, Any

from sqlalchemy import select, update

from database.models import NotificationRecord
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRecordRepository(BaseRepository):
    def claim(
        self,
        dedupe_key: str,
        now: datetime,
        cool_down: Optional[timedelta] = None
    ) -> bool:
        """
        Atomically claim a dedupe key.

        One statement at the store: insert the key, or on conflict
        - do nothing (cool_down None: the key is claimed forever), or
        - bump last_emitted_at only when the previous emission is older
          than the cool-down window.

        Returns True when this caller owns the emission.
        """
        stmt = self.dialect_insert(NotificationRecord).values(
            id=uuid.uuid4(),
            dedupe_key=dedupe_key,
            event_data={},
            first_emitted_at=now,
            last_emitted_at=now,
            emit_count=1
        )

        if cool_down is None:
            stmt = stmt.on_conflict_do_nothing(index_elements=['dedupe_key'])
        else:
            cutoff = now - cool_down
            stmt = stmt.on_conflict_do_update(
                index_elements=['dedupe_key'],
                set_={
                    'last_emitted_at': now,
                    'emit_count': NotificationRecord.emit_count + 1,
                },
                where=NotificationRecord.last_emitted_at <= cutoff
            )

        result = self.db.execute(stmt)
        return result.rowcount == 1

    def attach_event(
        self,
        dedupe_key: str,
        recipient_user_id: Optional[str],
        kind: str,
        title: str,
        message: str,
        related_entity_type: Optional[str],
        related_entity_id: Optional[str],
        event_data: Optional[Dict[str, Any]] = None
    ) -> None:
        stmt = (
            update(NotificationRecord)
            .where(NotificationRecord.dedupe_key == dedupe_key)
            .values(
                recipient_user_id=recipient_user_id,
                kind=kind,
                title=title,
                message=message,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
                event_data=event_data or {}
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def get_by_key(self, dedupe_key: str) -> Optional[NotificationRecord]:
        stmt = select(NotificationRecord).where(
            NotificationRecord.dedupe_key == dedupe_key
        ).execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_recipient(self, recipient_user_id: str, limit: int = 50) -> List[NotificationRecord]:
        stmt = select(NotificationRecord).where(
            NotificationRecord.recipient_user_id == recipient_user_id
        ).order_by(NotificationRecord.last_emitted_at.desc()).limit(limit)
        return self.db.execute(stmt).scalars().all()
