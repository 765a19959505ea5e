#!/usr/bin/env python3
"""
Threshold Notifier - exactly-once emission per dedupe key and window.

Deduplication is decided by one atomic statement at the store (see
NotificationRecordRepository.claim), so any number of processes can race
on the same key and at most one of them emits.

Usage:
    from notification.notifier import ThresholdNotifier, MATCH_WINDOW

    notifier = ThresholdNotifier(repo, dispatcher)
    notifier.notify_once(
        f"match:{record.id}",
        MATCH_WINDOW,
        lambda: build_high_score_match_event(record)
    )
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import NotificationConfig
from core.errors import PersistenceUnavailableError
from core.utils import utcnow
from database.repository import DecisionRepository
from notification.dispatch import NotificationDispatcher, LoggingNotificationDispatcher
from notification.events import NotificationEvent

logger = logging.getLogger(__name__)

# Per-MatchRecord alerts are emitted once, ever
MATCH_WINDOW: Optional[timedelta] = None
DEFAULT_WINDOW = timedelta(hours=24)


class ThresholdNotifier:
    """Claims a dedupe key, stores the event on the ledger, then dispatches it."""

    def __init__(
        self,
        repo: DecisionRepository,
        dispatcher: Optional[NotificationDispatcher] = None,
        config: Optional[NotificationConfig] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repo = repo
        self.dispatcher = dispatcher or LoggingNotificationDispatcher()
        self.config = config or NotificationConfig()
        self.clock = clock

    @property
    def default_window(self) -> timedelta:
        return timedelta(hours=self.config.cool_down_hours)

    def notify_once(
        self,
        dedupe_key: str,
        cool_down: Optional[timedelta],
        build_event: Callable[[], NotificationEvent]
    ) -> bool:
        """
        Emit the event built by build_event unless dedupe_key was already
        emitted inside cool_down (None means never again).

        Returns True when this call emitted.
        """
        if not self.config.enabled:
            logger.info(f"Notifications disabled; skipping {dedupe_key}")
            return False

        now = self.clock()
        try:
            claimed = self.repo.notifications.claim(dedupe_key, now, cool_down)
            if not claimed:
                self.repo.rollback()
                logger.info(f"Suppressing duplicate notification: {dedupe_key}")
                return False

            event = build_event()
            event.dedupe_key = dedupe_key
            event.emitted_at = now
            self.repo.notifications.attach_event(
                dedupe_key=dedupe_key,
                recipient_user_id=event.recipient_user_id,
                kind=event.kind,
                title=event.title,
                message=event.message,
                related_entity_type=event.related_entity_type,
                related_entity_id=event.related_entity_id,
                event_data=event.to_payload()
            )
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to record notification {dedupe_key}: {e}")
            raise PersistenceUnavailableError(f"Notification ledger unavailable for {dedupe_key}") from e
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Emitting {event.kind} notification {dedupe_key}")
        try:
            self.dispatcher.dispatch(event)
        except Exception as e:
            # The ledger row is durable; the fan-out can be replayed from it
            logger.error(f"Failed to dispatch notification {dedupe_key}: {e}")
        return True
