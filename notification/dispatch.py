#!/usr/bin/env python3
"""
Notification dispatch - hand-off of emitted events to the fan-out boundary.

Delivery (email, push, templates) happens outside the decision core. The
queue dispatcher enqueues the serialised event for an external worker,
addressed by a dotted task path, with the same retry policy everywhere.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Iterable

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry

from core.config_loader import NotificationConfig
from notification.events import NotificationEvent

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL = 'redis://localhost:6379/0'


class NotificationDispatcher(ABC):
    """Abstract hand-off for emitted notification events."""

    @abstractmethod
    def dispatch(self, event: NotificationEvent) -> Optional[str]:
        """Hand the event off. Returns an id for the hand-off, if any."""
        pass


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Synchronous dispatcher that only logs; keeps dispatched events for inspection."""

    def __init__(self):
        self.dispatched: List[NotificationEvent] = []

    def dispatch(self, event: NotificationEvent) -> Optional[str]:
        self.dispatched.append(event)
        logger.info(f"[{event.kind}] {event.title} -> user {event.recipient_user_id}")
        return event.dedupe_key


class QueueNotificationDispatcher(NotificationDispatcher):
    """Enqueues events on an rq queue for the external fan-out worker."""

    def __init__(
        self,
        queue: Queue,
        task_path: str,
        job_timeout: str = '5m',
        result_ttl: int = 86400
    ):
        self.queue = queue
        self.task_path = task_path
        self.job_timeout = job_timeout
        self.result_ttl = result_ttl

    @classmethod
    def from_url(cls, redis_url: str, queue_name: str, task_path: str) -> "QueueNotificationDispatcher":
        connection = Redis.from_url(redis_url)
        # Validate connection with ping before using
        connection.ping()
        return cls(Queue(queue_name, connection=connection), task_path)

    def dispatch(self, event: NotificationEvent) -> Optional[str]:
        # Retry 3 times with increasing delays
        retry_policy = Retry(max=3, interval=[30, 60, 120])
        job = self.queue.enqueue(
            self.task_path,
            event.to_payload(),
            job_timeout=self.job_timeout,
            result_ttl=self.result_ttl,
            retry=retry_policy
        )
        logger.info(f"Queued notification {event.dedupe_key} as job {job.id}")
        return job.id


class CompositeDispatcher(NotificationDispatcher):
    """Dispatches to several dispatchers; one failing does not stop the rest."""

    def __init__(self, dispatchers: Iterable[NotificationDispatcher]):
        self.dispatchers = list(dispatchers)

    def dispatch(self, event: NotificationEvent) -> Optional[str]:
        first_id = None
        for dispatcher in self.dispatchers:
            try:
                result = dispatcher.dispatch(event)
            except Exception as e:
                logger.error(f"{type(dispatcher).__name__} failed for {event.dedupe_key}: {e}")
                continue
            if first_id is None:
                first_id = result
        return first_id


def build_dispatcher(config: NotificationConfig) -> NotificationDispatcher:
    """
    Queue dispatcher when enabled and Redis is reachable; otherwise the
    synchronous logging dispatcher.
    """
    if not config.use_async_queue:
        logger.info("Async queue disabled via config. Using sync mode.")
        return LoggingNotificationDispatcher()

    redis_url = config.redis_url or DEFAULT_REDIS_URL
    try:
        dispatcher = QueueNotificationDispatcher.from_url(redis_url, config.queue_name, config.task_path)
    except RedisError as e:
        logger.error(f"Redis connection failed: {e}. Falling back to sync mode.")
        return LoggingNotificationDispatcher()
    logger.info("Notification dispatcher connected to Redis")
    return dispatcher
