import json
import logging
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from notification.events import NotificationEvent

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_PREFIX = "notifications:user:"


class RealtimePublisher:
    """
    Best-effort real-time push over redis pub/sub.

    Publishing never raises: the durable ledger row is the source of truth
    and clients that miss a push pick the event up from there.
    """

    def __init__(self, redis_conn: Redis, channel_prefix: str = DEFAULT_CHANNEL_PREFIX):
        self.redis = redis_conn
        self.channel_prefix = channel_prefix

    @classmethod
    def from_url(cls, redis_url: str, channel_prefix: str = DEFAULT_CHANNEL_PREFIX) -> "RealtimePublisher":
        return cls(Redis.from_url(redis_url), channel_prefix)

    def channel_for(self, user_id: str) -> str:
        return f"{self.channel_prefix}{user_id}"

    def publish(self, user_id: Optional[str], event: NotificationEvent) -> bool:
        if not user_id:
            return False
        channel = self.channel_for(user_id)
        try:
            receivers = self.redis.publish(channel, json.dumps(event.to_payload()))
        except RedisError as e:
            logger.warning(f"Real-time publish to {channel} failed: {e}")
            return False
        logger.debug(f"Published {event.kind} to {channel} ({receivers} receivers)")
        return True
