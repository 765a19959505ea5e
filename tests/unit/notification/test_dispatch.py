#!/usr/bin/env python3
"""
Tests for notification dispatchers and real-time publishing.
"""

import json
import unittest
from unittest.mock import Mock, patch

from redis.exceptions import ConnectionError as RedisConnectionError, RedisError
from rq import Retry

from core.config_loader import NotificationConfig
from notification.dispatch import (
    LoggingNotificationDispatcher, QueueNotificationDispatcher, CompositeDispatcher, build_dispatcher,
)
from notification.events import NotificationEvent, KIND_HIGH_SCORE_MATCH
from notification.realtime import RealtimePublisher


def sample_event():
    return NotificationEvent(
        kind=KIND_HIGH_SCORE_MATCH,
        recipient_user_id="recruiter-1",
        title="High-score match: 92%",
        message="Candidate cand-1 scored 92% for job 42",
        related_entity_type="match",
        related_entity_id="m-1",
        dedupe_key="match:m-1",
    )


class TestQueueNotificationDispatcher(unittest.TestCase):

    def test_enqueues_payload_with_retry_policy(self):
        queue = Mock()
        queue.enqueue.return_value = Mock(id="job-123")
        dispatcher = QueueNotificationDispatcher(queue, "fanout.tasks.deliver")

        job_id = dispatcher.dispatch(sample_event())

        self.assertEqual(job_id, "job-123")
        args, kwargs = queue.enqueue.call_args
        self.assertEqual(args[0], "fanout.tasks.deliver")
        self.assertEqual(args[1]['dedupe_key'], "match:m-1")
        self.assertEqual(args[1]['kind'], KIND_HIGH_SCORE_MATCH)
        self.assertEqual(kwargs['job_timeout'], '5m')
        self.assertEqual(kwargs['result_ttl'], 86400)
        self.assertIsInstance(kwargs['retry'], Retry)
        self.assertEqual(kwargs['retry'].max, 3)

    def test_payload_is_json_serialisable(self):
        queue = Mock()
        queue.enqueue.return_value = Mock(id="job-1")
        QueueNotificationDispatcher(queue, "fanout.tasks.deliver").dispatch(sample_event())

        payload = queue.enqueue.call_args[0][1]
        self.assertIsInstance(payload['emitted_at'], str)
        json.dumps(payload)


class TestBuildDispatcher(unittest.TestCase):

    def test_sync_mode_when_queue_disabled(self):
        dispatcher = build_dispatcher(NotificationConfig(use_async_queue=False))
        self.assertIsInstance(dispatcher, LoggingNotificationDispatcher)

    @patch('notification.dispatch.Queue')
    @patch('notification.dispatch.Redis')
    def test_queue_mode_when_redis_reachable(self, mock_redis, mock_queue):
        config = NotificationConfig(redis_url="redis://cache:6379/1", queue_name="decisions")

        dispatcher = build_dispatcher(config)

        self.assertIsInstance(dispatcher, QueueNotificationDispatcher)
        mock_redis.from_url.assert_called_once_with("redis://cache:6379/1")
        mock_redis.from_url.return_value.ping.assert_called_once()
        mock_queue.assert_called_once_with("decisions", connection=mock_redis.from_url.return_value)
        self.assertEqual(dispatcher.task_path, config.task_path)

    @patch('notification.dispatch.Redis')
    def test_falls_back_to_sync_when_redis_unreachable(self, mock_redis):
        mock_redis.from_url.return_value.ping.side_effect = RedisConnectionError("refused")

        dispatcher = build_dispatcher(NotificationConfig())

        self.assertIsInstance(dispatcher, LoggingNotificationDispatcher)


class TestCompositeDispatcher(unittest.TestCase):

    def test_failure_in_one_dispatcher_does_not_stop_others(self):
        failing = Mock()
        failing.dispatch.side_effect = RuntimeError("boom")
        logging_dispatcher = LoggingNotificationDispatcher()
        composite = CompositeDispatcher([failing, logging_dispatcher])

        result = composite.dispatch(sample_event())

        self.assertEqual(result, "match:m-1")
        self.assertEqual(len(logging_dispatcher.dispatched), 1)


class TestRealtimePublisher(unittest.TestCase):

    def test_publishes_json_on_user_channel(self):
        redis_conn = Mock()
        redis_conn.publish.return_value = 2
        publisher = RealtimePublisher(redis_conn)

        self.assertTrue(publisher.publish("recruiter-1", sample_event()))

        channel, body = redis_conn.publish.call_args[0]
        self.assertEqual(channel, "notifications:user:recruiter-1")
        self.assertEqual(json.loads(body)['title'], "High-score match: 92%")

    def test_custom_channel_prefix(self):
        publisher = RealtimePublisher(Mock(), channel_prefix="tenant-a:user:")
        self.assertEqual(publisher.channel_for("u1"), "tenant-a:user:u1")

    def test_redis_failure_is_swallowed(self):
        redis_conn = Mock()
        redis_conn.publish.side_effect = RedisError("down")
        publisher = RealtimePublisher(redis_conn)

        self.assertFalse(publisher.publish("recruiter-1", sample_event()))

    def test_no_recipient_is_not_published(self):
        redis_conn = Mock()
        self.assertFalse(RealtimePublisher(redis_conn).publish(None, sample_event()))
        redis_conn.publish.assert_not_called()


if __name__ == '__main__':
    unittest.main()
