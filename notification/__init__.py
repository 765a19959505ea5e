"""
Notification Module

Exactly-once emission of decision events (high-score matches, experiment
winners, budget alerts) to the notification boundary.

Usage:
    from notification import ThresholdNotifier, build_dispatcher, DEFAULT_WINDOW

    notifier = ThresholdNotifier(repo, build_dispatcher(config.notifications))
    notifier.notify_once("budget:42:warning", DEFAULT_WINDOW, build_event)
"""

from notification.events import NotificationEvent

from notification.dispatch import (
    NotificationDispatcher,
    LoggingNotificationDispatcher,
    QueueNotificationDispatcher,
    CompositeDispatcher,
    build_dispatcher,
)

from notification.notifier import (
    ThresholdNotifier,
    MATCH_WINDOW,
    DEFAULT_WINDOW,
)

from notification.realtime import RealtimePublisher
from notification.message_builder import NotificationMessageBuilder

__all__ = [
    # Events
    'NotificationEvent',
    'NotificationMessageBuilder',
    # Dispatch
    'NotificationDispatcher',
    'LoggingNotificationDispatcher',
    'QueueNotificationDispatcher',
    'CompositeDispatcher',
    'build_dispatcher',
    'RealtimePublisher',
    # Dedupe gate
    'ThresholdNotifier',
    'MATCH_WINDOW',
    'DEFAULT_WINDOW',
]
