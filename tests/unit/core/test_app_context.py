import unittest
from unittest.mock import MagicMock, patch

from core.app_context import AppContext
from core.config_loader import AppConfig, DatabaseConfig, NotificationConfig, TrackerConfig
from notification.dispatch import LoggingNotificationDispatcher


def sync_config(**overrides):
    data = dict(
        database=DatabaseConfig(url="sqlite://"),
        notifications=NotificationConfig(use_async_queue=False),
    )
    data.update(overrides)
    return AppConfig(**data)


class TestAppContext(unittest.TestCase):

    def test_build_sync_context(self):
        context = AppContext.build(sync_config())

        self.assertIsInstance(context.dispatcher, LoggingNotificationDispatcher)
        self.assertIsNone(context.realtime)

    @patch('core.app_context.RealtimePublisher')
    def test_build_with_realtime(self, mock_publisher):
        config = sync_config(tracker=TrackerConfig(realtime_enabled=True))

        context = AppContext.build(config)

        mock_publisher.from_url.assert_called_once_with("redis://localhost:6379/0", "notifications:user:")
        self.assertIs(context.realtime, mock_publisher.from_url.return_value)

    def test_services_share_the_repository_and_dispatcher(self):
        context = AppContext.build(sync_config())
        repo = MagicMock()

        tracker = context.tracker(repo)
        resolver = context.resolver(repo)
        monitor = context.budget_monitor(repo)

        self.assertIs(tracker.repo, repo)
        self.assertIs(tracker.notifier.dispatcher, context.dispatcher)
        self.assertIs(resolver.notifier.repo, repo)
        self.assertIs(monitor.notifier.dispatcher, context.dispatcher)
        self.assertIs(context.analytics(repo).config, context.config.analytics)


if __name__ == '__main__':
    unittest.main()
