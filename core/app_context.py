from dataclasses import dataclass
from typing import Optional

from core.analytics.engine import OutcomeAnalyticsEngine
from core.budget.monitor import BudgetMonitor
from core.config_loader import AppConfig
from core.experiments.resolver import ExperimentResolver
from core.tracker.service import MatchOutcomeTracker
from database.repository import DecisionRepository
from notification.dispatch import NotificationDispatcher, build_dispatcher, DEFAULT_REDIS_URL
from notification.notifier import ThresholdNotifier
from notification.realtime import RealtimePublisher


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Process-wide pieces (config, dispatcher, real-time publisher) are built
    once. Services that touch the database are built per unit of work from
    the DecisionRepository yielded by decision_uow().
    """
    config: AppConfig
    dispatcher: NotificationDispatcher
    realtime: Optional[RealtimePublisher] = None

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance (no DB session attached)
        """
        dispatcher = build_dispatcher(config.notifications)

        realtime = None
        if config.tracker.realtime_enabled:
            realtime = cls._build_realtime_publisher(config)

        return cls(config=config, dispatcher=dispatcher, realtime=realtime)

    @staticmethod
    def _build_realtime_publisher(config: AppConfig) -> RealtimePublisher:
        """Publisher connects lazily; publish failures are logged, never raised."""
        notification_config = config.notifications
        return RealtimePublisher.from_url(
            notification_config.redis_url or DEFAULT_REDIS_URL,
            notification_config.realtime_channel_prefix
        )

    def notifier(self, repo: DecisionRepository) -> ThresholdNotifier:
        return ThresholdNotifier(repo, self.dispatcher, self.config.notifications)

    def tracker(self, repo: DecisionRepository) -> MatchOutcomeTracker:
        return MatchOutcomeTracker(
            repo,
            notifier=self.notifier(repo),
            config=self.config.tracker,
            realtime=self.realtime
        )

    def analytics(self, repo: DecisionRepository) -> OutcomeAnalyticsEngine:
        return OutcomeAnalyticsEngine(repo, self.config.analytics)

    def resolver(self, repo: DecisionRepository) -> ExperimentResolver:
        return ExperimentResolver(repo, notifier=self.notifier(repo), config=self.config.experiments)

    def budget_monitor(self, repo: DecisionRepository) -> BudgetMonitor:
        return BudgetMonitor(repo, notifier=self.notifier(repo), config=self.config.budget)
