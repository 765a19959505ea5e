#!/usr/bin/env python3
"""
Experiment Resolver - significance-driven lifecycle for two-variant tests.

State machine:
    draft -> active -> completed (terminal)
    active <-> paused

Completion happens only here, only on a significant result, and only via
a compare-and-set on status. The writer whose update lands is the one that
notifies; every later call returns the stored winner and re-attempts the
winner alert if the ledger never recorded it.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import ExperimentConfig
from core.errors import (
    DecisionCoreException, ExperimentNotFoundError, ExperimentConflictError, InvalidTransitionError,
    PersistenceUnavailableError,
)
from core.experiments.significance import SignificanceResult, evaluate, metric_rate
from core.utils import utcnow, parse_uuid, safe_float
from database.models import ExperimentDefinition
from database.models.experiment import (
    STATUS_DRAFT, STATUS_ACTIVE, STATUS_PAUSED, STATUS_COMPLETED, WINNER_A, WINNER_B,
)
from database.repository import DecisionRepository
from database.uow import write_scope
from notification.message_builder import NotificationMessageBuilder
from notification.notifier import ThresholdNotifier

logger = logging.getLogger(__name__)

# (from, to) pairs the public lifecycle methods may perform
TRANSITIONS = {
    'start': (STATUS_DRAFT, STATUS_ACTIVE),
    'pause': (STATUS_ACTIVE, STATUS_PAUSED),
    'resume': (STATUS_PAUSED, STATUS_ACTIVE),
}


@dataclass
class AutoAnalysisReport:
    analyzed: int = 0
    winners_found: int = 0
    notifications_sent: int = 0
    alerts_recovered: int = 0
    failed: List[str] = field(default_factory=list)


class ExperimentResolver:
    def __init__(
        self,
        repo: DecisionRepository,
        notifier: Optional[ThresholdNotifier] = None,
        config: Optional[ExperimentConfig] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repo = repo
        self.notifier = notifier
        self.config = config or ExperimentConfig()
        self.clock = clock

    def _load(self, experiment_id: Any) -> ExperimentDefinition:
        key = parse_uuid(experiment_id)
        experiment = self.repo.experiments.get_by_id(key) if key is not None else None
        if experiment is None:
            raise ExperimentNotFoundError(f"Experiment {experiment_id} not found")
        return experiment

    def _evaluate(self, experiment: ExperimentDefinition) -> SignificanceResult:
        variants = self.repo.experiments.get_variant_results(experiment.id)
        return evaluate(
            experiment.primary_metric,
            variants.get(WINNER_A),
            variants.get(WINNER_B),
            min_sample_size=self.config.min_sample_size,
            z_threshold=self.config.z_threshold,
        )

    def stored_result(self, experiment: ExperimentDefinition) -> SignificanceResult:
        """The decision recorded on a completed experiment."""
        variants = self.repo.experiments.get_variant_results(experiment.id)
        rate_a = metric_rate(variants[WINNER_A], experiment.primary_metric) if WINNER_A in variants else 0.0
        rate_b = metric_rate(variants[WINNER_B], experiment.primary_metric) if WINNER_B in variants else 0.0
        winner = experiment.winner_variant if experiment.winner_variant in (WINNER_A, WINNER_B) else None
        return SignificanceResult(
            is_significant=winner is not None,
            winner=winner,
            confidence_level=int(experiment.confidence_level or 0),
            improvement=safe_float(experiment.improvement, 0.0),
            z_score=safe_float(experiment.z_score, 0.0),
            rate_a=rate_a,
            rate_b=rate_b,
        )

    @staticmethod
    def winner_key(experiment_id: Any) -> str:
        return f"experiment:{experiment_id}:winner"

    # -- Lifecycle -----------------------------------------------------------------

    def _transition(self, experiment_id: Any, action: str) -> ExperimentDefinition:
        from_status, to_status = TRANSITIONS[action]
        experiment = self._load(experiment_id)
        if experiment.status != from_status:
            raise InvalidTransitionError(
                f"Cannot {action} experiment {experiment.id} in status {experiment.status!r}"
            )

        now = self.clock()
        extra = {'started_at': now} if action == 'start' else {}
        with write_scope(self.repo, f"{action} experiment {experiment.id}"):
            moved = self.repo.experiments.transition_status(experiment.id, from_status, to_status, now, **extra)
            if not moved:
                current = self.repo.experiments.get_by_id(experiment.id)
                raise InvalidTransitionError(
                    f"Cannot {action} experiment {experiment.id}: status changed to "
                    f"{current.status if current else None!r}"
                )

        logger.info(f"Experiment {experiment.id}: {from_status} -> {to_status}")
        return self._load(experiment.id)

    def start(self, experiment_id: Any) -> ExperimentDefinition:
        return self._transition(experiment_id, 'start')

    def pause(self, experiment_id: Any) -> ExperimentDefinition:
        return self._transition(experiment_id, 'pause')

    def resume(self, experiment_id: Any) -> ExperimentDefinition:
        return self._transition(experiment_id, 'resume')

    def record_counts(self, experiment_id: Any, variant: str, **deltas: int) -> None:
        """Add engagement counts to a variant while the experiment is running."""
        experiment = self._load(experiment_id)
        if experiment.status not in (STATUS_ACTIVE, STATUS_PAUSED):
            raise InvalidTransitionError(
                f"Experiment {experiment.id} is {experiment.status!r}; counts are frozen"
            )
        with write_scope(self.repo, f"record counts for experiment {experiment.id}"):
            self.repo.experiments.increment_counts(experiment.id, variant, **deltas)

    # -- Resolution ----------------------------------------------------------------

    def _complete(self, experiment: ExperimentDefinition, result: SignificanceResult) -> Tuple[bool, bool]:
        """Compare-and-set the winner. Returns (won_the_update, notified)."""
        with write_scope(self.repo, f"complete experiment {experiment.id}"):
            won = self.repo.experiments.complete_with_winner(
                experiment.id,
                result.winner,
                result.confidence_level,
                result.improvement,
                result.z_score,
                self.clock()
            )
        if not won:
            logger.info(f"Experiment {experiment.id} was completed by another writer")
            return False, False

        logger.info(
            f"Experiment {experiment.id}: winner {result.winner} "
            f"({result.confidence_level}% confidence, {result.improvement}% improvement)"
        )
        return True, self._try_notify_winner(experiment.id)

    def notify_winner(self, experiment_id: Any) -> bool:
        """
        Emit the winner alert for a completed experiment. Safe to call repeatedly.

        Emits only while the ledger holds no alert for the experiment, so a
        lost alert can be re-attempted at any time without repeating a
        delivered one.
        """
        if self.notifier is None:
            return False
        experiment = self._load(experiment_id)
        if experiment.status != STATUS_COMPLETED or experiment.winner_variant not in (WINNER_A, WINNER_B):
            return False

        key = self.winner_key(experiment.id)
        try:
            already_sent = self.repo.notifications.get_by_key(key) is not None
        except SQLAlchemyError as e:
            self.repo.rollback()
            raise PersistenceUnavailableError(f"Notification ledger unavailable for {key}") from e
        if already_sent:
            return False

        result = self.stored_result(experiment)
        return self.notifier.notify_once(
            key,
            self.notifier.default_window,
            lambda: NotificationMessageBuilder.build_experiment_winner_event(experiment, result)
        )

    def _try_notify_winner(self, experiment_id: Any) -> bool:
        try:
            return self.notify_winner(experiment_id)
        except PersistenceUnavailableError as e:
            # The winner is durable; notify_winner re-attempts the alert
            logger.error(f"Winner alert for experiment {experiment_id} not recorded: {e}")
            return False

    def _resolve(self, experiment_id: Any) -> Tuple[SignificanceResult, bool, bool]:
        experiment = self._load(experiment_id)
        if experiment.status == STATUS_COMPLETED:
            return self.stored_result(experiment), False, self._try_notify_winner(experiment.id)

        result = self._evaluate(experiment)
        if experiment.status != STATUS_ACTIVE:
            return replace(result, is_significant=False, winner=None, improvement=0.0), False, False
        if not result.is_significant:
            return result, False, False

        won, notified = self._complete(experiment, result)
        if not won:
            return self.stored_result(self._load(experiment.id)), False, False
        return result, True, notified

    def evaluate_experiment(self, experiment_id: Any) -> SignificanceResult:
        """
        Evaluate an experiment and complete it when the result is significant.

        Completed experiments are returned as stored; inactive ones are
        evaluated without any state change.
        """
        result, _, _ = self._resolve(experiment_id)
        return result

    def declare_winner(self, experiment_id: Any, winner: str) -> SignificanceResult:
        """Manually confirm a winner; only a significant evaluation agreeing with it is accepted."""
        if winner not in (WINNER_A, WINNER_B):
            raise ValueError(f"Unknown variant: {winner}")

        experiment = self._load(experiment_id)
        if experiment.status == STATUS_COMPLETED:
            raise ExperimentConflictError(
                f"Experiment {experiment.id} already completed with winner {experiment.winner_variant!r}"
            )
        if experiment.status != STATUS_ACTIVE:
            raise InvalidTransitionError(
                f"Cannot declare a winner for experiment {experiment.id} in status {experiment.status!r}"
            )

        result = self._evaluate(experiment)
        if not result.is_significant or result.winner != winner:
            raise InvalidTransitionError(
                f"Results for experiment {experiment.id} do not support variant {winner} "
                f"(significant={result.is_significant}, winner={result.winner})"
            )

        won, _ = self._complete(experiment, result)
        if not won:
            raise ExperimentConflictError(f"Experiment {experiment.id} was completed concurrently")
        return result

    def auto_analyze(self) -> AutoAnalysisReport:
        """Scheduled pass over active experiments that have no winner yet."""
        report = AutoAnalysisReport()
        try:
            experiment_ids = [e.id for e in self.repo.experiments.list_active_without_winner()]
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Could not list active experiments: {e}")
            return report

        logger.info(f"Auto-analyzing {len(experiment_ids)} active experiments")
        for experiment_id in experiment_ids:
            try:
                _, completed, notified = self._resolve(experiment_id)
            except (DecisionCoreException, SQLAlchemyError, ValueError) as e:
                self.repo.rollback()
                logger.error(f"Auto-analysis failed for experiment {experiment_id}: {e}")
                report.failed.append(str(experiment_id))
                continue
            report.analyzed += 1
            if completed:
                report.winners_found += 1
            if notified:
                report.notifications_sent += 1

        self._recover_winner_alerts(report)

        logger.info(
            f"Auto-analysis complete: {report.analyzed} analyzed, "
            f"{report.winners_found} winners, {report.notifications_sent} notifications, "
            f"{report.alerts_recovered} recovered alerts"
        )
        return report

    def _recover_winner_alerts(self, report: AutoAnalysisReport) -> None:
        """Re-attempt winner alerts that were lost after a recent completion."""
        if self.notifier is None:
            return
        cutoff = self.clock() - timedelta(hours=self.config.winner_alert_retry_hours)
        try:
            experiment_ids = [e.id for e in self.repo.experiments.list_completed_since(cutoff)]
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Could not list completed experiments: {e}")
            return

        for experiment_id in experiment_ids:
            try:
                recovered = self._try_notify_winner(experiment_id)
            except (DecisionCoreException, SQLAlchemyError) as e:
                self.repo.rollback()
                logger.error(f"Winner alert recovery failed for experiment {experiment_id}: {e}")
                continue
            if recovered:
                logger.info(f"Recovered winner alert for experiment {experiment_id}")
                report.alerts_recovered += 1
                report.notifications_sent += 1
