#!/usr/bin/env python3
"""
Budget Monitor - threshold alerts on spending.

Spend amounts are supplied by the caller (billing lives outside the core).
Each active threshold is checked against the spend of its current period;
the highest alert level reached is emitted through the ThresholdNotifier
with a per-level dedupe key, so an escalation from warning to critical
still alerts while repeats inside the cool-down window do not.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from core.config_loader import BudgetConfig
from core.utils import utcnow, ensure_utc, safe_float
from database.models import BudgetThreshold
from database.models.budget import PERIOD_DAILY, PERIOD_WEEKLY, PERIOD_MONTHLY, PERIOD_TOTAL
from database.repository import DecisionRepository
from notification.message_builder import NotificationMessageBuilder
from notification.notifier import ThresholdNotifier

logger = logging.getLogger(__name__)

LEVEL_WARNING = 'warning'
LEVEL_CRITICAL = 'critical'
LEVEL_EXCEEDED = 'exceeded'

TOTAL_PERIOD_START = datetime(2020, 1, 1, tzinfo=timezone.utc)


@dataclass
class BudgetCheckResult:
    threshold_id: str
    spent: float
    percentage_used: float
    alert_level: Optional[str]
    period_start: datetime
    period_end: datetime


@dataclass
class BudgetRunReport:
    checked: int = 0
    alerts_sent: int = 0
    skipped: List[str] = field(default_factory=list)
    results: List[BudgetCheckResult] = field(default_factory=list)


def period_bounds(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the UTC calendar period containing now. Weeks start on Monday."""
    now = ensure_utc(now)
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == PERIOD_DAILY:
        return day_start, day_start + timedelta(days=1)
    if period == PERIOD_WEEKLY:
        start = day_start - timedelta(days=now.weekday())
        return start, start + timedelta(days=7)
    if period == PERIOD_TOTAL:
        return TOTAL_PERIOD_START, now
    if period != PERIOD_MONTHLY:
        logger.warning(f"Unknown budget period {period!r}; using monthly")

    start = day_start.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class BudgetMonitor:
    def __init__(
        self,
        repo: DecisionRepository,
        notifier: Optional[ThresholdNotifier] = None,
        config: Optional[BudgetConfig] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repo = repo
        self.notifier = notifier
        self.config = config or BudgetConfig()
        self.clock = clock

    def check(self, threshold: BudgetThreshold, spent: float, now: Optional[datetime] = None) -> BudgetCheckResult:
        """Percentage of the threshold used and the alert level it reaches."""
        amount = safe_float(threshold.threshold_amount, 0.0)
        if amount <= 0:
            raise ValueError(f"Budget threshold {threshold.id} has non-positive amount {threshold.threshold_amount}")

        now = ensure_utc(now) or self.clock()
        start, end = period_bounds(threshold.period, now)
        spent = max(0.0, safe_float(spent, 0.0))
        percentage = round(spent / amount * 100)

        warning = threshold.warning_percentage or self.config.warning_percentage
        critical = threshold.critical_percentage or self.config.critical_percentage
        if percentage >= 100:
            level = LEVEL_EXCEEDED
        elif percentage >= critical:
            level = LEVEL_CRITICAL
        elif percentage >= warning:
            level = LEVEL_WARNING
        else:
            level = None

        return BudgetCheckResult(
            threshold_id=str(threshold.id),
            spent=spent,
            percentage_used=float(percentage),
            alert_level=level,
            period_start=start,
            period_end=end,
        )

    def run(self, spend_by_threshold: Mapping[str, float]) -> BudgetRunReport:
        """
        Check every active threshold.

        spend_by_threshold maps a threshold id (as a string) to the amount
        spent in its current period, in the threshold's minor currency unit.
        """
        report = BudgetRunReport()
        now = self.clock()
        try:
            thresholds = self.repo.budgets.list_active()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Could not list budget thresholds: {e}")
            return report

        for threshold in thresholds:
            key = str(threshold.id)
            if key not in spend_by_threshold:
                logger.debug(f"No spend reported for budget threshold {key}")
                report.skipped.append(key)
                continue
            try:
                result = self.check(threshold, spend_by_threshold[key], now)
            except ValueError as e:
                logger.warning(f"Skipping budget threshold {key}: {e}")
                report.skipped.append(key)
                continue

            report.checked += 1
            report.results.append(result)
            if result.alert_level is None or self.notifier is None:
                continue

            emitted = self.notifier.notify_once(
                f"budget:{key}:{result.alert_level}",
                self.notifier.default_window,
                lambda t=threshold, r=result: NotificationMessageBuilder.build_budget_alert_event(
                    t, r.alert_level, r.spent, r.percentage_used
                )
            )
            if emitted:
                report.alerts_sent += 1
                logger.info(f"Budget {threshold.name}: {result.alert_level} at {result.percentage_used}%")

        return report
