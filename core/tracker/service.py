#!/usr/bin/env python3
"""
Match Outcome Tracker - persists scored matches and their lifecycle.

Lifecycle of a MatchRecord:
    created -> viewed / recommended / applied (one-way flags, any order)
            -> pending -> hired | rejected | withdrawn (terminal)

Records are append-only: re-scoring a pair creates a new record. Only the
lifecycle flags and outcome fields are updated in place, each through a
conditional UPDATE so concurrent writers cannot clobber one another.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from core.config_loader import TrackerConfig
from core.errors import (
    MatchNotFoundError, OutcomeConflictError, InvalidTransitionError, PersistenceUnavailableError,
)
from core.scorer.models import MatchScore
from core.utils import utcnow, ensure_utc, parse_uuid
from database.models import MatchRecord
from database.models.match import ALL_OUTCOMES, OUTCOME_HIRED, OUTCOME_PENDING
from database.repository import DecisionRepository
from database.uow import write_scope
from notification.message_builder import NotificationMessageBuilder
from notification.notifier import ThresholdNotifier, MATCH_WINDOW
from notification.realtime import RealtimePublisher

logger = logging.getLogger(__name__)


@dataclass
class MatchContext:
    """Who and what a score belongs to."""
    candidate_id: str
    job_id: str
    owner_user_id: str
    tenant_id: Optional[str] = None
    was_recommended: bool = False


class MatchOutcomeTracker:
    def __init__(
        self,
        repo: DecisionRepository,
        notifier: Optional[ThresholdNotifier] = None,
        config: Optional[TrackerConfig] = None,
        realtime: Optional[RealtimePublisher] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repo = repo
        self.notifier = notifier
        self.config = config or TrackerConfig()
        self.realtime = realtime
        self.clock = clock

    def _load(self, match_id: Any) -> MatchRecord:
        key = parse_uuid(match_id)
        record = self.repo.matches.get_by_id(key) if key is not None else None
        if record is None:
            raise MatchNotFoundError(f"Match {match_id} not found")
        return record

    def record_match(self, score: MatchScore, context: MatchContext) -> MatchRecord:
        """
        Persist a scored match and alert on high scores.

        The record is committed before any notification is attempted.
        """
        now = self.clock()
        weights = score.weight_profile
        record = MatchRecord(
            candidate_id=str(context.candidate_id),
            job_id=str(context.job_id),
            owner_user_id=str(context.owner_user_id),
            tenant_id=context.tenant_id,
            overall_score=score.overall,
            skill_score=score.skill,
            technical_score=score.technical,
            culture_score=score.culture,
            wellbeing_score=score.wellbeing,
            burnout_risk=score.burnout_risk,
            top_attributes=list(score.top_attributes),
            reasons=list(score.reasons),
            score_breakdown=dict(score.breakdown),
            was_recommended=bool(context.was_recommended),
            weight_profile_version=weights.version,
            attribute_weights=weights.snapshot(),
            created_at=now,
            updated_at=now,
        )
        with write_scope(self.repo, "record match"):
            self.repo.matches.add(record)

        logger.info(
            f"Recorded match {record.id}: candidate={record.candidate_id} "
            f"job={record.job_id} overall={score.overall}"
        )

        if score.overall >= self.config.high_score_threshold:
            try:
                self.notify_high_score(record)
            except PersistenceUnavailableError as e:
                # The record is durable; the alert can be re-attempted with notify_high_score
                logger.error(f"High-score alert for match {record.id} not recorded: {e}")
        return record

    def notify_high_score(self, record: MatchRecord) -> bool:
        """Emit the once-per-record high-score alert. Safe to call repeatedly."""
        if self.notifier is None:
            return False
        event = NotificationMessageBuilder.build_high_score_match_event(record)
        emitted = self.notifier.notify_once(f"match:{record.id}", MATCH_WINDOW, lambda: event)
        if emitted and self.realtime is not None and self.config.realtime_enabled:
            self.realtime.publish(record.owner_user_id, event)
        return emitted

    def _set_flag(self, match_id: Any, flag: str) -> MatchRecord:
        record = self._load(match_id)
        with write_scope(self.repo, f"set {flag} on match {match_id}"):
            flipped = self.repo.matches.set_flag(record.id, flag, self.clock())
        if flipped:
            logger.info(f"Match {record.id}: {flag} set")
        return self._load(record.id)

    def mark_viewed(self, match_id: Any) -> MatchRecord:
        return self._set_flag(match_id, 'was_viewed')

    def mark_recommended(self, match_id: Any) -> MatchRecord:
        return self._set_flag(match_id, 'was_recommended')

    def mark_applied(self, match_id: Any) -> MatchRecord:
        return self._set_flag(match_id, 'was_applied')

    def record_outcome(
        self,
        match_id: Any,
        outcome: str,
        outcome_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        correction: bool = False
    ) -> MatchRecord:
        """
        Set the outcome of a match.

        A terminal outcome is written at most once. Replacing it requires
        correction=True, which bumps outcome_revision; otherwise
        OutcomeConflictError is raised and the record is left untouched.
        """
        if outcome not in ALL_OUTCOMES:
            raise ValueError(f"Unknown outcome: {outcome}")

        record = self._load(match_id)
        if record.has_terminal_outcome and not correction:
            raise OutcomeConflictError(record.id, record.outcome, outcome)

        now = self.clock()
        outcome_date = ensure_utc(outcome_date) or now

        time_to_hire_days = None
        if outcome == OUTCOME_HIRED:
            created_at = ensure_utc(record.created_at)
            time_to_hire_days = max(0, (outcome_date - created_at).days)

        with write_scope(self.repo, f"record outcome on match {match_id}"):
            updated = self.repo.matches.set_outcome(
                record.id,
                outcome,
                outcome_date,
                notes,
                time_to_hire_days,
                now,
                correction=correction
            )
            if not updated:
                # Lost the race against another terminal write
                current = self.repo.matches.get_by_id(record.id)
                raise OutcomeConflictError(record.id, current.outcome if current else None, outcome)

        if outcome == OUTCOME_PENDING:
            logger.info(f"Match {record.id}: outcome pending")
        else:
            logger.info(
                f"Match {record.id}: outcome {outcome}"
                + (" (correction)" if correction else "")
            )
        return self._load(record.id)

    def record_retention(
        self,
        match_id: Any,
        retention_months: int,
        performance_rating: Optional[int] = None
    ) -> MatchRecord:
        """Post-hire metrics; only hired matches carry them."""
        if retention_months is None or retention_months < 0:
            raise ValueError("retention_months must be a non-negative integer")

        record = self._load(match_id)
        if record.outcome != OUTCOME_HIRED:
            raise InvalidTransitionError(
                f"Match {record.id} has outcome {record.outcome!r}; retention applies to hired matches only"
            )

        with write_scope(self.repo, f"record retention on match {match_id}"):
            self.repo.matches.set_retention(record.id, retention_months, performance_rating, self.clock())
        return self._load(record.id)
