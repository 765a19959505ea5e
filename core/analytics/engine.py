#!/usr/bin/env python3
"""
Outcome Analytics Engine - read-only aggregation over MatchRecords.

Produces success rates, time-to-hire, score accuracy, component importance,
attribute correlation, calendar trends and the hiring funnel for one owner
and time range. Every computation is a pure function of the loaded records;
read failures degrade to the empty result instead of raising.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
from sqlalchemy.exc import SQLAlchemyError

from core.analytics.models import (
    TimeRange, AnalyticsSummary, AttributeCorrelation, TrendBucket,
    PipelineConversion, WeightRecommendation,
)
from core.config_loader import AnalyticsConfig
from core.errors import PersistenceUnavailableError
from core.scorer.models import WeightProfile
from core.utils import utcnow, ensure_utc, safe_float
from database.models import MatchRecord
from database.models.match import OUTCOME_HIRED, OUTCOME_REJECTED
from database.repository import DecisionRepository

logger = logging.getLogger(__name__)

DIMENSIONS = ('culture', 'wellbeing', 'technical')
DIMENSION_COLUMNS = {
    'culture': 'culture_score',
    'wellbeing': 'wellbeing_score',
    'technical': 'technical_score',
}
EVEN_SPLIT = {'culture': 33, 'wellbeing': 33, 'technical': 34}
# Remainder points go to later dimensions first, so an exact tie reproduces EVEN_SPLIT
_TIE_PRIORITY = {'technical': 0, 'wellbeing': 1, 'culture': 2}

BUCKET_DAY = 'day'
BUCKET_WEEK = 'week'
BUCKET_MONTH = 'month'
BUCKETINGS = (BUCKET_DAY, BUCKET_WEEK, BUCKET_MONTH)

INSUFFICIENT_DATA = "Insufficient data for reliable correlation"


def _percent(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return round(100.0 * numerator / denominator, 2)


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round(float(np.mean(values)), 2)


def largest_remainder(shares: Dict[str, float], total: int = 100) -> Dict[str, int]:
    """Round non-negative shares to integers that sum exactly to total."""
    weight_sum = sum(max(0.0, v) for v in shares.values())
    if weight_sum <= 0:
        return dict(EVEN_SPLIT)

    exact = {k: total * max(0.0, v) / weight_sum for k, v in shares.items()}
    rounded = {k: int(np.floor(v)) for k, v in exact.items()}
    remainder = total - sum(rounded.values())
    order = sorted(exact, key=lambda k: (-(exact[k] - rounded[k]), _TIE_PRIORITY.get(k, 99), k))
    for k in order[:remainder]:
        rounded[k] += 1
    return rounded


def bucket_key(moment: datetime, bucketing: str) -> str:
    """Calendar bucket of a UTC timestamp. Weeks start on Monday and are keyed by that date."""
    moment = ensure_utc(moment)
    if bucketing == BUCKET_DAY:
        return moment.date().isoformat()
    if bucketing == BUCKET_WEEK:
        monday = moment.date() - timedelta(days=moment.weekday())
        return monday.isoformat()
    if bucketing == BUCKET_MONTH:
        return f"{moment.year:04d}-{moment.month:02d}"
    raise ValueError(f"Unknown bucketing: {bucketing}")


class OutcomeAnalyticsEngine:
    def __init__(
        self,
        repo: DecisionRepository,
        config: Optional[AnalyticsConfig] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.repo = repo
        self.config = config or AnalyticsConfig()
        self.clock = clock

    def _load(self, owner_id: str, time_range: Optional[TimeRange], now: datetime) -> List[MatchRecord]:
        time_range = time_range or TimeRange.all_time()
        # An open end resolves against the single reference clock of the call
        end = time_range.end or now
        try:
            return list(self.repo.matches.list_for_owner(owner_id, time_range.start, end))
        except (SQLAlchemyError, PersistenceUnavailableError) as e:
            logger.warning(f"Analytics read failed for owner {owner_id}; returning empty result: {e}")
            try:
                self.repo.rollback()
            except SQLAlchemyError:
                logger.warning("Rollback after failed analytics read also failed")
            return []

    def aggregate(self, owner_id: str, time_range: Optional[TimeRange] = None) -> AnalyticsSummary:
        records = self._load(owner_id, time_range, self.clock())
        return self.summarize(records)

    def summarize(self, records: Sequence[MatchRecord]) -> AnalyticsSummary:
        summary = AnalyticsSummary()
        if not records:
            return summary

        hired = [r for r in records if r.outcome == OUTCOME_HIRED]
        rejected = [r for r in records if r.outcome == OUTCOME_REJECTED]
        scores = [safe_float(r.overall_score, 0.0) for r in records]

        summary.total_matches = len(records)
        summary.total_hires = len(hired)
        summary.success_rate = _percent(len(hired), len(records))

        durations = [
            (ensure_utc(r.outcome_date) - ensure_utc(r.created_at)).total_seconds() / 86400.0
            for r in hired if r.outcome_date is not None and r.created_at is not None
        ]
        summary.average_time_to_hire = _mean(durations)

        high_cutoff = self.config.high_score_cutoff
        medium_cutoff = self.config.medium_score_cutoff
        high = [r for r, s in zip(records, scores) if s >= high_cutoff]
        summary.score_accuracy = _percent(sum(1 for r in high if r.outcome == OUTCOME_HIRED), len(high))

        summary.average_scores = {
            'all': _mean(scores),
            'hired': _mean([safe_float(r.overall_score, 0.0) for r in hired]),
            'rejected': _mean([safe_float(r.overall_score, 0.0) for r in rejected]),
        }
        summary.component_importance = self.component_importance(hired)
        summary.score_distribution = {
            'high': len(high),
            'medium': sum(1 for s in scores if medium_cutoff <= s < high_cutoff),
            'low': sum(1 for s in scores if s < medium_cutoff),
        }
        return summary

    @staticmethod
    def component_importance(hired: Sequence[MatchRecord]) -> Dict[str, int]:
        """
        Relative importance (percent, sums to 100) of each dimension.

        Mean dimension score among hired records, normalised across
        dimensions. Associative, not causal. A dimension with no hired data
        contributes 0; no hired data at all gives the even split.
        """
        means = {}
        for dim in DIMENSIONS:
            column = DIMENSION_COLUMNS[dim]
            values = [safe_float(getattr(r, column)) for r in hired]
            values = [v for v in values if v is not None]
            means[dim] = float(np.mean(values)) if values else 0.0
        return largest_remainder(means)

    def correlate_attributes(
        self,
        owner_id: str,
        time_range: Optional[TimeRange] = None,
        limit: Optional[int] = None
    ) -> List[AttributeCorrelation]:
        """How often each top attribute appears among hired vs all records."""
        records = self._load(owner_id, time_range, self.clock())
        limit = self.config.top_attribute_limit if limit is None else limit
        min_support = self.config.min_attribute_support

        totals: Dict[str, int] = defaultdict(int)
        hires: Dict[str, int] = defaultdict(int)
        for record in records:
            # Count each attribute once per record
            names = {
                a.get('name') for a in (record.top_attributes or [])
                if isinstance(a, dict) and a.get('name')
            }
            for name in names:
                totals[name] += 1
                if record.outcome == OUTCOME_HIRED:
                    hires[name] += 1

        results = []
        for name, total in totals.items():
            hired = hires[name]
            sufficient = total >= min_support
            results.append(AttributeCorrelation(
                name=name,
                total=total,
                hired=hired,
                correlation=round(hired / total, 4) if total else 0.0,
                insight=(
                    f"{hired} out of {total} candidates with this attribute were hired"
                    if sufficient else INSUFFICIENT_DATA
                ),
                sufficient_data=sufficient,
            ))

        results.sort(key=lambda c: (-c.correlation, -c.total, c.name))
        return results[:limit]

    def trend(
        self,
        owner_id: str,
        time_range: Optional[TimeRange] = None,
        bucketing: str = BUCKET_WEEK
    ) -> List[TrendBucket]:
        if bucketing not in BUCKETINGS:
            raise ValueError(f"Unknown bucketing: {bucketing}")

        records = self._load(owner_id, time_range, self.clock())
        grouped: Dict[str, List[MatchRecord]] = defaultdict(list)
        for record in records:
            grouped[bucket_key(record.created_at, bucketing)].append(record)

        buckets = []
        for key in sorted(grouped):
            rows = grouped[key]
            hires = sum(1 for r in rows if r.outcome == OUTCOME_HIRED)
            buckets.append(TrendBucket(
                key=key,
                total_matches=len(rows),
                hires=hires,
                average_score=_mean([safe_float(r.overall_score, 0.0) for r in rows]) or 0.0,
                success_rate=_percent(hires, len(rows)),
            ))
        return buckets

    def pipeline_conversion(self, owner_id: str, time_range: Optional[TimeRange] = None) -> PipelineConversion:
        """Funnel matched -> recommended -> viewed -> applied -> hired."""
        records = self._load(owner_id, time_range, self.clock())
        stages = {
            'matched': len(records),
            'recommended': sum(1 for r in records if r.was_recommended),
            'viewed': sum(1 for r in records if r.was_viewed),
            'applied': sum(1 for r in records if r.was_applied),
            'hired': sum(1 for r in records if r.outcome == OUTCOME_HIRED),
        }
        conversion_rates = {
            'match_to_recommend': _percent(stages['recommended'], stages['matched']),
            'recommend_to_view': _percent(stages['viewed'], stages['recommended']),
            'view_to_apply': _percent(stages['applied'], stages['viewed']),
            'apply_to_hire': _percent(stages['hired'], stages['applied']),
            'overall': _percent(stages['hired'], stages['matched']),
        }
        return PipelineConversion(stages=stages, conversion_rates=conversion_rates)

    def recommend_weights(
        self,
        owner_id: str,
        time_range: Optional[TimeRange] = None,
        current: Optional[WeightProfile] = None
    ) -> WeightRecommendation:
        """
        Propose weights proportional to component importance, blended with
        the current profile by how much hired data backs the proposal.
        """
        current = current or WeightProfile()
        records = self._load(owner_id, time_range, self.clock())
        hired = [r for r in records if r.outcome == OUTCOME_HIRED]

        current_shares = {k: v * 100.0 for k, v in current.normalized().items()}
        importance = self.component_importance(hired)
        full_confidence = max(1, self.config.min_hires_for_full_confidence)
        confidence = min(1.0, len(hired) / full_confidence)

        blended = {
            dim: (1.0 - confidence) * current_shares[dim] + confidence * importance[dim]
            for dim in DIMENSIONS
        }
        proposed = largest_remainder(blended)

        if not hired:
            rationale = "No hired outcomes yet; keeping the current weights"
        else:
            leader = max(DIMENSIONS, key=lambda d: (importance[d], -_TIE_PRIORITY[d]))
            rationale = (
                f"Based on {len(hired)} hires, {leader} scores are highest among hired candidates "
                f"(confidence {confidence:.0%})"
            )

        return WeightRecommendation(
            current={k: round(v, 2) for k, v in current_shares.items()},
            proposed=proposed,
            confidence=round(confidence, 4),
            hired_count=len(hired),
            rationale=rationale,
            details={'component_importance': importance, 'current_version': current.version},
        )
