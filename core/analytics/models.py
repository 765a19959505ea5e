from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional, Any

from core.utils import utcnow, ensure_utc

PRESETS = {
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
    '1y': timedelta(days=365),
}


@dataclass(frozen=True)
class TimeRange:
    """Inclusive [start, end] window over MatchRecord.created_at; None means open."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'start', ensure_utc(self.start))
        object.__setattr__(self, 'end', ensure_utc(self.end))
        if self.start and self.end and self.start > self.end:
            raise ValueError("TimeRange start must not be after end")

    @classmethod
    def preset(cls, name: str, now: Optional[datetime] = None) -> "TimeRange":
        if name not in PRESETS:
            raise ValueError(f"Unknown time range preset: {name}")
        now = ensure_utc(now) or utcnow()
        return cls(start=now - PRESETS[name], end=now)

    @classmethod
    def all_time(cls) -> "TimeRange":
        return cls()


@dataclass
class AnalyticsSummary:
    """
    Outcome summary for one owner and time range.

    Rates are percentages on a 0-100 scale, not fractions:
    success_rate is 100 * total_hires / total_matches and score_accuracy is
    100 * hires among high scores / count of high scores.
    """
    total_matches: int = 0
    total_hires: int = 0
    success_rate: float = 0.0  # percent
    average_time_to_hire: Optional[float] = None  # days
    score_accuracy: float = 0.0  # percent
    average_scores: Dict[str, Optional[float]] = field(
        default_factory=lambda: {'all': None, 'hired': None, 'rejected': None}
    )
    component_importance: Dict[str, int] = field(
        default_factory=lambda: {'culture': 33, 'wellbeing': 33, 'technical': 34}
    )
    score_distribution: Dict[str, int] = field(
        default_factory=lambda: {'high': 0, 'medium': 0, 'low': 0}
    )


@dataclass
class AttributeCorrelation:
    name: str
    total: int
    hired: int
    correlation: float
    insight: str
    sufficient_data: bool


@dataclass
class TrendBucket:
    key: str
    total_matches: int
    hires: int
    average_score: float
    success_rate: float  # percent


@dataclass
class PipelineConversion:
    stages: Dict[str, int] = field(default_factory=dict)
    conversion_rates: Dict[str, float] = field(default_factory=dict)


@dataclass
class WeightRecommendation:
    """Proposed tenant weights; advisory only, never applied automatically."""
    current: Dict[str, float]
    proposed: Dict[str, int]
    confidence: float
    hired_count: int
    rationale: str
    details: Dict[str, Any] = field(default_factory=dict)
