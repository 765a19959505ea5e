#!/usr/bin/env python3
"""
Scoring Models - Read-only attribute bags and score results.
"""

from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field, fields, asdict


def _known_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names and v is not None}


@dataclass(frozen=True)
class CandidateProfile:
    """Structured candidate attributes. Every field is optional."""
    candidate_id: Optional[str] = None
    technical_skills: Tuple[str, ...] = ()
    preferred_locations: Tuple[str, ...] = ()
    preferred_work_setting: Optional[str] = None
    desired_salary_min: Optional[float] = None
    years_of_experience: Optional[float] = None
    preferred_company_sizes: Tuple[str, ...] = ()
    culture_preferences: Dict[str, float] = field(default_factory=dict)  # dimension -> 1..10
    wellbeing_needs: Dict[str, float] = field(default_factory=dict)  # factor -> importance 1..10
    wellbeing_satisfaction: Dict[str, float] = field(default_factory=dict)  # factor -> current level 1..10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateProfile":
        kwargs = _known_kwargs(cls, data)
        for key in ('technical_skills', 'preferred_locations', 'preferred_company_sizes'):
            if key in kwargs:
                kwargs[key] = tuple(kwargs[key])
        return cls(**kwargs)


@dataclass(frozen=True)
class JobProfile:
    """Structured job attributes. Every field except job_id is optional."""
    job_id: Any = None
    title: Optional[str] = None
    required_skills: Tuple[str, ...] = ()
    location: Optional[str] = None
    work_setting: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    min_years_experience: Optional[float] = None
    company_size: Optional[str] = None
    culture_profile: Dict[str, float] = field(default_factory=dict)  # dimension -> 1..10
    wellbeing_offerings: Dict[str, float] = field(default_factory=dict)  # factor -> level 1..10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobProfile":
        kwargs = _known_kwargs(cls, data)
        if 'required_skills' in kwargs:
            kwargs['required_skills'] = tuple(kwargs['required_skills'])
        return cls(**kwargs)


@dataclass(frozen=True)
class WeightProfile:
    """
    Tenant weight configuration as consumed by the scorer.

    Weights are non-negative and need not sum to 100; normalized() turns
    them into shares at use time.
    """
    technical: float = 50.0
    culture: float = 30.0
    wellbeing: float = 20.0
    min_technical: Optional[float] = None
    min_culture: Optional[float] = None
    min_wellbeing: Optional[float] = None
    version: str = "default"

    def normalized(self) -> Dict[str, float]:
        weights = {
            'technical': max(0.0, float(self.technical or 0.0)),
            'culture': max(0.0, float(self.culture or 0.0)),
            'wellbeing': max(0.0, float(self.wellbeing or 0.0)),
        }
        total = sum(weights.values())
        if total <= 0:
            return {k: 1.0 / 3.0 for k in weights}
        return {k: v / total for k, v in weights.items()}

    def minimums(self) -> Dict[str, Optional[float]]:
        return {
            'technical': self.min_technical,
            'culture': self.min_culture,
            'wellbeing': self.min_wellbeing,
        }

    def snapshot(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: Any) -> "WeightProfile":
        """Build from an AttributeWeightProfile row (or anything shaped like one)."""
        def _num(name, default=None):
            value = getattr(record, name, default)
            return float(value) if value is not None else default

        return cls(
            technical=_num('technical_weight', 0.0),
            culture=_num('culture_weight', 0.0),
            wellbeing=_num('wellbeing_weight', 0.0),
            min_technical=_num('min_technical_score'),
            min_culture=_num('min_culture_score'),
            min_wellbeing=_num('min_wellbeing_score'),
            version=str(getattr(record, 'version', None) or 'default'),
        )


@dataclass
class FactorResult:
    """Points awarded by one sub-factor, with its justification."""
    name: str
    points: float = 0.0
    max_points: float = 0.0
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MatchScore:
    """Complete score for one candidate/job pairing."""
    overall: float = 0.0

    # Component scores on a 0-100 scale; None when not computable
    skill: Optional[float] = None
    technical: Optional[float] = None
    culture: Optional[float] = None
    wellbeing: Optional[float] = None
    burnout_risk: Optional[float] = None

    matched_skills: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)
    top_attributes: List[Dict[str, Any]] = field(default_factory=list)

    weight_profile: WeightProfile = field(default_factory=WeightProfile)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['weight_profile'] = self.weight_profile.snapshot()
        return data
