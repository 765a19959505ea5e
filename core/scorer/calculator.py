#!/usr/bin/env python3
"""
Match Score Calculator.

Combines capped sub-factor points into an overall 0-100 score:

    overall = clamp(skills + location + work_setting + salary
                    + experience + company_size + culture + wellbeing, 0, 100)

Culture and wellbeing share one bonus block whose split follows the
normalised culture/wellbeing weights of the tenant profile. The function is
pure: identical inputs always give an identical MatchScore.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from core.config_loader import ScoringConfig
from core.scorer.culture_fit import culture_alignment, wellbeing_fit, burnout_risk
from core.scorer.factors import (
    FactorResult, TECHNICAL_FACTORS, CONTEXT_FACTORS, FACTOR_SKILLS, FACTOR_EXPERIENCE,
)
from core.scorer.models import CandidateProfile, JobProfile, WeightProfile, MatchScore
from core.utils import clamp

logger = logging.getLogger(__name__)

FACTOR_CULTURE = "culture"
FACTOR_WELLBEING = "wellbeing"
COMPONENTS = ("technical", "culture", "wellbeing")
TOP_ATTRIBUTE_LIMIT = 10


def _culture_wellbeing_caps(weights: WeightProfile, block: float) -> Tuple[float, float]:
    shares = weights.normalized()
    culture, wellbeing = shares['culture'], shares['wellbeing']
    if culture + wellbeing <= 0:
        return block / 2.0, block / 2.0
    return (block * culture / (culture + wellbeing),
            block * wellbeing / (culture + wellbeing))


def _technical_component(candidate: CandidateProfile, job: JobProfile,
                         skills: FactorResult, experience: FactorResult) -> Optional[float]:
    has_skills = bool(candidate.technical_skills) and bool(job.required_skills)
    has_experience = candidate.years_of_experience is not None and job.min_years_experience is not None
    if not has_skills and not has_experience:
        return None
    earned = skills.points + experience.points
    available = (skills.max_points if has_skills else 0.0) + (experience.max_points if has_experience else 0.0)
    if available <= 0:
        return None
    return round(clamp(100.0 * earned / available, 0.0, 100.0), 2)


def _top_attributes(factors: List[FactorResult], matched_skills: List[str]) -> List[Dict[str, Any]]:
    entries = [
        {'name': f.name, 'contribution': round(f.points, 2)}
        for f in factors if f.points > 0
    ]
    skill_points = next((f.points for f in factors if f.name == FACTOR_SKILLS), 0.0)
    if matched_skills and skill_points > 0:
        share = round(skill_points / len(matched_skills), 2)
        entries.extend(
            {'name': f"skill:{s.lower()}", 'contribution': share} for s in matched_skills
        )
    entries.sort(key=lambda e: (-e['contribution'], e['name']))
    return entries[:TOP_ATTRIBUTE_LIMIT]


def compute_score(
    candidate: CandidateProfile,
    job: JobProfile,
    weights: Optional[WeightProfile] = None,
    config: Optional[ScoringConfig] = None,
) -> MatchScore:
    """
    Score one candidate against one job.

    Missing attributes on either side contribute zero for that factor.
    Component scores that cannot be computed are None.
    """
    weights = weights or WeightProfile()
    config = config or ScoringConfig()

    skills = TECHNICAL_FACTORS[0](candidate, job, config)
    experience = TECHNICAL_FACTORS[1](candidate, job, config)
    context = [factor(candidate, job, config) for factor in CONTEXT_FACTORS]

    culture_cap, wellbeing_cap = _culture_wellbeing_caps(weights, config.culture_wellbeing_max)

    culture_score = culture_alignment(candidate.culture_preferences, job.culture_profile)
    culture = FactorResult(name=FACTOR_CULTURE, max_points=culture_cap)
    if culture_score is not None:
        culture.points = round(culture_cap * culture_score / 100.0, 2)
        if culture.points > 0:
            culture.reason = f"Culture alignment {culture_score:.0f}%"

    wellbeing_score, met_needs = wellbeing_fit(
        candidate.wellbeing_needs,
        job.wellbeing_offerings,
        need_floor=config.wellbeing_need_floor,
        tolerance=config.wellbeing_tolerance,
    )
    wellbeing = FactorResult(name=FACTOR_WELLBEING, max_points=wellbeing_cap)
    if wellbeing_score is not None:
        wellbeing.points = round(wellbeing_cap * wellbeing_score / 100.0, 2)
        if met_needs:
            wellbeing.reason = f"Meets wellbeing needs: {', '.join(met_needs)}"

    factors = [skills, *context, experience, culture, wellbeing]
    breakdown = {f.name: round(min(f.points, f.max_points), 2) for f in factors}
    overall = round(clamp(sum(breakdown.values()), 0.0, 100.0), 2)

    matched_skills = list(skills.details.get('matched', []))
    skill_component = None
    if 'ratio' in skills.details:
        skill_component = round(100.0 * skills.details['ratio'], 2)

    return MatchScore(
        overall=overall,
        skill=skill_component,
        technical=_technical_component(candidate, job, skills, experience),
        culture=culture_score,
        wellbeing=wellbeing_score,
        burnout_risk=burnout_risk(candidate.wellbeing_needs, candidate.wellbeing_satisfaction),
        matched_skills=matched_skills,
        reasons=[f.reason for f in factors if f.points > 0 and f.reason],
        breakdown=breakdown,
        top_attributes=_top_attributes(factors, matched_skills),
        weight_profile=weights,
    )


def meets_minimums(score: MatchScore, weights: WeightProfile) -> Dict[str, Dict[str, Optional[float]]]:
    """
    Components whose profile minimum is not met.

    A component with no computable score fails a configured minimum.
    Returns an empty dict when every minimum is satisfied.
    """
    failures = {}
    for component, minimum in weights.minimums().items():
        if minimum is None:
            continue
        actual = getattr(score, component)
        if actual is None or actual < minimum:
            failures[component] = {'score': actual, 'minimum': minimum}
    return failures


def sort_key(job_id: Any, score: MatchScore) -> Tuple[float, Any]:
    """Overall descending, then job id ascending."""
    return (-score.overall, job_id)


def rank_jobs(
    candidate: CandidateProfile,
    jobs: Iterable[JobProfile],
    weights: Optional[WeightProfile] = None,
    config: Optional[ScoringConfig] = None,
) -> List[Tuple[JobProfile, MatchScore]]:
    """Score a candidate against many jobs, best first."""
    scored = [(job, compute_score(candidate, job, weights, config)) for job in jobs]
    scored.sort(key=lambda pair: sort_key(pair[0].job_id, pair[1]))
    logger.debug("Ranked %d jobs for candidate %s", len(scored), candidate.candidate_id)
    return scored
