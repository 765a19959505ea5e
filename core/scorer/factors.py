#!/usr/bin/env python3
"""
Sub-factor scoring.

Each factor returns a FactorResult whose points never exceed the factor's
cap. Missing attributes on either side award zero points for that factor;
they are never an error.
"""

from typing import List, Optional, Sequence
import logging

from core.config_loader import ScoringConfig
from core.scorer.models import CandidateProfile, JobProfile, FactorResult

logger = logging.getLogger(__name__)

FACTOR_SKILLS = "skills"
FACTOR_LOCATION = "location"
FACTOR_WORK_SETTING = "work_setting"
FACTOR_SALARY = "salary"
FACTOR_EXPERIENCE = "experience"
FACTOR_COMPANY_SIZE = "company_size"


def _clean(values: Optional[Sequence[str]]) -> List[str]:
    """Strip values and drop blanks; an empty string is a substring of everything."""
    out = []
    for v in values or ():
        if v is None:
            continue
        s = str(v).strip()
        if s:
            out.append(s)
    return out


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def skills_overlap(candidate_skills: Sequence[str], required_skills: Sequence[str]) -> List[str]:
    """
    Required skills covered by at least one candidate skill.

    Matching is case-insensitive and substring-tolerant in either direction,
    so "React" covers "React Native" and "PostgreSQL" covers "SQL".
    Order follows the job's listing.
    """
    cand = [s.lower() for s in _clean(candidate_skills)]
    matched = []
    seen = set()
    for req in _clean(required_skills):
        key = req.lower()
        if key in seen:
            continue
        if any(c in key or key in c for c in cand):
            matched.append(req)
            seen.add(key)
    return matched


def score_skills(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.skills_max
    required = _clean(job.required_skills)
    result = FactorResult(name=FACTOR_SKILLS, max_points=cap)
    if not required or not _clean(candidate.technical_skills):
        return result

    # De-duplicate required skills case-insensitively for the denominator
    unique_required = {s.lower() for s in required}
    matched = skills_overlap(candidate.technical_skills, required)
    ratio = len(matched) / max(len(unique_required), 1)

    result.points = float(round(min(cap, ratio * cap)))
    result.details = {'matched': matched, 'ratio': ratio}
    if matched:
        result.reason = f"{len(matched)} of {len(unique_required)} required skills match"
    return result


def score_location(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.location_max
    result = FactorResult(name=FACTOR_LOCATION, max_points=cap)
    job_location = _norm(job.location)
    if not job_location:
        return result

    preferred = [p.lower() for p in _clean(candidate.preferred_locations)]
    if not preferred:
        result.points = round(cap * config.location_partial_fraction, 2)
        result.reason = "Job location is specified; candidate has no location preference"
        return result

    if any(p in job_location or job_location in p for p in preferred):
        result.points = cap
        result.reason = f"Location matches preference: {job.location}"
    return result


def score_work_setting(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.work_setting_max
    result = FactorResult(name=FACTOR_WORK_SETTING, max_points=cap)
    wanted = _norm(candidate.preferred_work_setting)
    if wanted and wanted == _norm(job.work_setting):
        result.points = cap
        result.reason = f"Work setting matches: {job.work_setting}"
    return result


def score_salary(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.salary_max
    result = FactorResult(name=FACTOR_SALARY, max_points=cap)
    desired = candidate.desired_salary_min
    if desired is None or desired <= 0 or job.salary_min is None:
        return result

    if job.salary_max is not None and job.salary_max >= desired:
        result.points = cap
        result.reason = "Salary range meets expectations"
    elif job.salary_min >= desired * config.salary_near_ratio:
        result.points = round(cap * config.salary_partial_fraction, 2)
        result.reason = "Salary is close to expectations"
    return result


def score_experience(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.experience_max
    result = FactorResult(name=FACTOR_EXPERIENCE, max_points=cap)
    years = candidate.years_of_experience
    if years is None:
        return result

    required = job.min_years_experience
    if required is None:
        return result

    if required <= 0 or years >= required:
        result.points = cap
        result.reason = "Experience level is appropriate"
    elif years > 0:
        result.points = round(cap * years / required, 2)
        result.reason = f"{years:g} of {required:g} required years of experience"
    return result


def score_company_size(candidate: CandidateProfile, job: JobProfile, config: ScoringConfig) -> FactorResult:
    cap = config.company_size_max
    result = FactorResult(name=FACTOR_COMPANY_SIZE, max_points=cap)
    size = _norm(job.company_size)
    if size and size in {s.lower() for s in _clean(candidate.preferred_company_sizes)}:
        result.points = cap
        result.reason = "Company size matches preference"
    return result


TECHNICAL_FACTORS = (score_skills, score_experience)
CONTEXT_FACTORS = (score_location, score_work_setting, score_salary, score_company_size)
