#!/usr/bin/env python3
"""
Scoring Module - explainable 0-100 match scores.

Public API:
- compute_score: Score one candidate against one job
- rank_jobs: Score and order many jobs for one candidate
- meets_minimums: Report unmet component minima of a weight profile

Modules:
- models.py: CandidateProfile, JobProfile, WeightProfile, MatchScore
- factors.py: Capped sub-factors (skills, location, work setting, salary, experience, company size)
- culture_fit.py: Culture alignment, wellbeing fit, burnout risk
- calculator.py: Composition and ranking
"""

from core.scorer.models import CandidateProfile, JobProfile, WeightProfile, MatchScore
from core.scorer.calculator import compute_score, rank_jobs, meets_minimums, sort_key

__all__ = [
    'CandidateProfile',
    'JobProfile',
    'WeightProfile',
    'MatchScore',
    'compute_score',
    'rank_jobs',
    'meets_minimums',
    'sort_key',
]
