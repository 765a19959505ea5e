#!/usr/bin/env python3
"""
Culture alignment, wellbeing fit and burnout risk.

Culture preferences, job culture profiles, wellbeing needs and offerings
all use a 1-10 rating scale.
"""

from typing import Dict, Optional, Tuple, List

import numpy as np

from core.utils import clamp

RATING_MIN = 1.0
RATING_MAX = 10.0
RATING_SPAN = RATING_MAX - RATING_MIN


def _rating(value) -> Optional[float]:
    try:
        return clamp(float(value), RATING_MIN, RATING_MAX)
    except (TypeError, ValueError):
        return None


def culture_alignment(preferences: Dict[str, float], profile: Dict[str, float]) -> Optional[float]:
    """
    Mean per-dimension alignment (0-100) over dimensions both sides rate.

    Alignment for one dimension is 1 - |preference - profile| / 9.
    Returns None when the two sides share no dimension.
    """
    diffs = []
    for dim, pref in (preferences or {}).items():
        if dim not in (profile or {}):
            continue
        a, b = _rating(pref), _rating(profile[dim])
        if a is None or b is None:
            continue
        diffs.append(abs(a - b))
    if not diffs:
        return None
    alignment = 1.0 - float(np.mean(diffs)) / RATING_SPAN
    return round(clamp(alignment * 100.0, 0.0, 100.0), 2)


def wellbeing_fit(
    needs: Dict[str, float],
    offerings: Dict[str, float],
    need_floor: float = 7,
    tolerance: float = 2,
) -> Tuple[Optional[float], List[str]]:
    """
    Share (0-100) of important needs the job meets, plus the met factors.

    A need is important when rated at or above need_floor, and met when the
    job offers at least need - tolerance. Returns (None, []) when the
    candidate has no important needs or the job publishes no offerings.
    """
    important = {}
    for factor, level in (needs or {}).items():
        r = _rating(level)
        if r is not None and r >= need_floor:
            important[factor] = r
    if not important or not offerings:
        return None, []

    met = []
    for factor, need in sorted(important.items()):
        offered = _rating(offerings.get(factor))
        if offered is not None and offered >= need - tolerance:
            met.append(factor)
    return round(100.0 * len(met) / len(important), 2), met


def burnout_risk(needs: Dict[str, float], satisfaction: Dict[str, float]) -> Optional[float]:
    """
    Burnout risk (0-100) from the gap between need and current satisfaction.

    Each factor with a positive gap adds gap / 10 * need * 10; the sum is
    averaged over every factor rated on both sides. Returns None when there
    is nothing to compare.
    """
    total = 0.0
    count = 0
    for factor, need in (needs or {}).items():
        if factor not in (satisfaction or {}):
            continue
        n, s = _rating(need), _rating(satisfaction[factor])
        if n is None or s is None:
            continue
        count += 1
        gap = n - s
        if gap > 0:
            total += (gap / 10.0) * n * 10.0
    if count == 0:
        return None
    return float(min(100, round(total / count)))
