#!/usr/bin/env python3
"""
Two-proportion z-test for two-variant email experiments.

    p  = (rate_a * n_a + rate_b * n_b) / (n_a + n_b)
    se = sqrt(p * (1 - p) * (1/n_a + 1/n_b))
    z  = |rate_a - rate_b| / se

Significant when z exceeds the threshold (1.96, 95% two-sided).
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from database.models.experiment import (
    METRIC_OPEN_RATE, METRIC_CLICK_RATE, METRIC_CONVERSION_RATE, WINNER_A, WINNER_B,
)

# Primary metric -> counter divided by sent
METRIC_COUNTERS = {
    METRIC_OPEN_RATE: 'opened',
    METRIC_CLICK_RATE: 'clicked',
    METRIC_CONVERSION_RATE: 'converted',
}

SIGNIFICANT_CONFIDENCE = 95
MAX_INTERPOLATED_CONFIDENCE = 90


@dataclass(frozen=True)
class VariantCounts:
    sent: int = 0
    opened: int = 0
    clicked: int = 0
    converted: int = 0


@dataclass(frozen=True)
class SignificanceResult:
    is_significant: bool
    winner: Optional[str] = None
    confidence_level: int = 0
    improvement: float = 0.0  # percent of the winner's rate over the loser's
    z_score: float = 0.0
    rate_a: float = 0.0
    rate_b: float = 0.0


def metric_rate(variant: Any, primary_metric: str) -> float:
    """Rate of the primary metric for one variant (0 when nothing was sent)."""
    counter = METRIC_COUNTERS.get(primary_metric)
    if counter is None:
        raise ValueError(f"Unknown primary metric: {primary_metric}")
    sent = int(getattr(variant, 'sent', 0) or 0)
    if sent <= 0:
        return 0.0
    return int(getattr(variant, counter, 0) or 0) / sent


def evaluate(
    primary_metric: str,
    variant_a: Any,
    variant_b: Any,
    min_sample_size: int = 30,
    z_threshold: float = 1.96
) -> SignificanceResult:
    """Decide whether A and B differ on the primary metric."""
    if primary_metric not in METRIC_COUNTERS:
        raise ValueError(f"Unknown primary metric: {primary_metric}")

    variant_a = variant_a or VariantCounts()
    variant_b = variant_b or VariantCounts()
    n_a = int(getattr(variant_a, 'sent', 0) or 0)
    n_b = int(getattr(variant_b, 'sent', 0) or 0)

    if n_a < min_sample_size or n_b < min_sample_size:
        return SignificanceResult(is_significant=False)

    rate_a = metric_rate(variant_a, primary_metric)
    rate_b = metric_rate(variant_b, primary_metric)

    pooled = (rate_a * n_a + rate_b * n_b) / (n_a + n_b)
    se = math.sqrt(pooled * (1 - pooled) * (1 / n_a + 1 / n_b))
    if se == 0:
        return SignificanceResult(is_significant=False, rate_a=rate_a, rate_b=rate_b)

    z = abs(rate_a - rate_b) / se
    if z <= z_threshold:
        confidence = min(MAX_INTERPOLATED_CONFIDENCE, round(z / z_threshold * SIGNIFICANT_CONFIDENCE))
        return SignificanceResult(
            is_significant=False,
            confidence_level=int(confidence),
            z_score=round(z, 4),
            rate_a=rate_a,
            rate_b=rate_b,
        )

    if rate_a > rate_b:
        winner, winner_rate, loser_rate = WINNER_A, rate_a, rate_b
    else:
        winner, winner_rate, loser_rate = WINNER_B, rate_b, rate_a
    improvement = (winner_rate - loser_rate) / loser_rate * 100 if loser_rate > 0 else 0.0

    return SignificanceResult(
        is_significant=True,
        winner=winner,
        confidence_level=SIGNIFICANT_CONFIDENCE,
        improvement=round(improvement, 2),
        z_score=round(z, 4),
        rate_a=rate_a,
        rate_b=rate_b,
    )
