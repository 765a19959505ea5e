from core.analytics.models import (
    TimeRange,
    AnalyticsSummary,
    AttributeCorrelation,
    TrendBucket,
    PipelineConversion,
    WeightRecommendation,
)
from core.analytics.engine import OutcomeAnalyticsEngine

__all__ = [
    'OutcomeAnalyticsEngine',
    'TimeRange',
    'AnalyticsSummary',
    'AttributeCorrelation',
    'TrendBucket',
    'PipelineConversion',
    'WeightRecommendation',
]
