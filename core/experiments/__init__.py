from core.experiments.significance import SignificanceResult, VariantCounts, evaluate
from core.experiments.resolver import ExperimentResolver, AutoAnalysisReport

__all__ = [
    'ExperimentResolver',
    'AutoAnalysisReport',
    'SignificanceResult',
    'VariantCounts',
    'evaluate',
]
