from .base import Base, JSONType
from .match import MatchRecord
from .weights import AttributeWeightProfile
from .experiment import ExperimentDefinition, ExperimentVariantResult
from .notification import NotificationRecord
from .budget import BudgetThreshold

__all__ = [
    'Base',
    'JSONType',
    'MatchRecord',
    'AttributeWeightProfile',
    'ExperimentDefinition',
    'ExperimentVariantResult',
    'NotificationRecord',
    'BudgetThreshold',
]
