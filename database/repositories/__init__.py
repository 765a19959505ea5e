from database.repositories.base import BaseRepository
from database.repositories.match import MatchRecordRepository
from database.repositories.experiment import ExperimentRepository
from database.repositories.notification import NotificationRecordRepository
from database.repositories.weights import WeightProfileRepository
from database.repositories.budget import BudgetThresholdRepository

__all__ = [
    'BaseRepository',
    'MatchRecordRepository',
    'ExperimentRepository',
    'NotificationRecordRepository',
    'WeightProfileRepository',
    'BudgetThresholdRepository',
]
