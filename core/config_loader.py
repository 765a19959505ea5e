import yaml
import os
from typing import Optional
from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    url: str


class ScheduleConfig(BaseModel):
    interval_seconds: int = 3600


class ScoringConfig(BaseModel):
    """
    Configuration for the MatchScoreCalculator.

    Each sub-factor is capped at its maximum contribution (points out of 100)
    before summation so that no single factor dominates the overall score.
    """
    skills_max: float = 25.0
    location_max: float = 20.0
    work_setting_max: float = 15.0
    salary_max: float = 20.0
    experience_max: float = 10.0
    company_size_max: float = 10.0
    culture_wellbeing_max: float = 10.0

    # Partial credits
    location_partial_fraction: float = 0.5  # job lists a location, candidate has no preference
    salary_partial_fraction: float = 0.5
    salary_near_ratio: float = 0.8  # job floor within 80% of desired minimum

    # Wellbeing matching
    wellbeing_need_floor: int = 7  # needs rated >= this are considered important
    wellbeing_tolerance: int = 2  # offering may fall short of the need by this much


class TrackerConfig(BaseModel):
    """Configuration for the MatchOutcomeTracker."""
    high_score_threshold: float = 85.0
    realtime_enabled: bool = False


class AnalyticsConfig(BaseModel):
    """Configuration for the OutcomeAnalyticsEngine."""
    high_score_cutoff: float = 80.0
    medium_score_cutoff: float = 60.0
    min_attribute_support: int = 5
    top_attribute_limit: int = 20
    min_hires_for_full_confidence: int = 20


class ExperimentConfig(BaseModel):
    """Configuration for the ExperimentResolver significance test."""
    min_sample_size: int = 30
    z_threshold: float = 1.96  # 95% two-sided
    # auto_analyze re-attempts missing winner alerts for experiments completed this recently
    winner_alert_retry_hours: int = 24


class NotificationConfig(BaseModel):
    """
    Configuration for notifications.

    Controls the dedupe cool-down window and how emitted events are handed
    to the fan-out boundary.
    """
    enabled: bool = True

    # Deduplication settings
    cool_down_hours: int = 24  # Window for budget/experiment class events

    # Redis queue settings
    use_async_queue: bool = True  # Use Redis queue for fan-out hand-off
    redis_url: Optional[str] = None  # Override default Redis URL
    queue_name: str = "notifications"
    task_path: str = "notification_fanout.tasks.deliver"  # Resolved by the external worker

    # Real-time pub/sub
    realtime_channel_prefix: str = "notifications:user:"


class BudgetConfig(BaseModel):
    """Defaults applied to budget thresholds that leave percentages unset."""
    warning_percentage: int = 80
    critical_percentage: int = 95


class AppConfig(BaseModel):
    database: DatabaseConfig
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    experiments: ExperimentConfig = Field(default_factory=ExperimentConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from root), try absolute or adjusted path
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if 'database' not in data or data['database'] is None:
            data['database'] = {}
        data['database']['url'] = env_db_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if 'notifications' not in data or data['notifications'] is None:
            data['notifications'] = {}
        data['notifications']['redis_url'] = env_redis_url

    return AppConfig(**data)
