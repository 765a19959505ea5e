from typing import Any, Optional

from database.models import MatchRecord, ExperimentDefinition, BudgetThreshold
from notification.events import (
    NotificationEvent, KIND_HIGH_SCORE_MATCH, KIND_EXPERIMENT_WINNER, KIND_BUDGET_ALERT,
)

BUDGET_LEVEL_TITLES = {
    'warning': "Budget warning",
    'critical': "Budget critical",
    'exceeded': "Budget exceeded",
}


class NotificationMessageBuilder:
    @staticmethod
    def format_score(score: Optional[float]) -> str:
        if score is None:
            return "n/a"
        return f"{float(score):.0f}%"

    @staticmethod
    def format_amount(amount_minor: Any, currency: str) -> str:
        """Amounts are stored in minor units (halalas, cents)."""
        return f"{float(amount_minor or 0) / 100:,.2f} {currency}"

    @staticmethod
    def build_high_score_match_event(record: MatchRecord) -> NotificationEvent:
        score = NotificationMessageBuilder.format_score(record.overall_score)
        top = [a.get('name') for a in (record.top_attributes or [])[:3] if isinstance(a, dict)]
        message = f"Candidate {record.candidate_id} scored {score} for job {record.job_id}"
        if top:
            message += f" (top factors: {', '.join(top)})"
        return NotificationEvent(
            kind=KIND_HIGH_SCORE_MATCH,
            recipient_user_id=record.owner_user_id,
            title=f"High-score match: {score}",
            message=message,
            related_entity_type='match',
            related_entity_id=str(record.id),
            metadata={
                'candidate_id': record.candidate_id,
                'job_id': record.job_id,
                'overall_score': record.overall_score,
                'top_attributes': record.top_attributes or [],
            }
        )

    @staticmethod
    def build_experiment_winner_event(experiment: ExperimentDefinition, result: Any) -> NotificationEvent:
        """result is a SignificanceResult (or anything with the same fields)."""
        winner = (result.winner or '').upper()
        return NotificationEvent(
            kind=KIND_EXPERIMENT_WINNER,
            recipient_user_id=experiment.owner_user_id,
            title=f"A/B test winner: {experiment.name}",
            message=(
                f"Variant {winner} won on {experiment.primary_metric} with "
                f"{result.confidence_level}% confidence "
                f"({result.improvement:.1f}% improvement)"
            ),
            related_entity_type='experiment',
            related_entity_id=str(experiment.id),
            metadata={
                'winner': result.winner,
                'confidence_level': result.confidence_level,
                'improvement': result.improvement,
                'z_score': result.z_score,
                'primary_metric': experiment.primary_metric,
            }
        )

    @staticmethod
    def build_budget_alert_event(
        threshold: BudgetThreshold,
        level: str,
        spent: float,
        percentage_used: float
    ) -> NotificationEvent:
        currency = threshold.currency or ''
        spent_text = NotificationMessageBuilder.format_amount(spent, currency)
        limit_text = NotificationMessageBuilder.format_amount(threshold.threshold_amount, currency)
        return NotificationEvent(
            kind=KIND_BUDGET_ALERT,
            recipient_user_id=threshold.owner_user_id,
            title=f"{BUDGET_LEVEL_TITLES.get(level, 'Budget alert')}: {threshold.name}",
            message=f"{percentage_used:.1f}% of the {threshold.period} budget used ({spent_text} of {limit_text})",
            related_entity_type='budget_threshold',
            related_entity_id=str(threshold.id),
            metadata={
                'alert_level': level,
                'spent': spent,
                'threshold_amount': threshold.threshold_amount,
                'percentage_used': percentage_used,
                'period': threshold.period,
            }
        )
