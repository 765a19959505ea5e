from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

from core.utils import utcnow

KIND_HIGH_SCORE_MATCH = "high_score_match"
KIND_EXPERIMENT_WINNER = "experiment_winner"
KIND_BUDGET_ALERT = "budget_alert"


class NotificationEvent(BaseModel):
    """
    A durable notification emitted by the decision core.

    Serialised as-is onto the fan-out queue and the real-time channel.
    """
    kind: str
    recipient_user_id: Optional[str] = None
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    dedupe_key: Optional[str] = None
    emitted_at: datetime = Field(default_factory=utcnow)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')
