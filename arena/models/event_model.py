from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum

from pydantic import BaseModel, Field

class EventType(str, Enum):
    MATCH_SCHEDULED = "match.scheduled"
    MATCH_RESOLVED = "match.resolved"
    DISPUTE_OPENED = "dispute.opened"
    DISPUTE_RESOLVED = "dispute.resolved"
    TOURNAMENT_COMPLETED = "tournament.completed"
    TOURNAMENT_REOPENED = "tournament.reopened"
    PAYOUT_PENDING = "payout.pending"
    PAYOUT_VOIDED = "payout.voided"

class DomainEvent(BaseModel):
    name: EventType
    tournament_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=datetime.utcnow)
    match_id: Optional[str] = None

    class Config:
        use_enum_values = True
