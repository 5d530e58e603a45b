from datetime import datetime
from uuid import uuid4
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"

class DisputeOutcome(str, Enum):
    REPORTER_UPHELD = "reporter-upheld"
    REPORTER_DENIED = "reporter-denied"
    MATCH_VOIDED = "match-voided"
    # closed without a ruling because an upstream overturn reset the match
    SUPERSEDED = "superseded"

class Dispute(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    tournament_id: str
    match_id: str
    status: DisputeStatus = DisputeStatus.OPEN
    reporter_id: str
    reason: str = Field(min_length=1, max_length=2000)
    evidence: List[str] = Field(default_factory=list) # opaque evidence URLs
    match_status_before: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    outcome: Optional[DisputeOutcome] = None
    winner_id: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True

    @property
    def is_open(self) -> bool:
        return self.status == DisputeStatus.OPEN
