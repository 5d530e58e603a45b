from typing import List, Optional

from pydantic import BaseModel, Field

from arena.models.dispute_model import DisputeOutcome

class DisputeFilingRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000, description="What the reporter contests")
    evidence: List[str] = Field(default_factory=list, description="Evidence URLs (screenshots, replays)")

class DisputeResolutionRequest(BaseModel):
    outcome: DisputeOutcome = Field(..., description="reporter-upheld, reporter-denied or match-voided")
    winner_override: Optional[str] = Field(None, description="Award the match to this participant instead")
    note: Optional[str] = Field(None, max_length=2000, description="Ruling note shown to both players")
