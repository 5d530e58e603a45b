from typing import Optional

from pydantic import BaseModel, Field, validator

from arena.models.bracket_model import ResolutionSource

class MatchResultRequest(BaseModel):
    own_score: int = Field(..., ge=0, description="Score of the submitting player")
    opponent_score: int = Field(..., ge=0, description="Score of the opponent")
    evidence_url: Optional[str] = Field(None, description="Link to a screenshot or replay")

class AwardMatchRequest(BaseModel):
    winner_id: str = Field(..., description="Participant the match is awarded to")
    source: ResolutionSource = Field(ResolutionSource.ADMIN, description="admin or forfeit")

    @validator('source')
    def source_is_manual(cls, v):
        if ResolutionSource(v) not in (ResolutionSource.ADMIN, ResolutionSource.FORFEIT):
            raise ValueError('An award can only be an admin decision or a forfeit')
        return v
