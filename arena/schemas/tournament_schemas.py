from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from arena.models.tournament_model import (
    PaymentStatus,
    PrizePool,
    SeedingMode,
    TournamentFormat,
    TournamentStatus,
)

class TournamentCreationRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100, description="Name of the tournament")
    format: TournamentFormat = Field(TournamentFormat.SINGLE_ELIMINATION, description="Bracket format")
    capacity: int = Field(16, ge=2, description="Maximum number of registrations")
    start_date: Optional[datetime] = Field(None, description="Optional start date of the tournament")
    prize_pool: PrizePool = Field(default_factory=PrizePool, description="Prize pool and its split by placement")
    third_place_match: bool = Field(False, description="Play a third-place match between the semifinal losers")
    seeding: Optional[SeedingMode] = Field(None, description="How the roster is laid out over the first round")
    # admin_id is set from the caller's identity

class RegistrationRequest(BaseModel):
    """Payload for registering the caller in a tournament."""
    game_tag: str = Field(..., min_length=1, max_length=64, description="In-game name shown in the bracket.")

class PaymentStatusRequest(BaseModel):
    payment_status: PaymentStatus = Field(..., description="Entry fee status reported by the payment provider.")

class UpdateStatusRequest(BaseModel):
    """Payload for updating the status of a tournament."""
    status: TournamentStatus = Field(..., description="New status (e.g. registration-open, registration-closed, cancelled).")
