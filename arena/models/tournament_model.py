from datetime import datetime
from typing import Optional, List, Dict
from uuid import uuid4
from enum import Enum

from pydantic import BaseModel, Field, validator

class TournamentFormat(str, Enum):
    SINGLE_ELIMINATION = "single-elimination"
    DOUBLE_ELIMINATION = "double-elimination"
    ROUND_ROBIN = "round-robin"
    BATTLE_ROYALE = "battle-royale"

class TournamentStatus(str, Enum):
    UPCOMING = "upcoming"
    REGISTRATION_OPEN = "registration-open"
    REGISTRATION_CLOSED = "registration-closed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# completed -> in-progress only happens when a dispute overturns a decided result
TOURNAMENT_TRANSITIONS: Dict[TournamentStatus, List[TournamentStatus]] = {
    TournamentStatus.UPCOMING: [TournamentStatus.REGISTRATION_OPEN, TournamentStatus.CANCELLED],
    TournamentStatus.REGISTRATION_OPEN: [TournamentStatus.REGISTRATION_CLOSED, TournamentStatus.CANCELLED],
    TournamentStatus.REGISTRATION_CLOSED: [
        TournamentStatus.REGISTRATION_OPEN,
        TournamentStatus.IN_PROGRESS,
        TournamentStatus.CANCELLED,
    ],
    TournamentStatus.IN_PROGRESS: [TournamentStatus.COMPLETED, TournamentStatus.CANCELLED],
    TournamentStatus.COMPLETED: [TournamentStatus.IN_PROGRESS],
    TournamentStatus.CANCELLED: [],
}

class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"

class SeedingMode(str, Enum):
    SEQUENTIAL = "sequential" # slot 2i plays slot 2i+1, byes fill the tail
    STANDARD = "standard"     # classic 1 vs N placement

class PrizeDistribution(BaseModel):
    first: int = Field(default=0, ge=0)
    second: int = Field(default=0, ge=0)
    third: int = Field(default=0, ge=0)

    def share_for_rank(self, rank: int) -> int:
        return {1: self.first, 2: self.second, 3: self.third}.get(rank, 0)

    def total(self) -> int:
        return self.first + self.second + self.third

class PrizePool(BaseModel):
    distribution: PrizeDistribution = Field(default_factory=PrizeDistribution)
    total: int = Field(default=0, ge=0)

    @validator('total', always=True)
    def total_covers_distribution(cls, v, values, **kwargs):
        distribution = values.get('distribution')
        if distribution is None:
            return v
        # Mirrors the admin form: a zero total means "sum of the distribution"
        if not v:
            return distribution.total()
        if distribution.total() > v:
            raise ValueError('Prize distribution exceeds the prize pool total')
        return v

class Participant(BaseModel):
    user_id: str
    game_tag: str = Field(min_length=1, max_length=64)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    registered_at: datetime = Field(default_factory=datetime.utcnow)
    disqualified: bool = False

    class Config:
        use_enum_values = True

class TournamentConfig(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=3, max_length=100)
    format: TournamentFormat = TournamentFormat.SINGLE_ELIMINATION
    admin_id: str # References the creating admin's identity
    capacity: int = Field(default=16, ge=2)
    status: TournamentStatus = TournamentStatus.UPCOMING
    created_at: datetime = Field(default_factory=datetime.utcnow)
    start_date: Optional[datetime] = None
    participants: List[Participant] = Field(default_factory=list)
    prize_pool: PrizePool = Field(default_factory=PrizePool)
    third_place_match: bool = False
    seeding: Optional[SeedingMode] = None # None falls back to settings.DEFAULT_SEEDING
    bracket_id: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True

    def get_participant(self, user_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def roster(self) -> List[str]:
        """User ids eligible for the bracket, in registration (seed) order."""
        return [
            p.user_id for p in self.participants
            if p.payment_status == PaymentStatus.SUCCESS and not p.disqualified
        ]
