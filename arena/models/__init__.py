# Import all models here so callers can use `from arena.models import ...`
from .tournament_model import (
    TournamentConfig,
    TournamentFormat,
    TournamentStatus,
    TOURNAMENT_TRANSITIONS,
    Participant,
    PaymentStatus,
    PrizePool,
    PrizeDistribution,
    SeedingMode,
)
from .bracket_model import (
    BracketModel,
    MatchModel,
    MatchStatus,
    MATCH_TRANSITIONS,
    PlayerSlot,
    SlotKind,
    Placement,
    ResolutionSource,
    ResultSubmission,
)
from .dispute_model import Dispute, DisputeOutcome, DisputeStatus
from .payout_model import PayoutRecord, PayoutStatus, PayoutMethod
from .event_model import DomainEvent, EventType
