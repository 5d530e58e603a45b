from datetime import datetime
from uuid import uuid4
from typing import List, Optional, Dict
from enum import Enum

from pydantic import BaseModel, Field, PrivateAttr

from arena.core.errors import MatchNotFound, BracketCorrupted

class SlotKind(str, Enum):
    PARTICIPANT = "participant"
    TBD = "tbd"
    BYE = "bye"

class PlayerSlot(BaseModel):
    kind: SlotKind = SlotKind.TBD
    participant_id: Optional[str] = None

    class Config:
        use_enum_values = True

    @classmethod
    def tbd(cls) -> "PlayerSlot":
        return cls(kind=SlotKind.TBD)

    @classmethod
    def bye(cls) -> "PlayerSlot":
        return cls(kind=SlotKind.BYE)

    @classmethod
    def of(cls, participant_id: str) -> "PlayerSlot":
        return cls(kind=SlotKind.PARTICIPANT, participant_id=participant_id)

    @property
    def is_tbd(self) -> bool:
        return self.kind == SlotKind.TBD

    @property
    def is_bye(self) -> bool:
        return self.kind == SlotKind.BYE

    @property
    def is_participant(self) -> bool:
        return self.kind == SlotKind.PARTICIPANT

    def label(self) -> str:
        if self.is_participant:
            return self.participant_id
        return "Bye" if self.is_bye else "TBD"

class MatchStatus(str, Enum):
    PENDING = "pending"         # at least one slot is still TBD
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    REPORTED = "reported"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    VOIDED = "voided"

# Every status can fall back to PENDING: that is the retraction path, used when
# an upstream result is overturned and this match loses one of its players.
MATCH_TRANSITIONS: Dict[MatchStatus, List[MatchStatus]] = {
    MatchStatus.PENDING: [MatchStatus.SCHEDULED, MatchStatus.RESOLVED],
    MatchStatus.SCHEDULED: [MatchStatus.IN_PROGRESS, MatchStatus.REPORTED, MatchStatus.RESOLVED, MatchStatus.PENDING],
    MatchStatus.IN_PROGRESS: [MatchStatus.REPORTED, MatchStatus.RESOLVED, MatchStatus.PENDING],
    MatchStatus.REPORTED: [MatchStatus.REPORTED, MatchStatus.RESOLVED, MatchStatus.DISPUTED, MatchStatus.PENDING],
    MatchStatus.DISPUTED: [MatchStatus.RESOLVED, MatchStatus.VOIDED, MatchStatus.PENDING],
    MatchStatus.RESOLVED: [MatchStatus.DISPUTED, MatchStatus.RESOLVED, MatchStatus.PENDING],
    MatchStatus.VOIDED: [MatchStatus.SCHEDULED, MatchStatus.RESOLVED, MatchStatus.PENDING],
}

class ResolutionSource(str, Enum):
    BYE = "bye"
    AGREEMENT = "agreement"
    DISPUTE = "dispute"
    ADMIN = "admin"
    FORFEIT = "forfeit"

class ResultSubmission(BaseModel):
    participant_id: str
    own_score: int = Field(ge=0)
    opponent_score: int = Field(ge=0)
    evidence_url: Optional[str] = None
    submitted_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def claims_win(self) -> bool:
        return self.own_score > self.opponent_score

class MatchModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    tournament_id: str
    round_number: int
    round_name: str
    position: int # ordinal within the round, starting at 1

    slots: List[PlayerSlot] = Field(default_factory=lambda: [PlayerSlot.tbd(), PlayerSlot.tbd()])
    status: MatchStatus = MatchStatus.PENDING
    winner: Optional[PlayerSlot] = None

    parent_match_id: Optional[str] = None
    parent_slot_index: Optional[int] = None
    child_match_ids: List[str] = Field(default_factory=list)

    # Third-place playoff wiring: semifinal losers feed this match
    is_third_place: bool = False
    loser_next_match_id: Optional[str] = None
    loser_slot_index: Optional[int] = None

    submissions: Dict[str, ResultSubmission] = Field(default_factory=dict)
    resolution_source: Optional[ResolutionSource] = None
    resolved_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True
        use_enum_values = True

    @property
    def winner_id(self) -> Optional[str]:
        if self.winner is not None and self.winner.is_participant:
            return self.winner.participant_id
        return None

    @property
    def loser(self) -> Optional[PlayerSlot]:
        """The slot that did not advance, once the match has a winner."""
        if self.winner is None:
            return None
        for slot in self.slots:
            if slot != self.winner:
                return slot
        # Bye vs Bye: the other Bye
        return PlayerSlot.bye()

    def participant_ids(self) -> List[str]:
        return [slot.participant_id for slot in self.slots if slot.is_participant]

    def has_participant(self, participant_id: str) -> bool:
        return participant_id in self.participant_ids()

    def slot_index_of(self, participant_id: str) -> Optional[int]:
        for index, slot in enumerate(self.slots):
            if slot.is_participant and slot.participant_id == participant_id:
                return index
        return None

    def opponent_of(self, participant_id: str) -> Optional[PlayerSlot]:
        index = self.slot_index_of(participant_id)
        if index is None:
            return None
        return self.slots[1 - index]

    def is_ready(self) -> bool:
        return all(slot.is_participant for slot in self.slots)

    def is_filled(self) -> bool:
        return not any(slot.is_tbd for slot in self.slots)

class Placement(BaseModel):
    participant_id: str
    rank: int

class BracketModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    tournament_id: str
    tournament_format: str
    seeding: str
    bracket_size: int
    entries: List[PlayerSlot] = Field(default_factory=list) # the N leaf slots, in bracket order

    matches: List[MatchModel] = Field(default_factory=list)
    rounds_structure: Dict[int, List[str]] = Field(default_factory=dict) # round number -> match ids

    root_match_id: Optional[str] = None
    third_place_match_id: Optional[str] = None
    placements: List[Placement] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    _index: Dict[str, MatchModel] = PrivateAttr(default_factory=dict)

    class Config:
        from_attributes = True
        use_enum_values = True

    def get_match(self, match_id: str) -> MatchModel:
        if len(self._index) != len(self.matches):
            self._index = {m.id: m for m in self.matches}
        match = self._index.get(match_id)
        if match is None:
            raise MatchNotFound(details={"match_id": match_id})
        return match

    @property
    def root(self) -> MatchModel:
        if self.root_match_id is None:
            raise BracketCorrupted("Bracket has no root match.")
        return self.get_match(self.root_match_id)

    @property
    def third_place(self) -> Optional[MatchModel]:
        if self.third_place_match_id is None:
            return None
        return self.get_match(self.third_place_match_id)

    @property
    def is_completed(self) -> bool:
        return bool(self.placements)

    def tree_matches(self) -> List[MatchModel]:
        """Matches of the elimination tree proper (no third-place playoff)."""
        return [m for m in self.matches if not m.is_third_place]

    def matches_in_round(self, round_number: int) -> List[MatchModel]:
        return [self.get_match(match_id) for match_id in self.rounds_structure.get(round_number, [])]

    def children_of(self, match: MatchModel) -> List[MatchModel]:
        return [self.get_match(child_id) for child_id in match.child_match_ids]

    def matches_for_participant(self, participant_id: str) -> List[MatchModel]:
        return [m for m in self.matches if m.has_participant(participant_id)]
