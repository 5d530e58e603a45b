"""
Bracket progression: moving winners up the tree and pulling them back out.

The engine works on one in-memory BracketModel and records what it did
(events, completion, rollback, matches reset out of a dispute). Persisting
those effects is the caller's job, done only once the whole operation has
succeeded.
"""
import logging
from datetime import datetime
from typing import List, Optional

from arena.core.errors import BracketCorrupted, SlotAlreadyOccupied
from arena.models.bracket_model import (
    BracketModel,
    MatchModel,
    MatchStatus,
    Placement,
    PlayerSlot,
    ResolutionSource,
)
from arena.models.event_model import DomainEvent, EventType
from arena.services.match_state import MatchStateMachine

logger = logging.getLogger(__name__)


class ProgressionEngine:
    def __init__(self, bracket: Optional[BracketModel] = None):
        self.bracket = bracket
        self.events: List[DomainEvent] = []
        self.completed = False   # placements were computed during this run
        self.reopened = False    # a completed bracket was rolled back during this run
        self.reset_match_ids: List[str] = []  # disputed matches reset by a retraction

    # --- events ---

    def emit(self, name: EventType, match: Optional[MatchModel] = None, **payload):
        self.events.append(DomainEvent(
            name=name,
            tournament_id=self.bracket.tournament_id,
            match_id=match.id if match is not None else None,
            payload=payload,
        ))

    def emit_resolved(self, match: MatchModel):
        self.emit(
            EventType.MATCH_RESOLVED,
            match,
            winner=match.winner.label() if match.winner else None,
            source=match.resolution_source,
            round_name=match.round_name,
        )

    # --- advancing ---

    def resolve_byes(self):
        """Auto-resolve every first round match that has a Bye in it."""
        for match in self.bracket.matches_in_round(1):
            if match.status == MatchStatus.PENDING and any(slot.is_bye for slot in match.slots):
                self._auto_resolve(match)

    def advance(self, match: MatchModel, winner: PlayerSlot):
        """
        Carry a resolved match's winner into its parent (and its loser into the
        third-place playoff). Replaying the same advance is a no-op.
        """
        if match.status != MatchStatus.RESOLVED or match.winner != winner:
            raise BracketCorrupted(
                "Only a resolved match can advance its own winner.",
                details={"match_id": match.id},
            )

        if match.parent_match_id is not None:
            parent = self.bracket.get_match(match.parent_match_id)
            self._place(parent, match.parent_slot_index, winner, match)

        if match.loser_next_match_id is not None:
            playoff = self.bracket.get_match(match.loser_next_match_id)
            self._place(playoff, match.loser_slot_index, match.loser, match)

        if match.parent_match_id is None:
            self._check_completion()

    def settle(self, match: MatchModel, winner: PlayerSlot, source: ResolutionSource):
        """
        Resolve a match for `winner` by ruling rather than by report. A
        different earlier winner is retracted first. A winner that is
        confirmed again is already in the tree and is not carried up a
        second time, since its parent slot may have changed since (a
        disqualification turns it into a Bye).
        """
        previous = match.winner
        if previous is not None and previous != winner:
            self.retract(match)
        MatchStateMachine.resolve(match, winner, source)
        self.emit_resolved(match)
        if previous != winner:
            self.advance(match, winner)

    def _place(self, target: MatchModel, index: int, slot: PlayerSlot, source: MatchModel):
        current = target.slots[index]
        if not current.is_tbd:
            if current == slot:
                return
            raise SlotAlreadyOccupied(details={
                "match_id": target.id,
                "slot_index": index,
                "occupant": current.label(),
                "incoming": slot.label(),
                "from_match_id": source.id,
            })

        target.slots[index] = slot.model_copy()
        target.updated_at = datetime.utcnow()

        # only a pending match can take its second player, so this fires once
        if target.status == MatchStatus.PENDING and target.is_filled():
            if any(s.is_bye for s in target.slots):
                self._auto_resolve(target)
            else:
                MatchStateMachine.transition(target, MatchStatus.SCHEDULED)
                self.emit(EventType.MATCH_SCHEDULED, target, players=target.participant_ids())

    def _auto_resolve(self, match: MatchModel):
        winner = next((slot for slot in match.slots if not slot.is_bye), PlayerSlot.bye())
        MatchStateMachine.resolve(match, winner, ResolutionSource.BYE)
        self.emit_resolved(match)
        self.advance(match, match.winner)

    # --- completion ---

    def _check_completion(self):
        if self.bracket.is_completed:
            return
        root = self.bracket.root
        if root.status != MatchStatus.RESOLVED:
            return
        playoff = self.bracket.third_place
        if playoff is not None and playoff.status != MatchStatus.RESOLVED:
            return

        self.bracket.placements = self.compute_placements()
        self.bracket.completed_at = datetime.utcnow()
        self.completed = True
        logger.info("Tournament %s completed, champion %s", self.bracket.tournament_id, root.winner.label())
        self.emit(
            EventType.TOURNAMENT_COMPLETED,
            root,
            placements=[p.model_dump() for p in self.bracket.placements],
        )

    def compute_placements(self) -> List[Placement]:
        root = self.bracket.root
        placements: List[Placement] = []

        def place(slot: Optional[PlayerSlot], rank: int):
            if slot is not None and slot.is_participant:
                placements.append(Placement(participant_id=slot.participant_id, rank=rank))

        place(root.winner, 1)
        place(root.loser, 2)
        playoff = self.bracket.third_place
        if playoff is not None:
            place(playoff.winner, 3)
            place(playoff.loser, 4)
        else:
            # no playoff: both semifinal losers share third
            for semifinal in self.bracket.children_of(root):
                place(semifinal.loser, 3)
        return placements

    # --- retraction ---

    def retract(self, match: MatchModel):
        """
        Pull a match's previously propagated winner and loser back out of the
        tree. Everything derived from them is reset to pending, and a
        completed bracket is reopened.
        """
        if match.parent_match_id is not None:
            self._clear(self.bracket.get_match(match.parent_match_id), match.parent_slot_index)
        else:
            self._reopen()
        if match.loser_next_match_id is not None:
            self._clear(self.bracket.get_match(match.loser_next_match_id), match.loser_slot_index)

    def _clear(self, target: MatchModel, index: int):
        if target.slots[index].is_tbd:
            return
        if target.winner is not None:
            self.retract(target)
        if target.status == MatchStatus.DISPUTED:
            self.reset_match_ids.append(target.id)
        target.slots[index] = PlayerSlot.tbd()
        MatchStateMachine.reset(target)
        logger.info("Reset match %s (%s) after an upstream retraction", target.id, target.round_name)

    def _reopen(self):
        if not self.bracket.is_completed:
            return
        previous = [p.model_dump() for p in self.bracket.placements]
        self.bracket.placements = []
        self.bracket.completed_at = None
        self.reopened = True
        self.completed = False
        logger.warning("Tournament %s reopened; placements %s withdrawn", self.bracket.tournament_id, previous)
        self.emit(EventType.TOURNAMENT_REOPENED, None, previous_placements=previous)
