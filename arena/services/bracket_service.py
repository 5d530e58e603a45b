import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from arena.core.config import settings
from arena.core.errors import (
    AlreadyGenerated,
    BracketNotFound,
    GenerationNotAllowed,
    MatchNotFound,
    MatchNotJoinable,
    NotMatchParticipant,
    ParticipantNotFound,
    StateConflictError,
    UnsupportedFormat,
    ValidationError,
)
from arena.core.locks import TournamentLockRegistry
from arena.models.bracket_model import (
    BracketModel,
    MatchModel,
    MatchStatus,
    PlayerSlot,
    ResolutionSource,
    ResultSubmission,
)
from arena.models.dispute_model import Dispute, DisputeOutcome, DisputeStatus
from arena.models.event_model import DomainEvent, EventType
from arena.models.tournament_model import (
    SeedingMode,
    TournamentConfig,
    TournamentFormat,
    TournamentStatus,
)
from arena.services import bracket_builder
from arena.services.json_store import JsonStore
from arena.services.match_state import MatchStateMachine
from arena.services.notification_service import NotificationService
from arena.services.payout_service import PayoutLedger
from arena.services.progression import ProgressionEngine
from arena.services.tournament_service import TournamentService, apply_tournament_status

logger = logging.getLogger(__name__)

BRACKETS_FILE = "brackets.json"
DISPUTES_FILE = "disputes.json"

FORCEABLE_STATUSES = (
    TournamentStatus.UPCOMING,
    TournamentStatus.REGISTRATION_OPEN,
    TournamentStatus.REGISTRATION_CLOSED,
)


class BracketSession:
    """Everything one locked operation reads and changes for a tournament."""

    def __init__(self, tournament: TournamentConfig, bracket: Optional[BracketModel], actor_id: Optional[str]):
        self.tournament = tournament
        self.bracket = bracket
        self.actor_id = actor_id
        self.disputes: Dict[str, Dispute] = {}
        self.events: List[DomainEvent] = []
        self._progression: Optional[ProgressionEngine] = None

    @property
    def progression(self) -> ProgressionEngine:
        if self.bracket is None:
            raise BracketNotFound(details={"tournament_id": self.tournament.id})
        if self._progression is None:
            self._progression = ProgressionEngine(self.bracket)
        return self._progression

    def require_bracket(self) -> BracketModel:
        if self.bracket is None:
            raise BracketNotFound(details={"tournament_id": self.tournament.id})
        return self.bracket

    def event(self, name: EventType, match_id: Optional[str] = None, **payload):
        self.events.append(DomainEvent(name=name, tournament_id=self.tournament.id, match_id=match_id, payload=payload))


class BracketService:
    def __init__(self,
                 brackets_file_path: Optional[str] = None,
                 disputes_file_path: Optional[str] = None,
                 tournament_service: Optional[TournamentService] = None,
                 payout_ledger: Optional[PayoutLedger] = None,
                 notification_service: Optional[NotificationService] = None,
                 locks: Optional[TournamentLockRegistry] = None):
        self.tournament_service = tournament_service or TournamentService(locks=locks)
        # one lock registry for every service touching the same tournaments
        self.locks = locks or self.tournament_service.locks
        self.payout_ledger = payout_ledger or PayoutLedger(locks=self.locks)
        self.notification_service = notification_service or NotificationService()

        self.brackets_file_path = brackets_file_path or os.path.join(settings.DATA_DIR, BRACKETS_FILE)
        self.disputes_file_path = disputes_file_path or os.path.join(settings.DATA_DIR, DISPUTES_FILE)
        self.brackets = JsonStore(self.brackets_file_path, BracketModel)
        self.disputes = JsonStore(self.disputes_file_path, Dispute)

    # --- lookups ---

    def get_bracket_by_tournament_id(self, tournament_id: str) -> Optional[BracketModel]:
        return self.brackets.find_one(lambda b: b.get("tournament_id") == tournament_id)

    def get_bracket(self, tournament_id: str) -> BracketModel:
        self.tournament_service.require_tournament(tournament_id)
        bracket = self.get_bracket_by_tournament_id(tournament_id)
        if bracket is None:
            raise BracketNotFound(details={"tournament_id": tournament_id})
        return bracket

    def find_tournament_id_for_match(self, match_id: str) -> str:
        bracket = self.brackets.find_one(
            lambda b: any(m.get("id") == match_id for m in b.get("matches", []))
        )
        if bracket is None:
            raise MatchNotFound(details={"match_id": match_id})
        return bracket.tournament_id

    def get_match(self, match_id: str) -> MatchModel:
        tournament_id = self.find_tournament_id_for_match(match_id)
        return self.get_bracket(tournament_id).get_match(match_id)

    def open_dispute_for_match(self, match_id: str) -> Optional[Dispute]:
        return self.disputes.find_one(
            lambda d: d.get("match_id") == match_id and d.get("status") == DisputeStatus.OPEN.value
        )

    # --- unit of work ---

    @contextmanager
    def session(self, tournament_id: str, actor_id: Optional[str] = None) -> Iterator[BracketSession]:
        """
        Run an operation under the tournament lock against freshly loaded
        documents. Nothing is written unless the block finishes without an
        exception; events go out after the lock is released.
        """
        with self.locks.hold(tournament_id):
            tournament = self.tournament_service.require_tournament(tournament_id)
            bracket = self.get_bracket_by_tournament_id(tournament_id)
            current = BracketSession(tournament, bracket, actor_id)
            yield current
            self._commit(current)
        self.notification_service.publish(current.events)

    def _commit(self, current: BracketSession):
        tournament = current.tournament
        voided, planned = [], []
        engine = current._progression

        if engine is not None:
            for match_id in engine.reset_match_ids:
                self._supersede_dispute(current, match_id)

            if engine.reopened:
                voided = self.payout_ledger.plan_voiding(tournament.id)
                if tournament.status == TournamentStatus.COMPLETED:
                    apply_tournament_status(tournament, TournamentStatus.IN_PROGRESS)
            if engine.completed:
                # validated before anything is written
                planned = self.payout_ledger.plan_from_placements(
                    tournament, current.bracket.placements, exclude_ids={v.id for v in voided}
                )
                apply_tournament_status(tournament, TournamentStatus.COMPLETED)
            current.events.extend(engine.events)

        if current.bracket is not None:
            self.brackets.put(current.bracket)
        self.tournament_service.save_tournament(tournament)
        self.disputes.put_many(list(current.disputes.values()))

        # payout intent is recorded once the bracket state is committed
        self.payout_ledger.save_records(voided + planned)
        for record in voided:
            current.event(EventType.PAYOUT_VOIDED, payout_id=record.id, participant_id=record.participant_id)
        for record in planned:
            current.event(EventType.PAYOUT_PENDING, payout_id=record.id,
                          participant_id=record.participant_id, amount=record.amount, placement=record.placement)

    def _supersede_dispute(self, current: BracketSession, match_id: str):
        dispute = self.open_dispute_for_match(match_id)
        if dispute is None:
            return
        # a copy already changed in this session wins over the stored one
        dispute = current.disputes.get(dispute.id, dispute)
        if not dispute.is_open:
            return
        dispute.status = DisputeStatus.RESOLVED.value
        dispute.outcome = DisputeOutcome.SUPERSEDED.value
        dispute.resolved_by = current.actor_id
        dispute.resolved_at = datetime.utcnow()
        dispute.resolution_note = "Closed because an earlier result in the bracket was overturned."
        current.disputes[dispute.id] = dispute
        current.event(EventType.DISPUTE_RESOLVED, match_id=match_id, dispute_id=dispute.id, outcome=dispute.outcome)

    @staticmethod
    def _require_running(tournament: TournamentConfig):
        if tournament.status != TournamentStatus.IN_PROGRESS:
            raise MatchNotJoinable(
                "This tournament is not running.",
                details={"tournament_id": tournament.id, "status": tournament.status},
            )

    # --- generation ---

    def generate_bracket(self, tournament_id: str, admin_id: Optional[str] = None, force: bool = False) -> BracketModel:
        """
        Creates the bracket for a tournament, exactly once.
        Currently supports single-elimination.
        """
        with self.session(tournament_id, actor_id=admin_id) as current:
            tournament = current.tournament
            if current.bracket is not None or tournament.bracket_id is not None:
                raise AlreadyGenerated(details={"tournament_id": tournament_id})
            if tournament.format != TournamentFormat.SINGLE_ELIMINATION:
                raise UnsupportedFormat(details={"format": tournament.format})

            status = TournamentStatus(tournament.status)
            if status != TournamentStatus.REGISTRATION_CLOSED:
                if not force or status not in FORCEABLE_STATUSES:
                    raise GenerationNotAllowed(details={"status": status.value})
                logger.warning("Bracket generation for %s forced by %s from status %s",
                               tournament_id, admin_id, status.value)
                tournament.status = TournamentStatus.REGISTRATION_CLOSED.value

            seeding = SeedingMode(tournament.seeding or settings.DEFAULT_SEEDING)
            engine = ProgressionEngine()
            bracket, _ = bracket_builder.generate(
                tournament_id=tournament_id,
                roster=tournament.roster(),
                seeding=seeding,
                third_place_match=tournament.third_place_match,
                engine=engine,
            )
            current.bracket = bracket
            current._progression = engine
            tournament.bracket_id = bracket.id
            apply_tournament_status(tournament, TournamentStatus.IN_PROGRESS)
            logger.info("Generated %s-entry bracket for tournament %s (%s participants)",
                        bracket.bracket_size, tournament_id, len(tournament.roster()))
        return bracket

    # --- match lifecycle ---

    def start_match(self, match_id: str, actor_id: Optional[str] = None) -> MatchModel:
        tournament_id = self.find_tournament_id_for_match(match_id)
        with self.session(tournament_id, actor_id=actor_id) as current:
            self._require_running(current.tournament)
            match = current.require_bracket().get_match(match_id)
            MatchStateMachine.start(match)
        return match

    def submit_match_result(self, match_id: str, participant_id: str, own_score: int, opponent_score: int,
                            evidence_url: Optional[str] = None) -> MatchModel:
        tournament_id = self.find_tournament_id_for_match(match_id)
        with self.session(tournament_id, actor_id=participant_id) as current:
            self._require_running(current.tournament)
            match = current.require_bracket().get_match(match_id)
            try:
                submission = ResultSubmission(
                    participant_id=participant_id,
                    own_score=own_score,
                    opponent_score=opponent_score,
                    evidence_url=evidence_url,
                )
            except PydanticValidationError as e:
                raise ValidationError(
                    "Scores must be whole numbers of zero or more.",
                    details={"match_id": match_id, "errors": e.errors(include_url=False)},
                ) from e
            winner = MatchStateMachine.submit_result(match, submission)
            if winner is not None:
                current.progression.emit_resolved(match)
                current.progression.advance(match, winner)
            else:
                logger.info("Match %s reported by %s (%d claim(s))", match_id, participant_id, len(match.submissions))
        return match

    def award_match(self, match_id: str, winner_id: str, admin_id: Optional[str] = None,
                    source: ResolutionSource = ResolutionSource.ADMIN) -> MatchModel:
        """Admin override or forfeit: settle a match for one of its players."""
        tournament_id = self.find_tournament_id_for_match(match_id)
        with self.session(tournament_id, actor_id=admin_id) as current:
            if current.tournament.status not in (TournamentStatus.IN_PROGRESS, TournamentStatus.COMPLETED):
                self._require_running(current.tournament)
            match = current.require_bracket().get_match(match_id)
            self._award(current, match, winner_id, source)
        return match

    def _award(self, current: BracketSession, match: MatchModel, winner_id: str, source: ResolutionSource):
        if match.status == MatchStatus.DISPUTED:
            raise StateConflictError("This match has an open dispute; resolve the dispute instead.")
        if match.status == MatchStatus.PENDING or not match.is_ready():
            raise MatchNotJoinable("Both players must be known before the match can be awarded.")
        if not match.has_participant(winner_id):
            raise NotMatchParticipant(details={"match_id": match.id, "participant_id": winner_id})

        current.progression.settle(match, PlayerSlot.of(winner_id), source)
        logger.info("Match %s awarded to %s (%s) by %s", match.id, winner_id, ResolutionSource(source).value, current.actor_id)

    def reopen_match(self, match_id: str, admin_id: Optional[str] = None) -> MatchModel:
        tournament_id = self.find_tournament_id_for_match(match_id)
        with self.session(tournament_id, actor_id=admin_id) as current:
            self._require_running(current.tournament)
            match = current.require_bracket().get_match(match_id)
            MatchStateMachine.reopen(match)
            current.event(EventType.MATCH_SCHEDULED, match_id=match.id, players=match.participant_ids())
        return match

    def disqualify_participant(self, tournament_id: str, participant_id: str, admin_id: Optional[str] = None) -> TournamentConfig:
        """
        Kick a participant after the bracket exists. Their live match is
        forfeited to the opponent; if the opponent is not known yet the
        participant's slot becomes a Bye so the opponent walks through.
        """
        with self.session(tournament_id, actor_id=admin_id) as current:
            tournament = current.tournament
            participant = tournament.get_participant(participant_id)
            if participant is None:
                raise ParticipantNotFound(details={"user_id": participant_id})
            participant.disqualified = True
            if current.bracket is None:
                return tournament

            live = [
                m for m in current.bracket.matches_for_participant(participant_id)
                if m.status not in (MatchStatus.RESOLVED, MatchStatus.VOIDED)
            ]
            for match in live:
                opponent = match.opponent_of(participant_id)
                if opponent.is_participant:
                    self._award(current, match, opponent.participant_id, ResolutionSource.FORFEIT)
                elif opponent.is_tbd:
                    match.slots[match.slot_index_of(participant_id)] = PlayerSlot.bye()
                    match.updated_at = datetime.utcnow()
            logger.warning("Participant %s disqualified from %s by %s", participant_id, tournament_id, admin_id)
        return tournament
