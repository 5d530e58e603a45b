import logging
import os
from typing import List, Optional

from arena.core.config import settings
from arena.core.errors import (
    InvalidTransition,
    ParticipantNotFound,
    RegistrationRejected,
    StateConflictError,
    TournamentNotFound,
)
from arena.core.locks import TournamentLockRegistry
from arena.models.tournament_model import (
    Participant,
    PaymentStatus,
    TournamentConfig,
    TournamentStatus,
    TOURNAMENT_TRANSITIONS,
)
from arena.services.json_store import JsonStore

logger = logging.getLogger(__name__)

TOURNAMENTS_FILE = "tournaments.json"

def apply_tournament_status(tournament: TournamentConfig, new_status: TournamentStatus) -> TournamentConfig:
    """Move a tournament along its transition table, in memory only."""
    current = TournamentStatus(tournament.status)
    target = TournamentStatus(new_status)
    if current == target:
        return tournament
    if target not in TOURNAMENT_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Tournament cannot move from '{current.value}' to '{target.value}'.",
            details={"tournament_id": tournament.id},
        )
    tournament.status = target.value
    return tournament

class TournamentService:
    def __init__(self,
                 data_file_path: Optional[str] = None,
                 locks: Optional[TournamentLockRegistry] = None):
        self.data_file_path = data_file_path or os.path.join(settings.DATA_DIR, TOURNAMENTS_FILE)
        self.store = JsonStore(self.data_file_path, TournamentConfig)
        self.locks = locks or TournamentLockRegistry()

    def create_tournament(self, tournament_data: TournamentConfig) -> TournamentConfig:
        self.store.put(tournament_data)
        logger.info("Created tournament %s (%s)", tournament_data.id, tournament_data.name)
        return tournament_data

    def get_tournament_by_id(self, tournament_id: str) -> Optional[TournamentConfig]:
        return self.store.get(tournament_id)

    def require_tournament(self, tournament_id: str) -> TournamentConfig:
        tournament = self.get_tournament_by_id(tournament_id)
        if tournament is None:
            raise TournamentNotFound(details={"tournament_id": tournament_id})
        return tournament

    def list_tournaments(self, status: Optional[TournamentStatus] = None) -> List[TournamentConfig]:
        if status is None:
            return self.store.all()
        return self.store.filter(lambda t: t.status == status)

    def get_tournaments_by_admin(self, admin_id: str) -> List[TournamentConfig]:
        return self.store.filter(lambda t: t.admin_id == admin_id)

    def save_tournament(self, tournament: TournamentConfig) -> TournamentConfig:
        return self.store.put(tournament)

    def register_participant(self, tournament_id: str, user_id: str, game_tag: str) -> Participant:
        with self.locks.hold(tournament_id):
            tournament = self.require_tournament(tournament_id)
            if tournament.status != TournamentStatus.REGISTRATION_OPEN:
                raise RegistrationRejected("Registration is not open for this tournament.")
            if tournament.get_participant(user_id) is not None:
                raise RegistrationRejected("Already registered for this tournament.")
            if len(tournament.participants) >= tournament.capacity:
                raise RegistrationRejected("Tournament is full.")

            participant = Participant(user_id=user_id, game_tag=game_tag)
            tournament.participants.append(participant)
            self.save_tournament(tournament)
            return participant

    def update_payment_status(self, tournament_id: str, user_id: str, payment_status: PaymentStatus) -> Participant:
        with self.locks.hold(tournament_id):
            tournament = self.require_tournament(tournament_id)
            if tournament.bracket_id is not None:
                raise StateConflictError("The roster is frozen once the bracket has been generated.")
            participant = tournament.get_participant(user_id)
            if participant is None:
                raise ParticipantNotFound(details={"user_id": user_id})
            participant.payment_status = PaymentStatus(payment_status).value
            self.save_tournament(tournament)
            return participant

    def remove_participant(self, tournament_id: str, user_id: str) -> TournamentConfig:
        """Drop a registrant before the bracket exists. Afterwards it is a disqualification."""
        with self.locks.hold(tournament_id):
            tournament = self.require_tournament(tournament_id)
            if tournament.bracket_id is not None:
                raise StateConflictError("Participants can only be disqualified once the bracket exists.")
            if tournament.get_participant(user_id) is None:
                raise ParticipantNotFound(details={"user_id": user_id})
            tournament.participants = [p for p in tournament.participants if p.user_id != user_id]
            return self.save_tournament(tournament)

    def update_tournament_status(self, tournament_id: str, new_status: TournamentStatus) -> TournamentConfig:
        with self.locks.hold(tournament_id):
            tournament = self.require_tournament(tournament_id)
            target = TournamentStatus(new_status)
            if target in (TournamentStatus.IN_PROGRESS, TournamentStatus.COMPLETED):
                # those are driven by bracket generation and progression
                raise InvalidTransition(f"Status '{target.value}' is set by the bracket engine.")
            apply_tournament_status(tournament, target)
            logger.info("Tournament %s is now %s", tournament_id, target.value)
            return self.save_tournament(tournament)

    def get_roster(self, tournament_id: str) -> List[str]:
        return self.require_tournament(tournament_id).roster()
