import logging
from datetime import datetime
from typing import List, Optional

from arena.core.config import settings
from arena.core.errors import (
    DisputeAlreadyOpen,
    DisputeNotAllowed,
    DisputeNotFound,
    DisputeNotOpen,
    EvidenceRequired,
    NotMatchParticipant,
    ValidationError,
)
from arena.models.bracket_model import MatchStatus, PlayerSlot, ResolutionSource
from arena.models.dispute_model import Dispute, DisputeOutcome, DisputeStatus
from arena.models.event_model import EventType
from arena.services.bracket_service import BracketService
from arena.services.match_state import MatchStateMachine

logger = logging.getLogger(__name__)

DISPUTABLE_STATUSES = (MatchStatus.REPORTED, MatchStatus.RESOLVED)


class DisputeService:
    """
    Arbitration of contested match results.

    Disputes live in the same unit of work as the bracket: filing one and
    resolving it both run under the tournament lock held by BracketService.
    """

    def __init__(self, bracket_service: BracketService):
        self.bracket_service = bracket_service
        self.store = bracket_service.disputes

    def get_dispute(self, dispute_id: str) -> Dispute:
        dispute = self.store.get(dispute_id)
        if dispute is None:
            raise DisputeNotFound(details={"dispute_id": dispute_id})
        return dispute

    def list_disputes(self, tournament_id: Optional[str] = None, status: Optional[DisputeStatus] = None) -> List[Dispute]:
        disputes = self.store.filter(
            lambda d: (tournament_id is None or d.tournament_id == tournament_id)
            and (status is None or d.status == status)
        )
        return sorted(disputes, key=lambda d: d.created_at)

    def file_dispute(self, match_id: str, reporter_id: str, reason: str, evidence: List[str]) -> Dispute:
        tournament_id = self.bracket_service.find_tournament_id_for_match(match_id)
        with self.bracket_service.session(tournament_id, actor_id=reporter_id) as current:
            match = current.require_bracket().get_match(match_id)

            if self.bracket_service.open_dispute_for_match(match_id) is not None:
                raise DisputeAlreadyOpen(details={"match_id": match_id})
            if not match.has_participant(reporter_id):
                raise NotMatchParticipant("Only the players of a match can dispute it.",
                                          details={"match_id": match_id, "participant_id": reporter_id})
            if match.status not in DISPUTABLE_STATUSES:
                raise DisputeNotAllowed(details={"match_id": match_id, "status": match.status})
            if match.resolution_source == ResolutionSource.BYE or not match.is_ready():
                raise DisputeNotAllowed("Matches decided by a Bye cannot be disputed.")

            evidence = [e for e in (evidence or []) if e and e.strip()]
            if len(evidence) < settings.MIN_DISPUTE_EVIDENCE:
                raise EvidenceRequired(details={"required": settings.MIN_DISPUTE_EVIDENCE})

            dispute = Dispute(
                tournament_id=tournament_id,
                match_id=match_id,
                reporter_id=reporter_id,
                reason=reason,
                evidence=evidence,
                match_status_before=match.status,
            )
            MatchStateMachine.open_dispute(match)
            current.disputes[dispute.id] = dispute
            current.event(EventType.DISPUTE_OPENED, match_id=match_id,
                          dispute_id=dispute.id, reporter_id=reporter_id)
            logger.info("Dispute %s filed on match %s by %s", dispute.id, match_id, reporter_id)
        return dispute

    def resolve_dispute(self, dispute_id: str, outcome: DisputeOutcome, admin_id: Optional[str] = None,
                        note: Optional[str] = None, winner_override: Optional[str] = None) -> Dispute:
        """
        Rule on an open dispute.

        reporter-upheld hands the match to the reporter (or to winner_override),
        reporter-denied to the other player, match-voided clears it. When the
        ruling changes who won, everything built on the old winner is pulled
        back and progression runs again from the new one.
        """
        outcome = DisputeOutcome(outcome)
        if outcome == DisputeOutcome.SUPERSEDED:
            raise ValidationError("Superseded is set by the engine, not by an admin ruling.")

        tournament_id = self.get_dispute(dispute_id).tournament_id
        with self.bracket_service.session(tournament_id, actor_id=admin_id) as current:
            dispute = self.get_dispute(dispute_id)
            if not dispute.is_open:
                raise DisputeNotOpen(details={"dispute_id": dispute_id, "outcome": dispute.outcome})

            bracket = current.require_bracket()
            match = bracket.get_match(dispute.match_id)
            engine = current.progression

            winner_id = None
            if outcome == DisputeOutcome.MATCH_VOIDED:
                if match.winner is not None:
                    engine.retract(match)
                MatchStateMachine.void(match)
            else:
                if winner_override is not None:
                    winner_id = winner_override
                elif outcome == DisputeOutcome.REPORTER_UPHELD:
                    winner_id = dispute.reporter_id
                else:
                    winner_id = match.opponent_of(dispute.reporter_id).participant_id
                if not match.has_participant(winner_id):
                    raise NotMatchParticipant(details={"match_id": match.id, "participant_id": winner_id})

                engine.settle(match, PlayerSlot.of(winner_id), ResolutionSource.DISPUTE)

            dispute.status = DisputeStatus.RESOLVED.value
            dispute.outcome = outcome.value
            dispute.winner_id = winner_id
            dispute.resolved_by = admin_id
            dispute.resolved_at = datetime.utcnow()
            dispute.resolution_note = note
            current.disputes[dispute.id] = dispute
            current.event(EventType.DISPUTE_RESOLVED, match_id=match.id, dispute_id=dispute.id,
                          outcome=dispute.outcome, winner=winner_id)
            logger.info("Dispute %s resolved as %s by %s", dispute_id, outcome.value, admin_id)
        return dispute
