"""
Match lifecycle.

State Flow:
pending -> scheduled -> in-progress -> reported -> resolved
reported | resolved -> disputed -> resolved | voided

Every status change goes through MatchStateMachine.transition, which rejects
anything not listed in MATCH_TRANSITIONS.
"""
from datetime import datetime
from typing import Optional

from arena.core.errors import (
    InvalidTransition,
    MatchNotJoinable,
    NotMatchParticipant,
    ScoreTie,
)
from arena.models.bracket_model import (
    MATCH_TRANSITIONS,
    MatchModel,
    MatchStatus,
    PlayerSlot,
    ResolutionSource,
    ResultSubmission,
)

JOINABLE_STATUSES = (MatchStatus.SCHEDULED, MatchStatus.IN_PROGRESS, MatchStatus.REPORTED)


class MatchStateMachine:

    @staticmethod
    def can_transition(match: MatchModel, new_status: MatchStatus) -> bool:
        return MatchStatus(new_status) in MATCH_TRANSITIONS[MatchStatus(match.status)]

    @classmethod
    def transition(cls, match: MatchModel, new_status: MatchStatus) -> MatchModel:
        if not cls.can_transition(match, new_status):
            raise InvalidTransition(
                f"Match cannot move from '{MatchStatus(match.status).value}' to '{MatchStatus(new_status).value}'.",
                details={"match_id": match.id},
            )
        match.status = MatchStatus(new_status).value
        match.updated_at = datetime.utcnow()
        return match

    @classmethod
    def start(cls, match: MatchModel) -> MatchModel:
        if match.status != MatchStatus.SCHEDULED or not match.is_ready():
            raise MatchNotJoinable("Only scheduled matches with two players can be started.")
        return cls.transition(match, MatchStatus.IN_PROGRESS)

    @staticmethod
    def implied_winner(match: MatchModel, submission: ResultSubmission) -> str:
        if submission.claims_win:
            return submission.participant_id
        return match.opponent_of(submission.participant_id).participant_id

    @classmethod
    def submit_result(cls, match: MatchModel, submission: ResultSubmission) -> Optional[PlayerSlot]:
        """
        Record one player's claim. Returns the winner slot when the claim
        settles the match, None while the match is only reported.
        """
        if match.status not in JOINABLE_STATUSES or not match.is_ready():
            raise MatchNotJoinable(details={"match_id": match.id, "status": MatchStatus(match.status).value})
        if not match.has_participant(submission.participant_id):
            raise NotMatchParticipant(details={"match_id": match.id, "participant_id": submission.participant_id})
        if submission.own_score == submission.opponent_score:
            raise ScoreTie(details={"match_id": match.id})

        # last write wins, but only over the submitter's own claim
        match.submissions[submission.participant_id] = submission

        claims = [match.submissions[pid] for pid in match.participant_ids() if pid in match.submissions]
        if len(claims) == 2:
            winners = {cls.implied_winner(match, claim) for claim in claims}
            if len(winners) == 1:
                winner = PlayerSlot.of(winners.pop())
                cls.resolve(match, winner, ResolutionSource.AGREEMENT)
                return winner
        # one claim, or two claims naming different winners: wait for the other side or a dispute
        cls.transition(match, MatchStatus.REPORTED)
        return None

    @classmethod
    def resolve(cls, match: MatchModel, winner: PlayerSlot, source: ResolutionSource) -> MatchModel:
        cls.transition(match, MatchStatus.RESOLVED)
        match.winner = winner.model_copy()
        match.resolution_source = ResolutionSource(source).value
        match.resolved_at = datetime.utcnow()
        return match

    @classmethod
    def open_dispute(cls, match: MatchModel) -> MatchModel:
        return cls.transition(match, MatchStatus.DISPUTED)

    @classmethod
    def void(cls, match: MatchModel) -> MatchModel:
        cls.transition(match, MatchStatus.VOIDED)
        match.winner = None
        match.resolution_source = None
        match.resolved_at = None
        return match

    @classmethod
    def reopen(cls, match: MatchModel) -> MatchModel:
        """Manual re-seed of a voided match: same players, fresh submissions."""
        if match.status != MatchStatus.VOIDED or not match.is_ready():
            raise MatchNotJoinable("Only voided matches with two players can be reopened.")
        cls.transition(match, MatchStatus.SCHEDULED)
        match.submissions = {}
        return match

    @classmethod
    def reset(cls, match: MatchModel) -> MatchModel:
        """Back to pending after losing a player to a retraction."""
        if match.status != MatchStatus.PENDING:
            cls.transition(match, MatchStatus.PENDING)
        match.winner = None
        match.submissions = {}
        match.resolution_source = None
        match.resolved_at = None
        return match
