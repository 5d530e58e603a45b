"""
Error taxonomy for the bracket engine.

Every error carries the HTTP status it maps to and a machine-readable code.
ValidationError, StateConflictError and NotFoundError are expected and
recoverable; IntegrityError means a structural invariant of the bracket was
violated and is logged at critical severity by the API layer.
"""
from typing import Any, Dict, Optional


class ArenaError(Exception):
    """Base exception for all engine errors."""

    status_code = 400
    code = "ARENA_ERROR"
    default_message = "The request could not be processed."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# --- Families ---

class ValidationError(ArenaError):
    """Bad input shape or size (400)."""
    status_code = 400
    code = "VALIDATION_ERROR"


class StateConflictError(ArenaError):
    """Operation is invalid for the current state (409)."""
    status_code = 409
    code = "STATE_CONFLICT"


class NotFoundError(ArenaError):
    """Referenced tournament, match, dispute or payout is absent (404)."""
    status_code = 404
    code = "NOT_FOUND"


class IntegrityError(ArenaError):
    """Structural invariant violated (500). Never swallowed."""
    status_code = 500
    code = "INTEGRITY_ERROR"


class PermissionDenied(ArenaError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You are not allowed to perform this action."


# --- Validation ---

class InvalidRosterSize(ValidationError):
    code = "INVALID_ROSTER_SIZE"
    default_message = "A bracket needs at least two confirmed participants."


class ScoreTie(ValidationError):
    code = "SCORE_TIE"
    default_message = "Tied scores cannot decide an elimination match; an admin must resolve it."


class EvidenceRequired(ValidationError):
    code = "EVIDENCE_REQUIRED"
    default_message = "At least one piece of evidence is required to file a dispute."


class NotMatchParticipant(ValidationError):
    code = "NOT_MATCH_PARTICIPANT"
    default_message = "The given participant does not play in this match."


class PrizePoolExceeded(ValidationError):
    code = "PRIZE_POOL_EXCEEDED"
    default_message = "Payouts would exceed the configured prize pool."


class RegistrationRejected(ValidationError):
    code = "REGISTRATION_REJECTED"


class UnsupportedFormat(ArenaError):
    status_code = 501
    code = "UNSUPPORTED_FORMAT"
    default_message = "Bracket generation is not implemented for this tournament format."


# --- State conflicts ---

class AlreadyGenerated(StateConflictError):
    code = "ALREADY_GENERATED"
    default_message = "A bracket has already been generated for this tournament."


class GenerationNotAllowed(StateConflictError):
    code = "GENERATION_NOT_ALLOWED"
    default_message = "Registration must be closed before the bracket can be generated."


class MatchNotJoinable(StateConflictError):
    code = "MATCH_NOT_JOINABLE"
    default_message = "This match is no longer open for results."


class InvalidTransition(StateConflictError):
    code = "INVALID_TRANSITION"


class DisputeAlreadyOpen(StateConflictError):
    code = "DISPUTE_ALREADY_OPEN"
    default_message = "A dispute for this match is already under review."


class DisputeNotAllowed(StateConflictError):
    code = "DISPUTE_NOT_ALLOWED"
    default_message = "Only reported or resolved matches can be disputed."


class DisputeNotOpen(StateConflictError):
    code = "DISPUTE_NOT_OPEN"
    default_message = "This dispute has already been resolved."


class PayoutNotPending(StateConflictError):
    code = "PAYOUT_NOT_PENDING"
    default_message = "Only pending payouts can be settled."


# --- Integrity ---

class SlotAlreadyOccupied(IntegrityError):
    code = "SLOT_ALREADY_OCCUPIED"
    default_message = "Bracket slot is already occupied by a different participant."


class BracketCorrupted(IntegrityError):
    code = "BRACKET_CORRUPTED"
    default_message = "The bracket structure is inconsistent."


# --- Not found ---

class TournamentNotFound(NotFoundError):
    code = "TOURNAMENT_NOT_FOUND"
    default_message = "Tournament not found."


class BracketNotFound(NotFoundError):
    code = "BRACKET_NOT_FOUND"
    default_message = "No bracket has been generated for this tournament."


class MatchNotFound(NotFoundError):
    code = "MATCH_NOT_FOUND"
    default_message = "Match not found."


class DisputeNotFound(NotFoundError):
    code = "DISPUTE_NOT_FOUND"
    default_message = "Dispute not found."


class PayoutNotFound(NotFoundError):
    code = "PAYOUT_NOT_FOUND"
    default_message = "Payout record not found."


class ParticipantNotFound(NotFoundError):
    code = "PARTICIPANT_NOT_FOUND"
    default_message = "Participant not found."
