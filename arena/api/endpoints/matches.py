from typing import Optional

from fastapi import APIRouter, Depends, Path

from arena.api.dependencies import (
    get_bracket_service,
    get_current_role,
    get_current_user_id,
    get_dispute_service,
    require_admin,
)
from arena.core.config import settings
from arena.core.errors import PermissionDenied
from arena.models.bracket_model import MatchModel
from arena.models.dispute_model import Dispute
from arena.schemas.dispute_schemas import DisputeFilingRequest
from arena.schemas.match_schemas import AwardMatchRequest, MatchResultRequest
from arena.services.bracket_service import BracketService
from arena.services.dispute_service import DisputeService

router = APIRouter()

@router.get("/{match_id}", response_model=MatchModel, summary="Get a match")
async def get_match(
    match_id: str = Path(..., description="The ID of the match"),
    service: BracketService = Depends(get_bracket_service),
):
    return service.get_match(match_id)

@router.post("/{match_id}/submit", response_model=MatchModel, summary="Submit your result for a match")
async def submit_match_result(
    payload: MatchResultRequest,
    match_id: str = Path(..., description="The ID of the match"),
    current_user_id: str = Depends(get_current_user_id),
    service: BracketService = Depends(get_bracket_service),
):
    """
    Each player reports the score from their own side. Two claims naming the
    same winner resolve the match; otherwise it stays reported until the other
    player answers or someone files a dispute.

    - **own_score** / **opponent_score**: tied scores are rejected.
    """
    return service.submit_match_result(
        match_id,
        participant_id=current_user_id,
        own_score=payload.own_score,
        opponent_score=payload.opponent_score,
        evidence_url=payload.evidence_url,
    )

@router.post("/{match_id}/start", response_model=MatchModel, summary="Mark a match as being played")
async def start_match(
    match_id: str = Path(..., description="The ID of the match"),
    current_user_id: str = Depends(get_current_user_id),
    role: Optional[str] = Depends(get_current_role),
    service: BracketService = Depends(get_bracket_service),
):
    match = service.get_match(match_id)
    if role != settings.ADMIN_ROLE and not match.has_participant(current_user_id):
        raise PermissionDenied("Only the players or an admin can start this match.")
    return service.start_match(match_id, actor_id=current_user_id)

@router.post("/{match_id}/award", response_model=MatchModel, summary="Award a match (Admin Only)")
async def award_match(
    payload: AwardMatchRequest,
    match_id: str = Path(..., description="The ID of the match"),
    admin_id: str = Depends(require_admin),
    service: BracketService = Depends(get_bracket_service),
):
    """Settles a match directly, e.g. a tie or a no-show. A different earlier winner is pulled back out of the bracket."""
    return service.award_match(match_id, payload.winner_id, admin_id=admin_id, source=payload.source)

@router.post("/{match_id}/reopen", response_model=MatchModel, summary="Reschedule a voided match (Admin Only)")
async def reopen_match(
    match_id: str = Path(..., description="The ID of the match"),
    admin_id: str = Depends(require_admin),
    service: BracketService = Depends(get_bracket_service),
):
    return service.reopen_match(match_id, admin_id=admin_id)

@router.post("/{match_id}/dispute", response_model=Dispute, status_code=201, summary="Dispute a match result")
async def file_dispute(
    payload: DisputeFilingRequest,
    match_id: str = Path(..., description="The ID of the match"),
    current_user_id: str = Depends(get_current_user_id),
    service: DisputeService = Depends(get_dispute_service),
):
    return service.file_dispute(match_id, current_user_id, payload.reason, payload.evidence)
