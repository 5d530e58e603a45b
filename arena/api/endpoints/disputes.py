from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from arena.api.dependencies import get_dispute_service, require_admin
from arena.models.dispute_model import Dispute, DisputeStatus
from arena.schemas.dispute_schemas import DisputeResolutionRequest
from arena.services.dispute_service import DisputeService

router = APIRouter()

@router.get("", response_model=List[Dispute], summary="Dispute queue (Admin Only)")
async def list_disputes(
    tournament_id: Optional[str] = Query(None),
    status: Optional[DisputeStatus] = Query(None, description="open or resolved"),
    admin_id: str = Depends(require_admin),
    service: DisputeService = Depends(get_dispute_service),
):
    return service.list_disputes(tournament_id=tournament_id, status=status)

@router.get("/{dispute_id}", response_model=Dispute, summary="Get a dispute (Admin Only)")
async def get_dispute(
    dispute_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    service: DisputeService = Depends(get_dispute_service),
):
    return service.get_dispute(dispute_id)

@router.post("/{dispute_id}/resolve", response_model=Dispute, summary="Rule on a dispute (Admin Only)")
async def resolve_dispute(
    payload: DisputeResolutionRequest,
    dispute_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    service: DisputeService = Depends(get_dispute_service),
):
    """
    - **reporter-upheld**: the reporter (or **winner_override**) wins the match.
    - **reporter-denied**: the other player wins.
    - **match-voided**: the result is thrown out; reschedule it with /matches/{id}/reopen.

    Overturning a result resets every later match that depended on it, and
    reopens a completed tournament.
    """
    return service.resolve_dispute(
        dispute_id,
        payload.outcome,
        admin_id=admin_id,
        note=payload.note,
        winner_override=payload.winner_override,
    )
