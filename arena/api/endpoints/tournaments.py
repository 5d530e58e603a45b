from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from arena.api.dependencies import (
    get_bracket_service,
    get_current_user_id,
    get_tournament_service,
    require_admin,
)
from arena.models.tournament_model import Participant, TournamentConfig, TournamentStatus
from arena.schemas.tournament_schemas import (
    PaymentStatusRequest,
    RegistrationRequest,
    TournamentCreationRequest,
    UpdateStatusRequest,
)
from arena.services.bracket_service import BracketService
from arena.services.tournament_service import TournamentService

router = APIRouter()

@router.post("", response_model=TournamentConfig, status_code=201, summary="Create New Tournament")
async def create_tournament(
    tournament_data: TournamentCreationRequest,
    admin_id: str = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    """
    Creates a new tournament with the calling admin as its owner.

    - **name**: Name of the tournament (3-100 characters).
    - **format**: Bracket format; only single-elimination brackets can be generated for now.
    - **prize_pool**: Total pool and its first/second/third split. The split may not exceed the total.
    """
    config_data = tournament_data.model_dump()
    config_data["admin_id"] = admin_id
    return service.create_tournament(TournamentConfig(**config_data))

@router.get("", response_model=List[TournamentConfig], summary="List Tournaments")
async def list_tournaments(
    status: Optional[TournamentStatus] = Query(None, description="Only tournaments in this status"),
    admin_id: Optional[str] = Query(None, description="Only tournaments run by this admin"),
    service: TournamentService = Depends(get_tournament_service),
):
    if admin_id is not None:
        return [t for t in service.get_tournaments_by_admin(admin_id) if status is None or t.status == status]
    return service.list_tournaments(status=status)

@router.get("/{tournament_id}", response_model=TournamentConfig, summary="Get Specific Tournament Details")
async def get_tournament(
    tournament_id: str = Path(..., description="The ID of the tournament to retrieve."),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.require_tournament(tournament_id)

@router.post("/{tournament_id}/participants", response_model=Participant, status_code=201, summary="Register for a Tournament")
async def register_participant(
    registration: RegistrationRequest,
    tournament_id: str = Path(..., description="The ID of the tournament to join."),
    current_user_id: str = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service),
):
    """
    Registers the caller. Only paid registrations make it into the bracket,
    so the entry starts with a pending payment status.
    """
    return service.register_participant(tournament_id, current_user_id, registration.game_tag)

@router.patch("/{tournament_id}/participants/{user_id}/payment", response_model=Participant,
              summary="Record Entry Fee Payment (Admin Only)")
async def update_payment_status(
    payment: PaymentStatusRequest,
    tournament_id: str = Path(...),
    user_id: str = Path(..., description="The participant whose payment changed."),
    admin_id: str = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.update_payment_status(tournament_id, user_id, payment.payment_status)

@router.delete("/{tournament_id}/participants/{user_id}", response_model=TournamentConfig,
               summary="Remove or Disqualify a Participant (Admin Only)")
async def remove_participant(
    tournament_id: str = Path(...),
    user_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
    bracket_service: BracketService = Depends(get_bracket_service),
):
    """
    Before the bracket exists the registration is simply dropped. Afterwards
    the participant is disqualified and their live match is forfeited.
    """
    tournament = service.require_tournament(tournament_id)
    if tournament.bracket_id is None:
        return service.remove_participant(tournament_id, user_id)
    return bracket_service.disqualify_participant(tournament_id, user_id, admin_id=admin_id)

@router.patch("/{tournament_id}/status", response_model=TournamentConfig, summary="Update Tournament Status (Admin Only)")
async def update_tournament_status(
    status_data: UpdateStatusRequest,
    tournament_id: str = Path(..., description="The ID of the tournament whose status is to be updated."),
    admin_id: str = Depends(require_admin),
    service: TournamentService = Depends(get_tournament_service),
):
    """
    Moves the tournament along its lifecycle (registration-open,
    registration-closed, cancelled). in-progress and completed are set by the
    bracket engine and rejected here.
    """
    return service.update_tournament_status(tournament_id, status_data.status)
