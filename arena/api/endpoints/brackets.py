from fastapi import APIRouter, Depends, Path, Query

from arena.api.dependencies import get_bracket_service, require_admin
from arena.models.bracket_model import BracketModel
from arena.services.bracket_service import BracketService

router = APIRouter()

@router.post("/{tournament_id}/generate", response_model=BracketModel, status_code=201,
             summary="Generate bracket for the tournament")
async def generate_bracket(
    tournament_id: str = Path(..., description="The ID of the tournament"),
    force: bool = Query(False, description="Generate even though registration is still open"),
    admin_id: str = Depends(require_admin),
    service: BracketService = Depends(get_bracket_service),
):
    """
    Generates the bracket from the paid, non-disqualified roster and settles
    every Bye. A tournament gets exactly one bracket; the tournament moves to
    in-progress.
    """
    return service.generate_bracket(tournament_id, admin_id=admin_id, force=force)

@router.get("/{tournament_id}", response_model=BracketModel, summary="Get the bracket of a tournament")
async def get_bracket(
    tournament_id: str = Path(..., description="The ID of the tournament"),
    service: BracketService = Depends(get_bracket_service),
):
    return service.get_bracket(tournament_id)
