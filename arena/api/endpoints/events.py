from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from arena.api.dependencies import get_current_user_id, get_notification_service
from arena.models.event_model import DomainEvent
from arena.services.notification_service import NotificationService

router = APIRouter()

@router.get("", response_model=List[DomainEvent], summary="Recent bracket events")
async def get_recent_events(
    tournament_id: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    return service.get_recent_events(tournament_id=tournament_id, skip=skip, limit=limit)
