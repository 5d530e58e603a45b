import os
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from arena.core.config import settings
from arena.core.errors import PermissionDenied
from arena.core.locks import TournamentLockRegistry
from arena.services.bracket_service import BRACKETS_FILE, DISPUTES_FILE, BracketService
from arena.services.dispute_service import DisputeService
from arena.services.notification_service import NotificationService
from arena.services.payout_service import PAYOUTS_FILE, PayoutLedger
from arena.services.tournament_service import TOURNAMENTS_FILE, TournamentService

# --- Services ---

class ArenaServices:
    """One set of services sharing a lock registry, a ledger and an event bus."""

    def __init__(self, data_dir: Optional[str] = None):
        data_dir = data_dir or settings.DATA_DIR
        self.locks = TournamentLockRegistry()
        self.notifications = NotificationService()
        self.tournaments = TournamentService(os.path.join(data_dir, TOURNAMENTS_FILE), locks=self.locks)
        self.payouts = PayoutLedger(os.path.join(data_dir, PAYOUTS_FILE), locks=self.locks)
        self.brackets = BracketService(
            brackets_file_path=os.path.join(data_dir, BRACKETS_FILE),
            disputes_file_path=os.path.join(data_dir, DISPUTES_FILE),
            tournament_service=self.tournaments,
            payout_ledger=self.payouts,
            notification_service=self.notifications,
            locks=self.locks,
        )
        self.disputes = DisputeService(self.brackets)

@lru_cache()
def get_services() -> ArenaServices:
    # built on first request so importing the app never touches the data dir
    return ArenaServices()

def get_tournament_service(services: ArenaServices = Depends(get_services)) -> TournamentService:
    return services.tournaments

def get_bracket_service(services: ArenaServices = Depends(get_services)) -> BracketService:
    return services.brackets

def get_dispute_service(services: ArenaServices = Depends(get_services)) -> DisputeService:
    return services.disputes

def get_payout_ledger(services: ArenaServices = Depends(get_services)) -> PayoutLedger:
    return services.payouts

def get_notification_service(services: ArenaServices = Depends(get_services)) -> NotificationService:
    return services.notifications

# --- Authentication and Authorization Dependencies ---

async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Identity comes from the gateway in front of the engine as a trusted header.
    Raises HTTPException if the request carries none.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id

async def get_current_role(x_user_role: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_role

async def require_admin(
    current_user_id: str = Depends(get_current_user_id),
    role: Optional[str] = Depends(get_current_role),
) -> str:
    """Returns the admin's user id, or raises PermissionDenied."""
    if role != settings.ADMIN_ROLE:
        raise PermissionDenied(details={"user_id": current_user_id})
    return current_user_id
