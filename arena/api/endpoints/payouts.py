from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from arena.api.dependencies import get_payout_ledger, require_admin
from arena.models.payout_model import PayoutRecord, PayoutStatus
from arena.schemas.payout_schemas import PayoutUpdateRequest
from arena.services.payout_service import PayoutLedger

router = APIRouter()

@router.get("", response_model=List[PayoutRecord], summary="List payouts (Admin Only)")
async def list_payouts(
    tournament_id: Optional[str] = Query(None),
    status: Optional[PayoutStatus] = Query(None),
    admin_id: str = Depends(require_admin),
    ledger: PayoutLedger = Depends(get_payout_ledger),
):
    return ledger.list_payouts(tournament_id=tournament_id, status=status)

@router.get("/{payout_id}", response_model=PayoutRecord)
async def get_payout(
    payout_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    ledger: PayoutLedger = Depends(get_payout_ledger),
):
    return ledger.get_payout(payout_id)

@router.patch("/{payout_id}", response_model=PayoutRecord, summary="Mark a payout paid or failed (Admin Only)")
async def mark_payout(
    payload: PayoutUpdateRequest,
    payout_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    ledger: PayoutLedger = Depends(get_payout_ledger),
):
    return ledger.mark_payout(payout_id, payload.status, reference=payload.reference, method=payload.method)

@router.post("/{payout_id}/retry", response_model=PayoutRecord, status_code=201, summary="Retry a failed payout (Admin Only)")
async def retry_payout(
    payout_id: str = Path(...),
    admin_id: str = Depends(require_admin),
    ledger: PayoutLedger = Depends(get_payout_ledger),
):
    return ledger.retry_failed(payout_id)
