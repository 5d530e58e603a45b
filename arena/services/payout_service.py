import logging
import os
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Set

from arena.core.config import settings
from arena.core.errors import PayoutNotFound, PayoutNotPending, PrizePoolExceeded, ValidationError
from arena.core.locks import TournamentLockRegistry
from arena.models.bracket_model import Placement
from arena.models.payout_model import PayoutMethod, PayoutRecord, PayoutStatus
from arena.models.tournament_model import TournamentConfig
from arena.services.json_store import JsonStore

logger = logging.getLogger(__name__)

PAYOUTS_FILE = "payouts.json"

class PayoutLedger:
    """
    Prize obligations derived from final placements.

    The ledger records payout intent and its settlement status; moving money
    is done elsewhere and reported back through mark_paid / mark_failed.
    """

    def __init__(self,
                 payouts_file_path: Optional[str] = None,
                 locks: Optional[TournamentLockRegistry] = None):
        self.payouts_file_path = payouts_file_path or os.path.join(settings.DATA_DIR, PAYOUTS_FILE)
        self.store = JsonStore(self.payouts_file_path, PayoutRecord)
        self.locks = locks or TournamentLockRegistry()

    def list_payouts(self, tournament_id: Optional[str] = None, status: Optional[PayoutStatus] = None) -> List[PayoutRecord]:
        return self.store.filter(
            lambda p: (tournament_id is None or p.tournament_id == tournament_id)
            and (status is None or p.status == status)
        )

    def get_payout(self, payout_id: str) -> PayoutRecord:
        record = self.store.get(payout_id)
        if record is None:
            raise PayoutNotFound(details={"payout_id": payout_id})
        return record

    # --- seeding ---

    def plan_from_placements(self, tournament: TournamentConfig, placements: List[Placement],
                             exclude_ids: Optional[Set[str]] = None) -> List[PayoutRecord]:
        """
        Work out the pending records a set of placements calls for, without
        writing anything. Active records already standing for the same
        (participant, placement) are not planned again; active records the
        placements no longer account for, such as a payout made before an
        overturn, still count against the pool.
        """
        by_rank: Dict[int, List[str]] = defaultdict(list)
        for placement in placements:
            by_rank[placement.rank].append(placement.participant_id)

        existing = {
            (p.participant_id, p.placement): p
            for p in self.list_payouts(tournament_id=tournament.id)
            if p.is_active and p.id not in (exclude_ids or set())
        }
        placed = {(p.participant_id, p.rank) for p in placements}

        distribution = tournament.prize_pool.distribution
        planned: List[PayoutRecord] = []
        obligated = sum(record.amount for key, record in existing.items() if key not in placed)
        for rank in sorted(by_rank):
            share = distribution.share_for_rank(rank)
            holders = by_rank[rank]
            if share <= 0:
                continue
            # joint placements split the share; the remainder stays in the pool
            amount = share // len(holders)
            if amount <= 0:
                continue
            for participant_id in holders:
                obligated += amount
                if (participant_id, rank) in existing:
                    continue
                planned.append(PayoutRecord(
                    tournament_id=tournament.id,
                    participant_id=participant_id,
                    placement=rank,
                    amount=amount,
                ))

        if obligated > tournament.prize_pool.total:
            raise PrizePoolExceeded(details={
                "tournament_id": tournament.id,
                "obligated": obligated,
                "prize_pool": tournament.prize_pool.total,
            })
        return planned

    def seed_from_placements(self, tournament: TournamentConfig, placements: List[Placement]) -> List[PayoutRecord]:
        with self.locks.hold(tournament.id):
            records = self.plan_from_placements(tournament, placements)
            self.store.put_many(records)
        for record in records:
            logger.info("Payout pending: %s gets %s for place %s in %s",
                        record.participant_id, record.amount, record.placement, tournament.id)
        return records

    def plan_voiding(self, tournament_id: str) -> List[PayoutRecord]:
        """Pending records of a tournament, marked void in memory only."""
        voided = []
        for record in self.list_payouts(tournament_id=tournament_id):
            if record.status == PayoutStatus.PENDING:
                record.status = PayoutStatus.VOID.value
                record.settled_at = datetime.utcnow()
                voided.append(record)
            elif record.status == PayoutStatus.PAID:
                # settled money cannot be taken back from here
                logger.warning("Payout %s to %s was already paid and needs manual reconciliation",
                               record.id, record.participant_id)
        return voided

    def void_pending(self, tournament_id: str) -> List[PayoutRecord]:
        with self.locks.hold(tournament_id):
            voided = self.plan_voiding(tournament_id)
            self.store.put_many(voided)
        return voided

    def save_records(self, records: List[PayoutRecord]):
        self.store.put_many(records)

    # --- settlement ---

    def _settle(self, payout_id: str, status: PayoutStatus, **changes) -> PayoutRecord:
        record = self.get_payout(payout_id)
        with self.locks.hold(record.tournament_id):
            record = self.get_payout(payout_id)
            if record.status != PayoutStatus.PENDING:
                raise PayoutNotPending(details={"payout_id": payout_id, "status": record.status})
            record.status = status.value
            record.settled_at = datetime.utcnow()
            for key, value in changes.items():
                setattr(record, key, value)
            self.store.put(record)
        logger.info("Payout %s marked %s", payout_id, status.value)
        return record

    def mark_paid(self, payout_id: str, transaction_ref: Optional[str] = None,
                  method: Optional[PayoutMethod] = None) -> PayoutRecord:
        return self._settle(
            payout_id,
            PayoutStatus.PAID,
            transaction_ref=transaction_ref,
            method=PayoutMethod(method).value if method else None,
        )

    def mark_failed(self, payout_id: str, reason: str) -> PayoutRecord:
        if not reason or not reason.strip():
            raise ValidationError("A failure reason is required.")
        return self._settle(payout_id, PayoutStatus.FAILED, failure_reason=reason.strip())

    def mark_payout(self, payout_id: str, status: PayoutStatus, reference: Optional[str] = None,
                    method: Optional[PayoutMethod] = None) -> PayoutRecord:
        """Single entry point for the admin payouts screen: reference is the transaction ref or the failure reason."""
        status = PayoutStatus(status)
        if status == PayoutStatus.PAID:
            return self.mark_paid(payout_id, transaction_ref=reference, method=method)
        if status == PayoutStatus.FAILED:
            return self.mark_failed(payout_id, reason=reference or "")
        raise ValidationError(f"Payouts can only be marked paid or failed, not '{status.value}'.")

    def retry_failed(self, payout_id: str) -> PayoutRecord:
        """Follow a failed payout up with a fresh pending record; the failed one stays as it is."""
        record = self.get_payout(payout_id)
        with self.locks.hold(record.tournament_id):
            record = self.get_payout(payout_id)
            if record.status != PayoutStatus.FAILED:
                raise PayoutNotPending("Only failed payouts can be retried.", details={"payout_id": payout_id})
            if self.store.find_one(lambda r: r.get("retry_of") == payout_id) is not None:
                raise PayoutNotPending("This payout has already been retried.", details={"payout_id": payout_id})
            follow_up = PayoutRecord(
                tournament_id=record.tournament_id,
                participant_id=record.participant_id,
                placement=record.placement,
                amount=record.amount,
                retry_of=record.id,
            )
            self.store.put(follow_up)
        return follow_up
