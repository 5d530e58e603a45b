import pytest

from arena.core.errors import PayoutNotFound, PayoutNotPending, PrizePoolExceeded, ValidationError
from arena.models.bracket_model import Placement
from arena.models.payout_model import PayoutMethod, PayoutStatus
from arena.models.tournament_model import PrizeDistribution, PrizePool, TournamentConfig
from arena.services.payout_service import PayoutLedger

TEST_PAYOUTS_FILE = "test_payouts.json"


@pytest.fixture
def ledger(tmp_path):
    return PayoutLedger(payouts_file_path=str(tmp_path / TEST_PAYOUTS_FILE))

@pytest.fixture
def tournament():
    return TournamentConfig(
        name="Payout Cup",
        admin_id="admin_1",
        prize_pool=PrizePool(total=1000, distribution=PrizeDistribution(first=600, second=300, third=100)),
    )

def placements(*pairs):
    return [Placement(participant_id=pid, rank=rank) for pid, rank in pairs]


class TestSeedFromPlacements:

    def test_records_per_placement(self, ledger, tournament):
        records = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2), ("c", 3)))

        assert [(r.participant_id, r.placement, r.amount) for r in records] == [("a", 1, 600), ("b", 2, 300), ("c", 3, 100)]
        assert all(r.status == PayoutStatus.PENDING for r in records)
        assert len(ledger.list_payouts(tournament_id=tournament.id)) == 3

    def test_seeding_is_idempotent(self, ledger, tournament):
        ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        again = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))

        assert again == []
        assert len(ledger.list_payouts(tournament_id=tournament.id)) == 2

    def test_joint_third_place_splits_share(self, ledger, tournament):
        tournament.prize_pool = PrizePool(total=1001, distribution=PrizeDistribution(first=600, second=300, third=101))
        records = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2), ("c", 3), ("d", 3)))

        thirds = [r.amount for r in records if r.placement == 3]
        assert thirds == [50, 50]
        assert sum(r.amount for r in records) <= tournament.prize_pool.total

    def test_zero_share_places_get_nothing(self, ledger, tournament):
        tournament.prize_pool = PrizePool(total=500, distribution=PrizeDistribution(first=500))
        records = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2), ("c", 3)))
        assert [r.participant_id for r in records] == ["a"]

    def test_pool_cannot_be_exceeded(self, ledger, tournament):
        tournament.prize_pool.total = 500
        with pytest.raises(PrizePoolExceeded):
            ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        assert ledger.list_payouts() == []


class TestSettlement:

    def test_mark_paid(self, ledger, tournament):
        record, = ledger.seed_from_placements(tournament, placements(("a", 1)))
        paid = ledger.mark_paid(record.id, transaction_ref="tx-42", method=PayoutMethod.WALLET)

        assert paid.status == PayoutStatus.PAID
        assert paid.transaction_ref == "tx-42"
        assert paid.method == PayoutMethod.WALLET
        assert paid.settled_at is not None
        with pytest.raises(PayoutNotPending):
            ledger.mark_paid(record.id)

    def test_mark_failed_needs_reason(self, ledger, tournament):
        record, = ledger.seed_from_placements(tournament, placements(("a", 1)))
        with pytest.raises(ValidationError):
            ledger.mark_failed(record.id, " ")
        failed = ledger.mark_failed(record.id, "Wallet address rejected")
        assert failed.status == PayoutStatus.FAILED
        assert failed.failure_reason == "Wallet address rejected"

    def test_mark_payout_dispatches_on_status(self, ledger, tournament):
        first, second = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        assert ledger.mark_payout(first.id, PayoutStatus.PAID, reference="tx-1").transaction_ref == "tx-1"
        assert ledger.mark_payout(second.id, "failed", reference="Bank closed").failure_reason == "Bank closed"
        with pytest.raises(ValidationError):
            ledger.mark_payout(first.id, PayoutStatus.VOID)

    def test_retry_failed_payout(self, ledger, tournament):
        record, = ledger.seed_from_placements(tournament, placements(("a", 1)))
        with pytest.raises(PayoutNotPending):
            ledger.retry_failed(record.id)

        ledger.mark_failed(record.id, "Timeout")
        follow_up = ledger.retry_failed(record.id)
        assert follow_up.status == PayoutStatus.PENDING
        assert follow_up.retry_of == record.id
        assert follow_up.amount == record.amount
        assert ledger.get_payout(record.id).status == PayoutStatus.FAILED

        with pytest.raises(PayoutNotPending):
            ledger.retry_failed(record.id)

    def test_unknown_payout(self, ledger):
        with pytest.raises(PayoutNotFound):
            ledger.mark_paid("missing")


class TestVoiding:

    def test_void_pending_leaves_paid_alone(self, ledger, tournament):
        first, second = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        ledger.mark_paid(first.id, transaction_ref="tx-1")

        voided = ledger.void_pending(tournament.id)

        assert [r.id for r in voided] == [second.id]
        assert ledger.get_payout(first.id).status == PayoutStatus.PAID
        assert ledger.get_payout(second.id).status == PayoutStatus.VOID

    def test_paid_record_is_not_planned_again(self, ledger, tournament):
        first, _ = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        ledger.mark_paid(first.id)
        ledger.void_pending(tournament.id)

        planned = ledger.plan_from_placements(tournament, placements(("a", 1), ("b", 2)))
        assert [(r.participant_id, r.placement) for r in planned] == [("b", 2)]

    def test_paid_record_counts_against_pool_after_overturn(self, ledger, tournament):
        first, _ = ledger.seed_from_placements(tournament, placements(("a", 1), ("b", 2)))
        ledger.mark_paid(first.id)
        ledger.void_pending(tournament.id)

        # a keeps the 600 already paid, so a swapped final needs 1500
        with pytest.raises(PrizePoolExceeded) as exc_info:
            ledger.plan_from_placements(tournament, placements(("b", 1), ("a", 2)))
        assert exc_info.value.details["obligated"] == 1500

        tournament.prize_pool.total = 1500
        planned = ledger.plan_from_placements(tournament, placements(("b", 1), ("a", 2)))
        assert [(r.participant_id, r.placement, r.amount) for r in planned] == [("b", 1, 600), ("a", 2, 300)]
