import pytest

from arena.api.dependencies import ArenaServices
from arena.models.tournament_model import (
    Participant,
    PaymentStatus,
    PrizeDistribution,
    PrizePool,
    TournamentConfig,
    TournamentFormat,
    TournamentStatus,
)

ADMIN_ID = "admin_1"

@pytest.fixture
def services(tmp_path):
    # every service writes under tmp_path and shares one lock registry
    return ArenaServices(data_dir=str(tmp_path))

@pytest.fixture
def prize_pool():
    return PrizePool(total=1000, distribution=PrizeDistribution(first=500, second=300, third=200))

@pytest.fixture
def make_tournament(services, prize_pool):
    def _make(roster, status=TournamentStatus.REGISTRATION_CLOSED, third_place_match=False,
              format=TournamentFormat.SINGLE_ELIMINATION, seeding=None, pool=None):
        tournament = TournamentConfig(
            name="Friday Night Cup",
            admin_id=ADMIN_ID,
            capacity=max(len(roster), 2),
            status=status,
            format=format,
            third_place_match=third_place_match,
            seeding=seeding,
            prize_pool=pool or prize_pool,
            participants=[
                Participant(user_id=pid, game_tag=pid.upper(), payment_status=PaymentStatus.SUCCESS)
                for pid in roster
            ],
        )
        return services.tournaments.create_tournament(tournament)
    return _make

@pytest.fixture
def play(services):
    """Both players report the same result for a match."""
    def _play(match_id, winner, loser):
        services.brackets.submit_match_result(match_id, winner, 2, 1)
        return services.brackets.submit_match_result(match_id, loser, 1, 2)
    return _play
