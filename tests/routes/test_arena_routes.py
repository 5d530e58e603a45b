import pytest
from fastapi.testclient import TestClient

from arena.api.dependencies import get_services
from arena.main import app

ADMIN = {"X-User-Id": "admin_1", "X-User-Role": "admin"}
API = "/api/arena"

def player(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def closed_tournament(client):
    """Three paid players, registration closed."""
    response = client.post(f"{API}/tournaments", headers=ADMIN, json={
        "name": "Route Cup",
        "capacity": 4,
        "prize_pool": {"total": 600, "distribution": {"first": 300, "second": 200, "third": 100}},
    })
    assert response.status_code == 201
    tournament_id = response.json()["id"]

    client.patch(f"{API}/tournaments/{tournament_id}/status", headers=ADMIN, json={"status": "registration-open"})
    for user_id in ("a", "b", "c"):
        assert client.post(f"{API}/tournaments/{tournament_id}/participants", headers=player(user_id),
                           json={"game_tag": user_id.upper()}).status_code == 201
        client.patch(f"{API}/tournaments/{tournament_id}/participants/{user_id}/payment", headers=ADMIN,
                     json={"payment_status": "success"})
    response = client.patch(f"{API}/tournaments/{tournament_id}/status", headers=ADMIN,
                            json={"status": "registration-closed"})
    assert response.json()["status"] == "registration-closed"
    return tournament_id


class TestAuth:

    def test_missing_identity(self, client):
        response = client.post(f"{API}/matches/m1/submit", json={"own_score": 1, "opponent_score": 0})
        assert response.status_code == 401

    def test_admin_only(self, client):
        response = client.post(f"{API}/tournaments", headers=player("a"), json={"name": "Sneaky Cup"})
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"


class TestTournamentRoutes:

    def test_create_and_fetch(self, client):
        response = client.post(f"{API}/tournaments", headers=ADMIN, json={"name": "Smoke Test Tournament"})
        assert response.status_code == 201
        data = response.json()
        assert data["admin_id"] == "admin_1"
        assert data["status"] == "upcoming"

        fetched = client.get(f"{API}/tournaments/{data['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "Smoke Test Tournament"
        assert [t["id"] for t in client.get(f"{API}/tournaments", params={"status": "upcoming"}).json()] == [data["id"]]

    def test_unknown_tournament(self, client):
        response = client.get(f"{API}/tournaments/missing")
        assert response.status_code == 404
        assert response.json() == {
            "error": "TournamentNotFound",
            "code": "TOURNAMENT_NOT_FOUND",
            "message": "Tournament not found.",
            "details": {"tournament_id": "missing"},
        }

    def test_prize_split_over_total_is_rejected(self, client):
        response = client.post(f"{API}/tournaments", headers=ADMIN, json={
            "name": "Greedy Cup",
            "prize_pool": {"total": 100, "distribution": {"first": 300}},
        })
        assert response.status_code == 422

    def test_remove_participant_before_bracket(self, client, closed_tournament):
        response = client.delete(f"{API}/tournaments/{closed_tournament}/participants/c", headers=ADMIN)
        assert response.status_code == 200
        assert [p["user_id"] for p in response.json()["participants"]] == ["a", "b"]


class TestBracketFlow:

    def test_generate_play_and_pay(self, client, closed_tournament):
        response = client.post(f"{API}/brackets/{closed_tournament}/generate", headers=ADMIN)
        assert response.status_code == 201
        bracket = response.json()
        first_id = bracket["rounds_structure"]["1"][0]
        final_id = bracket["root_match_id"]

        again = client.post(f"{API}/brackets/{closed_tournament}/generate", headers=ADMIN)
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_GENERATED"

        tie = client.post(f"{API}/matches/{first_id}/submit", headers=player("a"), json={"own_score": 1, "opponent_score": 1})
        assert tie.status_code == 400
        assert tie.json()["code"] == "SCORE_TIE"

        client.post(f"{API}/matches/{first_id}/submit", headers=player("a"), json={"own_score": 2, "opponent_score": 1})
        resolved = client.post(f"{API}/matches/{first_id}/submit", headers=player("b"), json={"own_score": 1, "opponent_score": 2})
        assert resolved.json()["status"] == "resolved"

        late = client.post(f"{API}/matches/{first_id}/submit", headers=player("b"), json={"own_score": 5, "opponent_score": 0})
        assert late.status_code == 409
        assert late.json()["message"] == "This match is no longer open for results."

        client.post(f"{API}/matches/{final_id}/submit", headers=player("c"), json={"own_score": 3, "opponent_score": 0})
        client.post(f"{API}/matches/{final_id}/submit", headers=player("a"), json={"own_score": 0, "opponent_score": 3})

        assert client.get(f"{API}/tournaments/{closed_tournament}").json()["status"] == "completed"
        payouts = client.get(f"{API}/payouts", headers=ADMIN, params={"tournament_id": closed_tournament}).json()
        assert {p["participant_id"]: p["amount"] for p in payouts} == {"c": 300, "a": 200, "b": 100}

        winner_payout = next(p for p in payouts if p["participant_id"] == "c")
        paid = client.patch(f"{API}/payouts/{winner_payout['id']}", headers=ADMIN,
                            json={"status": "paid", "reference": "tx-9", "method": "wallet"})
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"

        events = client.get(f"{API}/events", headers=player("a"), params={"tournament_id": closed_tournament}).json()
        assert events[0]["name"] == "payout.pending"

    def test_dispute_flow(self, client, closed_tournament):
        bracket = client.post(f"{API}/brackets/{closed_tournament}/generate", headers=ADMIN).json()
        first_id = bracket["rounds_structure"]["1"][0]
        client.post(f"{API}/matches/{first_id}/submit", headers=player("a"), json={"own_score": 2, "opponent_score": 0})

        no_evidence = client.post(f"{API}/matches/{first_id}/dispute", headers=player("b"), json={"reason": "Lag"})
        assert no_evidence.status_code == 400
        assert no_evidence.json()["code"] == "EVIDENCE_REQUIRED"

        filed = client.post(f"{API}/matches/{first_id}/dispute", headers=player("b"),
                            json={"reason": "Lag", "evidence": ["https://cdn.example.com/1.png"]})
        assert filed.status_code == 201
        dispute_id = filed.json()["id"]

        queue = client.get(f"{API}/disputes", headers=ADMIN, params={"status": "open"}).json()
        assert [d["id"] for d in queue] == [dispute_id]

        ruling = client.post(f"{API}/disputes/{dispute_id}/resolve", headers=ADMIN,
                             json={"outcome": "reporter-upheld", "note": "Replay checked"})
        assert ruling.status_code == 200
        assert ruling.json()["winner_id"] == "b"

        again = client.post(f"{API}/disputes/{dispute_id}/resolve", headers=ADMIN, json={"outcome": "reporter-denied"})
        assert again.status_code == 409
        assert again.json()["code"] == "DISPUTE_NOT_OPEN"

        match = client.get(f"{API}/matches/{first_id}").json()
        assert match["winner"] == {"kind": "participant", "participant_id": "b"}

    def test_unsupported_format(self, client):
        tournament_id = client.post(f"{API}/tournaments", headers=ADMIN,
                                    json={"name": "League", "format": "round-robin"}).json()["id"]
        response = client.post(f"{API}/brackets/{tournament_id}/generate", headers=ADMIN, params={"force": True})
        assert response.status_code == 501

    def test_unknown_match(self, client):
        response = client.post(f"{API}/matches/missing/submit", headers=player("a"), json={"own_score": 1, "opponent_score": 0})
        assert response.status_code == 404
        assert response.json()["code"] == "MATCH_NOT_FOUND"
