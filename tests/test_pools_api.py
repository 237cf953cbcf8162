from confidence_pool import db
from confidence_pool.models import AdminAction, Pool
from tests.conftest import pick

POOL_BODY = {
    "name": "Family Playoffs",
    "start_date": "2026-01-10",
    "end_date": "2026-02-09T23:00",
    "total_games": 13,
}


def test_create_pool_makes_it_active(app, make_participant, login):
    make_participant("admin@example.com", "Admin")
    client = login("admin@example.com")

    response = client.post("/api/pools", json=POOL_BODY)

    assert response.status_code == 201
    body = response.get_json()
    assert body["is_active"] is True
    assert body["total_available_points"] == 91
    assert body["participant_count"] == 1

    active = client.get("/api/pools/active").get_json()
    assert active["id"] == body["id"]
    assert active["is_admin"] is True


def test_new_pool_replaces_active_pool(app, login, wild_card):
    client = login("alice@example.com")

    response = client.post("/api/pools", json={**POOL_BODY, "name": "Second Pool"})

    with app.app_context():
        assert Pool.get_active().id == response.get_json()["id"]
        assert not db.session.get(Pool, wild_card["pool_id"]).is_active


def test_pool_dates_must_be_ordered(make_participant, login):
    make_participant("admin@example.com")
    client = login("admin@example.com")

    response = client.post(
        "/api/pools", json={**POOL_BODY, "start_date": "2026-03-01", "end_date": "2026-02-01"}
    )

    assert response.status_code == 400
    assert "end_date" in response.get_json()["details"]


def test_pool_name_required(make_participant, login):
    make_participant("admin@example.com")
    client = login("admin@example.com")

    response = client.post("/api/pools", json={**POOL_BODY, "name": ""})

    assert response.status_code == 400
    assert "name" in response.get_json()["details"]


def test_join_and_leave(login, wild_card, make_participant):
    make_participant("carol@example.com", "Carol")
    carol = login("carol@example.com")
    pool_id = wild_card["pool_id"]

    assert carol.get("/api/pools/active").status_code == 403
    available = carol.get("/api/pools/available").get_json()
    assert available[0]["is_member"] is False

    assert carol.post(f"/api/pools/{pool_id}/join").status_code == 200
    assert carol.post(f"/api/pools/{pool_id}/join").status_code == 400
    assert carol.get("/api/pools/active").get_json()["is_admin"] is False

    assert carol.post(f"/api/pools/{pool_id}/leave").status_code == 200
    assert carol.post(f"/api/pools/{pool_id}/leave").status_code == 400


def test_admin_cannot_leave(login, wild_card):
    admin = login("admin@example.com")

    response = admin.post(f"/api/pools/{wild_card['pool_id']}/leave")

    assert response.status_code == 403


def test_update_settings(app, login, wild_card):
    admin = login("admin@example.com")
    pool_id = wild_card["pool_id"]

    response = admin.put(f"/api/pools/{pool_id}", json={"total_games": 11, "name": "Renamed"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["total_games"] == 11
    assert body["total_available_points"] == 66
    assert body["name"] == "Renamed"

    actions = admin.get(f"/api/pools/{pool_id}/admin-actions").get_json()
    assert actions[0]["action_type"] == "update_pool"
    assert actions[0]["metadata"] == {"name": "Renamed", "total_games": 11}


def test_deactivate_pool(app, login, wild_card):
    admin = login("admin@example.com")

    response = admin.put(f"/api/pools/{wild_card['pool_id']}", json={"is_active": False})

    assert response.get_json()["is_active"] is False
    with app.app_context():
        assert Pool.get_active() is None


def test_only_admin_updates_settings(app, login, wild_card):
    alice = login("alice@example.com")

    response = alice.put(f"/api/pools/{wild_card['pool_id']}", json={"name": "Mine now"})

    assert response.status_code == 403
    with app.app_context():
        assert AdminAction.query.count() == 0


def test_participants_with_pick_progress(login, wild_card, make_dependent):
    pool_id = wild_card["pool_id"]
    make_dependent(wild_card["alice_id"], "Kid")
    alice = login("alice@example.com")
    alice.post(
        "/api/picks",
        json={"picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, pool_id)]},
    )

    body = login("admin@example.com").get(f"/api/pools/{pool_id}/participants").get_json()

    by_name = {p["display_name"]: p for p in body}
    assert set(by_name) == {"Admin", "Alice", "Bob"}
    assert by_name["Alice"]["picks_count"] == 1
    assert by_name["Alice"]["total_games"] == 3
    assert by_name["Alice"]["picks_complete"] is False
    assert by_name["Alice"]["dependents"][0]["picks_count"] == 0
    assert by_name["Alice"]["dependents"][0]["parent_name"] == "Alice"


def test_get_pool_and_admin_pools(login, wild_card):
    admin = login("admin@example.com")

    pool = admin.get(f"/api/pools/{wild_card['pool_id']}").get_json()
    assert pool["is_member"] is True
    assert pool["is_admin"] is True

    assert [p["id"] for p in admin.get("/api/pools/admin").get_json()] == [
        wild_card["pool_id"]
    ]
    assert login("bob@example.com").get("/api/pools/admin").get_json() == []

    assert admin.get("/api/pools/9999").status_code == 404
