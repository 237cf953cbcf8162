from confidence_pool.models import AdminAction, Pick
from tests.conftest import pick


def test_admin_saves_picks_for_participant(app, login, wild_card):
    g1, g2, _ = wild_card["games"]
    pool_id = wild_card["pool_id"]
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "picks": [
                pick(g1, "Baltimore Ravens", 2, pool_id),
                pick(g2, "Buffalo Bills", 1, pool_id),
            ],
        },
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["written_count"] == 2
    assert body["skipped_game_ids"] == []
    assert all(p["participant_id"] == wild_card["bob_id"] for p in body["picks"])

    with app.app_context():
        [action] = AdminAction.get_pool_actions(pool_id)
        assert action.action_type == "save_picks"
        assert action.target_participant_id == wild_card["bob_id"]


def test_admin_picks_skip_completed_games(app, login, wild_card, make_game):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    done = make_game(
        pool_id, "Detroit Lions", "Washington Commanders",
        days=-2, is_complete=True, winner="Detroit Lions",
    )
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "picks": [
                pick(g1, "Baltimore Ravens", 2, pool_id),
                pick(done, "Detroit Lions", 1, pool_id),
            ],
        },
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["written_count"] == 1
    assert body["skipped_game_ids"] == [done]
    with app.app_context():
        assert Pick.query.filter_by(game_id=done).count() == 0


def test_admin_picks_all_completed(login, wild_card, make_game):
    pool_id = wild_card["pool_id"]
    done = make_game(
        pool_id, "Detroit Lions", "Washington Commanders",
        days=-2, is_complete=True, winner="Detroit Lions",
    )
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "picks": [pick(done, "Detroit Lions", 1, pool_id)],
        },
    )

    body = response.get_json()
    assert body["written_count"] == 0
    assert body["message"] == "No picks to save (all games already complete)"


def test_admin_picks_overwrite(app, login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    bob = login("bob@example.com")
    bob.post("/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]})
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "picks": [pick(g1, "Los Angeles Chargers", 1, pool_id)],
        },
    )

    assert response.status_code == 200
    with app.app_context():
        [stored] = Pick.query.filter_by(participant_id=wild_card["bob_id"]).all()
        assert stored.selected_team == "Los Angeles Chargers"
        assert stored.confidence_points == 1


def test_admin_picks_for_dependent(app, login, wild_card, make_dependent):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    kid_id = make_dependent(wild_card["bob_id"], "Bobby Jr")
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "dependent_id": kid_id,
            "picks": [pick(g1, "Baltimore Ravens", 1, pool_id)],
        },
    )

    assert response.status_code == 200
    assert response.get_json()["picks"][0]["dependent_id"] == kid_id


def test_only_pool_admin_may_save_for_others(login, wild_card):
    pool_id = wild_card["pool_id"]
    alice = login("alice@example.com")

    response = alice.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": pool_id,
            "participant_id": wild_card["bob_id"],
            "picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, pool_id)],
        },
    )

    assert response.status_code == 403


def test_participant_id_required(login, wild_card):
    admin = login("admin@example.com")

    response = admin.post(
        "/api/participants/admin/picks",
        json={"pool_id": wild_card["pool_id"], "picks": []},
    )

    assert response.status_code == 400
    assert "participant_id" in response.get_json()["details"]


def test_picks_for_another_pool_rejected(login, wild_card):
    admin = login("admin@example.com")
    other_pool = wild_card["pool_id"] + 1

    response = admin.post(
        "/api/participants/admin/picks",
        json={
            "pool_id": wild_card["pool_id"],
            "participant_id": wild_card["bob_id"],
            "picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, other_pool)],
        },
    )

    assert response.status_code == 400
    assert "pool_id" in response.get_json()["details"]["invalid"]
