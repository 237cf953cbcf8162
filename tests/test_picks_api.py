from confidence_pool.models import Pick
from tests.conftest import pick


def stored_picks(app, participant_id):
    with app.app_context():
        return [
            (p.game_id, p.dependent_id, p.selected_team, p.confidence_points)
            for p in Pick.query.filter_by(participant_id=participant_id)
            .order_by(Pick.game_id, Pick.id)
            .all()
        ]


def test_submit_picks(app, login, wild_card):
    g1, g2, _ = wild_card["games"]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "picks": [
                pick(g1, "Baltimore Ravens", 3, pool_id),
                pick(g2, "Pittsburgh Steelers", 1, pool_id),
            ]
        },
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["written_count"] == 2
    assert {p["game_id"] for p in body["picks"]} == {g1, g2}
    assert all(p["is_correct"] is None for p in body["picks"])


def test_camel_case_fields_accepted(app, login, wild_card):
    g1 = wild_card["games"][0]
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "picks": [
                {
                    "gameId": g1,
                    "selectedTeam": "Baltimore Ravens",
                    "confidencePoints": 2,
                    "poolId": wild_card["pool_id"],
                    "round": "Wild Card",
                }
            ]
        },
    )

    assert response.status_code == 201
    assert stored_picks(app, wild_card["alice_id"]) == [
        (g1, None, "Baltimore Ravens", 2)
    ]


def test_duplicate_points_write_nothing(app, login, wild_card):
    g1, g2, _ = wild_card["games"]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "picks": [
                pick(g1, "Baltimore Ravens", 3, pool_id),
                pick(g2, "Buffalo Bills", 3, pool_id),
            ]
        },
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "duplicate_confidence_value"
    assert stored_picks(app, wild_card["alice_id"]) == []


def test_missing_field_reports_details(app, login, wild_card):
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={"picks": [{"game_id": wild_card["games"][0], "pool_id": wild_card["pool_id"]}]},
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid_pick_data"
    assert body["details"]["missing"]["selected_team"] is True


def test_picks_must_be_a_list(login, wild_card):
    client = login("alice@example.com")

    response = client.post("/api/picks", json={"picks": "all of them"})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid request format"


def test_unknown_dependent_writes_nothing(app, login, wild_card, make_dependent):
    # Bob's dependent is not Alice's
    kid_id = make_dependent(wild_card["bob_id"], "Bobby Jr")
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "dependent_id": kid_id,
            "picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, wild_card["pool_id"])],
        },
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "dependent_not_found"
    assert stored_picks(app, wild_card["alice_id"]) == []


def test_self_and_dependent_pick_same_game(app, login, wild_card, make_dependent):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    kid_id = make_dependent(wild_card["alice_id"], "Kid")
    client = login("alice@example.com")

    first = client.post(
        "/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]}
    )
    second = client.post(
        "/api/picks",
        json={
            "dependentId": kid_id,
            "picks": [pick(g1, "Los Angeles Chargers", 3, pool_id)],
        },
    )

    assert first.status_code == 201
    assert second.status_code == 201
    assert stored_picks(app, wild_card["alice_id"]) == [
        (g1, None, "Baltimore Ravens", 3),
        (g1, kid_id, "Los Angeles Chargers", 3),
    ]


def test_insert_conflict_is_duplicate_pick(app, login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")
    client.post("/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]})

    response = client.post(
        "/api/picks", json={"picks": [pick(g1, "Los Angeles Chargers", 2, pool_id)]}
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "duplicate_pick"
    assert stored_picks(app, wild_card["alice_id"]) == [
        (g1, None, "Baltimore Ravens", 3)
    ]


def test_duplicate_pick_rolls_back_whole_batch(app, login, wild_card):
    g1, g2, _ = wild_card["games"]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")
    client.post("/api/picks", json={"picks": [pick(g2, "Buffalo Bills", 3, pool_id)]})

    response = client.post(
        "/api/picks",
        json={
            "picks": [
                pick(g1, "Baltimore Ravens", 1, pool_id),
                pick(g2, "Pittsburgh Steelers", 2, pool_id),
            ]
        },
    )

    assert response.status_code == 409
    assert stored_picks(app, wild_card["alice_id"]) == [
        (g2, None, "Buffalo Bills", 3)
    ]


def test_upsert_replaces_existing_pick(app, login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")
    client.post("/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]})

    for _ in range(2):
        response = client.post(
            "/api/picks",
            json={"upsert": True, "picks": [pick(g1, "Los Angeles Chargers", 2, pool_id)]},
        )
        assert response.status_code == 201

    assert stored_picks(app, wild_card["alice_id"]) == [
        (g1, None, "Los Angeles Chargers", 2)
    ]


def test_upsert_flag_must_be_boolean(app, login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={"upsert": "false", "picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]},
    )

    assert response.status_code == 400
    assert "upsert" in response.get_json()["details"]
    assert stored_picks(app, wild_card["alice_id"]) == []


def test_team_must_be_playing(app, login, wild_card):
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={"picks": [pick(wild_card["games"][0], "Buffalo Bills", 1, wild_card["pool_id"])]},
    )

    assert response.status_code == 400
    assert "selected_team" in response.get_json()["details"]["invalid"]


def test_unknown_game_is_not_found(login, wild_card):
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={"picks": [pick(9999, "Baltimore Ravens", 1, wild_card["pool_id"])]},
    )

    assert response.status_code == 404


def test_non_member_cannot_pick(login, wild_card, make_participant):
    make_participant("carol@example.com", "Carol")
    client = login("carol@example.com")

    response = client.post(
        "/api/picks",
        json={"picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, wild_card["pool_id"])]},
    )

    assert response.status_code == 403


def test_cannot_claim_another_participant(login, wild_card):
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "participant_id": wild_card["bob_id"],
            "picks": [pick(wild_card["games"][0], "Baltimore Ravens", 1, wild_card["pool_id"])],
        },
    )

    assert response.status_code == 403


def test_picks_on_completed_games_are_rejected(app, login, wild_card, make_game):
    pool_id = wild_card["pool_id"]
    done = make_game(
        pool_id, "Detroit Lions", "Washington Commanders",
        days=-2, is_complete=True, winner="Detroit Lions",
    )
    client = login("alice@example.com")

    response = client.post(
        "/api/picks",
        json={
            "picks": [
                pick(wild_card["games"][0], "Baltimore Ravens", 1, pool_id),
                pick(done, "Detroit Lions", 4, pool_id),
            ]
        },
    )

    assert response.status_code == 400
    details = response.get_json()["details"]
    assert details["index"] == 1
    assert details["invalid"] == {"game_id": "Game is already complete"}
    assert stored_picks(app, wild_card["alice_id"]) == []


def test_picks_lock_at_kickoff(app, login, wild_card, make_game):
    pool_id = wild_card["pool_id"]
    started = make_game(pool_id, "Detroit Lions", "Washington Commanders", days=-1)
    client = login("alice@example.com")

    response = client.post(
        "/api/picks", json={"picks": [pick(started, "Detroit Lions", 4, pool_id)]}
    )

    assert response.status_code == 400
    assert response.get_json()["details"]["invalid"] == {
        "game_id": "Game has already started"
    }
    assert stored_picks(app, wild_card["alice_id"]) == []


def test_requires_login(client):
    response = client.post("/api/picks", json={"picks": []})
    assert response.status_code == 401


def test_pool_picks_and_status(login, wild_card, make_dependent):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    kid_id = make_dependent(wild_card["alice_id"], "Kid")
    client = login("alice@example.com")
    client.post("/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]})

    mine = client.get(f"/api/picks/pool/{pool_id}").get_json()
    assert [p["home_team"] for p in mine] == ["Baltimore Ravens"]

    kid_picks = client.get(f"/api/picks/pool/{pool_id}?dependent_id={kid_id}").get_json()
    assert kid_picks == []

    status = client.get(f"/api/picks/status/{pool_id}").get_json()
    assert status == {
        "pool_id": pool_id,
        "picks_made": 1,
        "total_games": 3,
        "picks_remaining": 2,
        "is_complete": False,
    }

    everything = client.get(f"/api/picks/pool/{pool_id}/all").get_json()
    assert len(everything["self"]["picks"]) == 1
    assert everything["dependents"][0]["dependent_id"] == kid_id

    upcoming = client.get("/api/picks/status").get_json()
    assert upcoming == {"picked_games": 1, "total_games": 3}


def test_summary_lists_pickers_with_points(app, login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    alice = login("alice@example.com")
    alice.post("/api/picks", json={"picks": [pick(g1, "Baltimore Ravens", 3, pool_id)]})

    summary = alice.get("/api/picks/summary").get_json()

    assert summary["pool_id"] == pool_id
    [picker] = summary["pickers"]
    assert picker["display_name"] == "Alice"
    assert picker["max_points"] == 3
    assert picker["total_points"] == 0
    game = next(g for g in summary["games"] if g["id"] == g1)
    assert game["picks"][0]["selected_team"] == "Baltimore Ravens"
