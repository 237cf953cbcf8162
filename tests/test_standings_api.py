from tests.conftest import pick


def submit(client, picks, **extra):
    response = client.post("/api/picks", json={"picks": picks, **extra})
    assert response.status_code == 201, response.get_json()


def test_everyone_listed_before_any_picks(login, wild_card, make_dependent):
    make_dependent(wild_card["alice_id"], "Kid")
    client = login("alice@example.com")

    body = client.get("/api/standings").get_json()

    assert body["pool_id"] == wild_card["pool_id"]
    assert body["total_available_points"] == 91
    assert body["completed_games"] == 0
    assert body["games_created"] == 3
    names = [e["display_name"] for e in body["standings"]]
    assert sorted(names) == ["Admin", "Alice", "Bob", "Kid"]
    assert all(e["earned_points"] == 0 and e["possible_points"] == 91 for e in body["standings"])
    assert [e["rank"] for e in body["standings"]] == [1, 2, 3, 4]


def test_results_update_ranking(login, wild_card, make_dependent):
    g1, g2, _ = wild_card["games"]
    pool_id = wild_card["pool_id"]
    kid_id = make_dependent(wild_card["alice_id"], "Kid")

    alice = login("alice@example.com")
    submit(alice, [pick(g1, "Baltimore Ravens", 13, pool_id), pick(g2, "Buffalo Bills", 12, pool_id)])
    submit(
        alice,
        [pick(g1, "Los Angeles Chargers", 13, pool_id), pick(g2, "Buffalo Bills", 1, pool_id)],
        dependent_id=kid_id,
    )
    bob = login("bob@example.com")
    submit(bob, [pick(g1, "Los Angeles Chargers", 5, pool_id)])

    # Warm the cache before results come in
    assert alice.get("/api/standings").get_json()["completed_games"] == 0

    admin = login("admin@example.com")
    for game_id, winner in ((g1, "Baltimore Ravens"), (g2, "Buffalo Bills")):
        response = admin.put(f"/api/games/{game_id}/result", json={"winner": winner})
        assert response.status_code == 200

    body = alice.get(f"/api/standings/pool/{pool_id}").get_json()
    assert body["completed_games"] == 2

    by_name = {e["display_name"]: e for e in body["standings"]}
    assert by_name["Alice"]["earned_points"] == 25
    assert by_name["Alice"]["rank"] == 1
    assert by_name["Kid"]["earned_points"] == 1
    assert by_name["Kid"]["lost_points"] == 13
    assert by_name["Kid"]["is_dependent"] is True
    assert by_name["Kid"]["parent_name"] == "Alice"
    assert by_name["Bob"]["possible_points"] == 86
    # Admin (0 earned, 91 possible) outranks Bob (0 earned, 86 possible)
    assert by_name["Admin"]["rank"] < by_name["Bob"]["rank"]


def test_reopening_a_game_restores_points(login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    alice = login("alice@example.com")
    submit(alice, [pick(g1, "Los Angeles Chargers", 10, pool_id)])
    admin = login("admin@example.com")

    admin.put(f"/api/games/{g1}/complete", json={"winner": "Baltimore Ravens"})
    before = alice.get("/api/standings").get_json()
    admin.put(f"/api/games/{g1}/result", json={"is_complete": False})
    after = alice.get("/api/standings").get_json()

    def alice_entry(body):
        return next(e for e in body["standings"] if e["display_name"] == "Alice")

    assert alice_entry(before)["possible_points"] == 81
    assert alice_entry(after)["possible_points"] == 91
    assert after["completed_games"] == 0


def test_pool_standings_require_membership(login, wild_card, make_participant):
    make_participant("carol@example.com")
    pool_id = wild_card["pool_id"]

    response = login("carol@example.com").get(f"/api/standings/pool/{pool_id}")

    assert response.status_code == 403
    assert login("bob@example.com").get(f"/api/standings/pool/{pool_id}").status_code == 200


def test_no_active_pool(make_participant, login):
    make_participant("solo@example.com")
    response = login("solo@example.com").get("/api/standings")

    assert response.status_code == 404


def test_dashboard(login, wild_card):
    g1 = wild_card["games"][0]
    pool_id = wild_card["pool_id"]
    alice = login("alice@example.com")
    submit(alice, [pick(g1, "Baltimore Ravens", 13, pool_id)])
    login("admin@example.com").put(
        f"/api/games/{g1}/result", json={"winner": "Baltimore Ravens"}
    )

    body = alice.get("/api/dashboard").get_json()

    assert body["pool_info"]["id"] == pool_id
    assert body["picks_status"]["picks_made"] == 1
    assert body["standings"] == {
        "rank": 1,
        "total_players": 3,
        "points": 13,
        "possible_points": 91,
    }
    assert len(body["upcoming_games"]) == 3


def test_dashboard_requires_membership(login, wild_card, make_participant):
    make_participant("carol@example.com")

    response = login("carol@example.com").get("/api/dashboard")

    assert response.status_code == 403
