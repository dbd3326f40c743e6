def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}

def test_unknown_pool_returns_404(client):
    assert client.get("/api/madness/pools/999").status_code == 404
    assert client.get("/api/pools/no-such-pool").status_code == 404
    assert client.get("/api/bowl/pools/999/standings").status_code == 404


# March Madness

def create_demo_mm_pool(client):
    response = client.post("/api/madness/pools", json={
        "name": "Office Madness",
        "tournament_year": 2024,
        "pot_amount": 640,
        "demo_mode": True,
    })
    assert response.status_code == 200
    mm_pool_id = response.json()["id"]
    assert client.post(f"/api/madness/pools/{mm_pool_id}/demo/seed").status_code == 200
    return mm_pool_id

def test_create_pool_rejects_bad_payouts(client):
    response = client.post("/api/madness/pools", json={
        "name": "Bad Payouts",
        "tournament_year": 2024,
        "champion_payout_pct": 90,
    })
    assert response.status_code == 400
    assert "100%" in response.json()["detail"]

def test_create_pool_rejects_unknown_push_rule(client):
    response = client.post("/api/madness/pools", json={
        "name": "Coin Pool",
        "tournament_year": 2024,
        "push_rule": "split_the_pot",
    })
    assert response.status_code == 400

def test_pool_lookup_by_slug(client):
    mm_pool_id = create_demo_mm_pool(client)
    response = client.get("/api/pools/office-madness")
    assert response.status_code == 200
    data = response.json()
    assert data["pool_type"] == "march_madness"
    assert data["detail_id"] == mm_pool_id

def test_draw_and_score_flow(client):
    mm_pool_id = create_demo_mm_pool(client)

    response = client.post(f"/api/madness/pools/{mm_pool_id}/draw")
    assert response.status_code == 200
    assert response.json()["games_created"] == 32

    assert client.post(f"/api/madness/pools/{mm_pool_id}/draw").status_code == 400

    bracket = client.get(f"/api/madness/pools/{mm_pool_id}/bracket").json()
    game = bracket["R64"][0]
    assert game["spread"] == -23.0

    response = client.put(
        f"/api/madness/pools/{mm_pool_id}/games/{game['id']}/score",
        json={"higher_seed_score": 70, "lower_seed_score": 60, "status": "final"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["winning_team_id"] == game["higher_seed_team_id"]
    assert data["advancing_entry_id"] == game["lower_seed_entry_id"]
    assert data["is_upset"] is True

    standings = client.get(f"/api/madness/pools/{mm_pool_id}/standings").json()
    assert standings["standings"][-1]["entry_id"] == game["higher_seed_entry_id"]
    assert standings["champion"] is None

def test_score_tie_rejected(client):
    mm_pool_id = create_demo_mm_pool(client)
    client.post(f"/api/madness/pools/{mm_pool_id}/draw")
    game = client.get(f"/api/madness/pools/{mm_pool_id}/bracket").json()["R64"][0]

    response = client.put(
        f"/api/madness/pools/{mm_pool_id}/games/{game['id']}/score",
        json={"higher_seed_score": 60, "lower_seed_score": 60, "status": "final"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Final score cannot be a tie"

def test_spread_entry(client):
    mm_pool_id = create_demo_mm_pool(client)
    client.post(f"/api/madness/pools/{mm_pool_id}/draw")
    game = client.get(f"/api/madness/pools/{mm_pool_id}/bracket").json()["R64"][1]
    url = f"/api/madness/pools/{mm_pool_id}/games/{game['id']}/spread"

    assert client.put(url, json={"spread": -3.5}).json()["spread"] == -3.5
    assert client.put(url, json={"spread": -3.3}).status_code == 400
    response = client.put(url, content='{"spread": 1e999}', headers={"Content-Type": "application/json"})
    assert response.status_code == 400

def test_locked_correction_returns_409(client):
    mm_pool_id = create_demo_mm_pool(client)
    client.post(f"/api/madness/pools/{mm_pool_id}/draw")
    bracket = client.get(f"/api/madness/pools/{mm_pool_id}/bracket").json()
    first, second = bracket["R64"][0], bracket["R64"][1]
    base = f"/api/madness/pools/{mm_pool_id}/games"

    client.put(f"{base}/{first['id']}/score", json={"higher_seed_score": 90, "lower_seed_score": 50})
    client.put(f"{base}/{second['id']}/score", json={"higher_seed_score": 80, "lower_seed_score": 60})
    next_game = client.get(f"/api/madness/pools/{mm_pool_id}/bracket").json()["R32"][0]
    response = client.put(f"{base}/{next_game['id']}/score", json={"higher_seed_score": 70, "lower_seed_score": 65})
    assert response.status_code == 200

    response = client.put(f"{base}/{first['id']}/score", json={"higher_seed_score": 70, "lower_seed_score": 60})
    assert response.status_code == 409

def test_demo_simulate_and_reset(client):
    mm_pool_id = create_demo_mm_pool(client)
    client.post(f"/api/madness/pools/{mm_pool_id}/draw")

    for expected in ("R64", "R32", "S16", "E8", "F4", "FINAL"):
        response = client.post(f"/api/madness/pools/{mm_pool_id}/demo/simulate")
        assert response.status_code == 200
        assert response.json()["round"] == expected

    standings = client.get(f"/api/madness/pools/{mm_pool_id}/standings").json()
    assert standings["champion"] == standings["standings"][0]["display_name"]

    assert client.post(f"/api/madness/pools/{mm_pool_id}/demo/reset").status_code == 200
    assert client.get(f"/api/madness/pools/{mm_pool_id}").json()["draw_completed"] is False

def test_demo_actions_need_demo_pool(client):
    response = client.post("/api/madness/pools", json={"name": "Real Pool", "tournament_year": 2024})
    mm_pool_id = response.json()["id"]
    assert client.post(f"/api/madness/pools/{mm_pool_id}/demo/seed").status_code == 400

def test_entry_management(client):
    response = client.post("/api/madness/pools", json={"name": "Entries", "tournament_year": 2024})
    mm_pool_id = response.json()["id"]

    entry = client.post(f"/api/madness/pools/{mm_pool_id}/entries", json={"display_name": "Sam"}).json()
    assert entry["verified"] is False

    verified = client.post(f"/api/madness/pools/{mm_pool_id}/entries/{entry['id']}/verify", json={"verified": True})
    assert verified.json()["verified"] is True

    assert client.delete(f"/api/madness/pools/{mm_pool_id}/entries/{entry['id']}").status_code == 200
    assert client.get(f"/api/madness/pools/{mm_pool_id}/entries").json() == []
    assert client.delete(f"/api/madness/pools/{mm_pool_id}/entries/{entry['id']}").status_code == 404

def test_add_team_validation(client):
    response = client.post("/api/madness/pools", json={"name": "Teams", "tournament_year": 2024})
    mm_pool_id = response.json()["id"]
    url = f"/api/madness/pools/{mm_pool_id}/teams"

    assert client.post(url, json={"name": "Houston", "seed": 1, "region": "South"}).status_code == 200
    assert client.post(url, json={"name": "Purdue", "seed": 1, "region": "South"}).status_code == 400
    assert client.post(url, json={"name": "Purdue", "seed": 1, "region": "North"}).status_code == 400
    assert client.post(url, json={"name": "Purdue", "seed": 17, "region": "Midwest"}).status_code == 422


# Bowl picks, CFP and squares

def test_bowl_pick_flow(client):
    pool = client.post("/api/bowl/pools", json={"name": "Bowl Buster", "demo_mode": True}).json()
    entry = client.post(f"/api/bowl/pools/{pool['id']}/entries", json={"display_name": "Alex"}).json()
    game = client.post(f"/api/bowl/pools/{pool['id']}/games", json={
        "home_team": "Georgia",
        "away_team": "Florida State",
        "game_name": "Orange Bowl",
        "home_spread": -14,
    }).json()

    response = client.post(
        f"/api/bowl/pools/{pool['id']}/entries/{entry['id']}/picks",
        json={"pool_game_id": game["pool_game_id"], "team_id": game["home_team_id"]}
    )
    assert response.status_code == 200

    response = client.put(
        f"/api/bowl/pools/{pool['id']}/games/{game['pool_game_id']}/result",
        json={"home_score": 63, "away_score": 3, "status": "final"}
    )
    assert response.json()["covering_team_id"] == game["home_team_id"]

    standings = client.get(f"/api/bowl/pools/{pool['id']}/standings").json()
    assert standings[0]["points"] == 1

def test_bowl_team_change_endpoints(client):
    pool = client.post("/api/bowl/pools", json={"name": "Team Swap", "demo_mode": True}).json()
    entry = client.post(f"/api/bowl/pools/{pool['id']}/entries", json={"display_name": "Alex"}).json()
    game = client.post(f"/api/bowl/pools/{pool['id']}/games", json={"home_team": "Texas", "away_team": "Michigan"}).json()
    other = client.post(f"/api/bowl/pools/{pool['id']}/games", json={"home_team": "Ohio State", "away_team": "Oregon"}).json()
    client.post(
        f"/api/bowl/pools/{pool['id']}/entries/{entry['id']}/picks",
        json={"pool_game_id": game["pool_game_id"], "team_id": game["away_team_id"]}
    )

    payload = {"home_team_id": game["home_team_id"], "away_team_id": other["away_team_id"]}
    base = f"/api/bowl/pools/{pool['id']}/games/{game['pool_game_id']}/teams"
    preview = client.post(f"{base}/preview", json=payload).json()
    assert preview["pick_count"] == 1

    response = client.post(f"{base}/confirm", json={**payload, "expected_pick_count": 1})
    assert response.json() == {"success": True, "deleted_picks": 1}

def test_cfp_endpoints(client):
    pool = client.post("/api/bowl/pools", json={"name": "Playoff"}).json()
    entry = client.post(f"/api/bowl/pools/{pool['id']}/entries", json={"display_name": "Alex"}).json()
    base = f"/api/bowl/pools/{pool['id']}/cfp"

    response = client.post(base, json={
        "bye_teams": {"1": "Oregon", "2": "Georgia", "3": "Boise State", "4": "Arizona State"},
        "round1": {
            "R1A": {"team_a": "Ohio State", "team_b": "Tennessee"},
            "R1B": {"team_a": "Texas", "team_b": "Clemson"},
            "R1C": {"team_a": "Penn State", "team_b": "SMU"},
            "R1D": {"team_a": "Notre Dame", "team_b": "Indiana"},
        },
    })
    assert response.status_code == 200
    slots = {s["slot_key"]: s for s in response.json()}
    ohio = slots["R1A"]["team_a_id"]

    response = client.post(f"{base}/entries/{entry['id']}/picks", json={"slot_key": "R1A", "team_id": ohio})
    assert response.json()["cleared_slots"] == []

    result = client.put(f"{base}/slots/R1A/result", json={"team_a_score": 42, "team_b_score": 17})
    assert result.json()["winner_team_id"] == ohio

    standings = client.get(f"{base}/standings").json()
    assert standings[0]["points"] == 1

def test_squares_endpoints(client):
    response = client.post("/api/squares/pools", json={"name": "Big Game", "q1_payout": 25})
    assert response.status_code == 200
    pool_id = response.json()["pool_id"]
    base = f"/api/squares/pools/{pool_id}"

    assert client.put(f"{base}/squares", json={"row_index": 0, "col_index": 0, "participant_name": "Alex"}).status_code == 200
    assert client.put(f"{base}/squares", json={"row_index": 10, "col_index": 0, "participant_name": "Alex"}).status_code == 400

    numbers = client.post(f"{base}/numbers").json()
    assert sorted(numbers["row_numbers"]) == list(range(10))
    assert client.post(f"{base}/numbers").status_code == 400

    game = client.post(f"{base}/games", json={"game_name": "Big Game"}).json()
    home = numbers["row_numbers"][0]
    away = numbers["col_numbers"][0]
    winners = client.post(
        f"{base}/games/{game['id']}/periods",
        json={"period": "q1", "home_score": home, "away_score": away}
    ).json()
    assert winners[0]["winner_name"] == "Alex"
    assert winners[0]["payout"] == 25

    leaderboard = client.get(f"{base}/leaderboard").json()
    assert leaderboard == [{"participant_name": "Alex", "wins": 1, "total_payout": 25.0}]
