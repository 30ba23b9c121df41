import json

from flow_puzzle.services import seen_store
from flow_puzzle.services.fingerprint import fingerprint
from flow_puzzle.services.puzzle import Puzzle


API = "/api/v1"


def fingerprint_of(puzzle_data):
    return fingerprint(Puzzle.from_dict(puzzle_data))


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get(f"{API}/health").json()["status"] == "ok"
    assert client.get("/").json()["health"] == "/health"


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_generate(client):
    response = client.post(f"{API}/levels/generate", json={
        "width": 5, "height": 5, "min_colors": 4, "max_colors": 5, "seed": 42,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["puzzle"]["width"] == 5
    assert data["validation"]["valid"] is True
    assert data["fingerprint"].startswith("5x5-")
    assert set(data) == {"puzzle", "used_fallback", "min_moves", "fingerprint", "validation"}
    # every cell but one per path is a move
    assert data["min_moves"] == 25 - data["puzzle"]["difficulty"]


def test_generate_is_deterministic_with_seed(client):
    body = {"width": 6, "height": 6, "seed": 5}
    first = client.post(f"{API}/levels/generate", json=body).json()
    second = client.post(f"{API}/levels/generate", json=body).json()
    assert first["fingerprint"] == second["fingerprint"]


def test_generate_schema_bounds(client):
    response = client.post(f"{API}/levels/generate", json={"width": 2, "height": 5})
    assert response.status_code == 422
    response = client.post(f"{API}/levels/generate", json={"width": 41, "height": 5})
    assert response.status_code == 422


def test_generate_parameter_error(client):
    response = client.post(f"{API}/levels/generate", json={
        "width": 5, "height": 5, "min_colors": 5, "max_colors": 4,
    })
    assert response.status_code == 400
    assert "min_colors" in response.json()["detail"]


def test_generate_unique(client):
    response = client.post(f"{API}/levels/generate-unique", json={
        "width": 5, "height": 5, "min_colors": 4, "max_colors": 5, "seed": 3,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["is_unique"] is True
    assert data["attempts_used"] >= 1
    assert data["fingerprint"] == fingerprint_of(data["puzzle"])
    assert data["min_moves"] == 25 - data["puzzle"]["difficulty"]


def test_generate_unique_skips_seen(client):
    body = {"width": 5, "height": 5, "min_colors": 4, "max_colors": 5, "seed": 3}
    first = client.post(f"{API}/levels/generate-unique", json=body).json()
    second = client.post(
        f"{API}/levels/generate-unique",
        json={**body, "seen_fingerprints": [first["fingerprint"]]},
    ).json()
    assert second["fingerprint"] != first["fingerprint"]


def test_generate_unique_bad_attempts(client):
    response = client.post(f"{API}/levels/generate-unique", json={
        "width": 5, "height": 5, "max_attempts": 0,
    })
    assert response.status_code == 400


def test_generate_unique_with_player(client, monkeypatch):
    stored = {}

    async def fake_load_seen(db, player_id):
        return frozenset({"5x5-known"})

    async def fake_record(db, player_id, fp):
        stored[player_id] = fp
        return frozenset({"5x5-known", fp})

    monkeypatch.setattr(seen_store, "load_seen", fake_load_seen)
    monkeypatch.setattr(seen_store, "record_fingerprint", fake_record)

    response = client.post(f"{API}/levels/generate-unique", json={
        "width": 5, "height": 5, "seed": 8, "player_id": "p1",
    })
    data = response.json()
    assert data["is_unique"] is True
    assert stored == {"p1": data["fingerprint"]}


def test_validate(client, rows_puzzle, shifted_rows_puzzle):
    response = client.post(f"{API}/levels/validate", json={"puzzle": rows_puzzle.to_dict()})
    assert response.json()["valid"] is True

    broken = rows_puzzle.to_dict()
    broken["solved_paths"] = broken["solved_paths"][:2]
    broken["difficulty"] = 2
    del broken["anchors"]["8"]
    del broken["anchors"]["11"]
    data = client.post(f"{API}/levels/validate", json={"puzzle": broken}).json()
    assert data["valid"] is False
    assert data["rule"] == "coverage"


def test_validate_rejects_malformed_body(client):
    response = client.post(f"{API}/levels/validate", json={"puzzle": {"width": 3}})
    assert response.status_code == 422


def test_fingerprint(client, rows_puzzle):
    fp = fingerprint(rows_puzzle)
    data = client.post(f"{API}/levels/fingerprint", json={
        "puzzle": rows_puzzle.to_dict(), "seen_fingerprints": [fp],
    }).json()
    assert data == {"fingerprint": fp, "known": True}


def test_check_completion(client, rows_puzzle):
    paths = {str(p.color_id): list(p.cells) for p in rows_puzzle.solved_paths}
    data = client.post(f"{API}/levels/check-completion", json={
        "puzzle": rows_puzzle.to_dict(), "player_paths": paths,
    }).json()
    assert data["complete"] is True

    del paths["2"]
    data = client.post(f"{API}/levels/check-completion", json={
        "puzzle": rows_puzzle.to_dict(), "player_paths": paths,
    }).json()
    assert data["complete"] is False


def test_hint(client, rows_puzzle):
    data = client.post(f"{API}/levels/hint", json={"puzzle": rows_puzzle.to_dict()}).json()
    assert data == {"color_id": 0, "path": [0, 1, 2, 3]}

    paths = {str(p.color_id): list(p.cells) for p in rows_puzzle.solved_paths}
    data = client.post(f"{API}/levels/hint", json={
        "puzzle": rows_puzzle.to_dict(), "player_paths": paths,
    }).json()
    assert data["color_id"] is None


def test_daily_for_date(client, fake_redis):
    response = client.get(f"{API}/daily/2024-01-15")
    assert response.status_code == 200
    data = response.json()
    assert data["seed"] == 20240115
    assert data["puzzle"]["width"] == 8
    assert data["min_moves"] == 64 - data["puzzle"]["difficulty"]

    cached = json.loads(fake_redis.store["daily:2024-01-15"])
    assert cached["fingerprint"] == data["fingerprint"]
    assert client.get(f"{API}/daily/2024-01-15").json() == data


def test_daily_served_from_cache(client, fake_redis, rows_puzzle):
    fake_redis.store["daily:2024-02-01"] = json.dumps({
        "date": "2024-02-01",
        "seed": 20240201,
        "fingerprint": "cached",
        "min_moves": rows_puzzle.min_moves,
        "puzzle": rows_puzzle.to_dict(),
    })
    assert client.get(f"{API}/daily/2024-02-01").json()["fingerprint"] == "cached"


def test_daily_today(client):
    response = client.get(f"{API}/daily")
    assert response.status_code == 200
    assert response.json()["puzzle"]["width"] == 8


def test_daily_bad_date(client):
    response = client.get(f"{API}/daily/not-a-date")
    assert response.status_code == 400


def test_players_seen(client, monkeypatch):
    async def fake_load_seen(db, player_id):
        return frozenset({"b", "a"})

    async def fake_merge(db, player_id, fingerprints):
        return frozenset({"a", "b"}) | set(fingerprints)

    monkeypatch.setattr(seen_store, "load_seen", fake_load_seen)
    monkeypatch.setattr(seen_store, "merge_player_seen", fake_merge)

    data = client.get(f"{API}/players/p1/seen").json()
    assert data == {"player_id": "p1", "fingerprints": ["a", "b"], "count": 2}

    data = client.post(f"{API}/players/p1/seen", json={"fingerprints": ["c"]}).json()
    assert data["fingerprints"] == ["a", "b", "c"]
    assert data["count"] == 3
