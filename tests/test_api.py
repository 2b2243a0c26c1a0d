from tests.conftest import QUESTION_IDS


def _create_room(client, name="Ava", avatar="🙂"):
    res = client.post("/api/rooms", json={"host_name": name, "host_avatar": avatar})
    assert res.status_code == 201
    return res.json()


def _ready_room(client):
    created = _create_room(client)
    res = client.post(f"/api/rooms/{created['code']}/join", json={"name": "Ben", "avatar": "😎"})
    assert res.status_code == 201
    guest = res.json()
    for player_id in (created["host_player_id"], guest["player_id"]):
        res = client.post(f"/api/players/{player_id}/ready", json={"ready": True})
        assert res.status_code == 200
    return created, guest["player_id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_config(client):
    data = client.get("/api/config").json()
    assert data["heartbeat_interval_sec"] == 10
    assert data["presence_timeout_sec"] == 20
    assert data["total_rounds"] == 10


def test_create_and_fetch_room(client):
    created = _create_room(client)
    assert len(created["code"]) == 6
    assert created["display_code"] == f"{created['code'][:3]} {created['code'][3:]}"

    res = client.get(f"/api/rooms/{created['code'].lower()}")
    assert res.status_code == 200
    data = res.json()
    assert data["room"]["id"] == created["room_id"]
    assert data["room"]["status"] == "lobby"
    assert data["room"]["host_id"] == created["host_player_id"]
    assert [p["name"] for p in data["players"]] == ["Ava"]
    assert data["players"][0]["online"] is True


def test_create_room_rejects_blank_name(client):
    res = client.post("/api/rooms", json={"host_name": "   ", "host_avatar": "🙂"})
    assert res.status_code == 422


def test_unknown_room_is_404(client):
    res = client.get("/api/rooms/ZZZ999")
    assert res.status_code == 404
    assert res.json()["detail"]["kind"] == "not_found"


def test_malformed_room_code_is_404(client):
    _create_room(client)

    assert client.get("/api/rooms/AB1").status_code == 404
    res = client.post("/api/rooms/TOOLONG99/join", json={"name": "Ben", "avatar": "😎"})
    assert res.status_code == 404
    assert res.json()["detail"]["error"] == "RoomNotFound"


def test_join_errors(client):
    created = _create_room(client)
    code = created["code"]

    res = client.post(f"/api/rooms/{code}/join", json={"name": "Ava", "avatar": "😎"})
    assert res.status_code == 409
    assert res.json()["detail"]["error"] == "DuplicatePlayerName"

    assert client.post(f"/api/rooms/{code}/join", json={"name": "Ben", "avatar": "😎"}).status_code == 201

    res = client.post(f"/api/rooms/{code}/join", json={"name": "Cid", "avatar": "🤠"})
    assert res.status_code == 409
    assert res.json()["detail"]["kind"] == "conflict"


def test_start_requires_ready_players(client):
    created = _create_room(client)
    client.post(f"/api/rooms/{created['code']}/join", json={"name": "Ben", "avatar": "😎"})

    res = client.post(f"/api/rooms/{created['room_id']}/start", json={"question_ids": QUESTION_IDS})
    assert res.status_code == 400
    assert res.json()["detail"]["kind"] == "precondition_failed"


def test_start_samples_questions_from_deck(client):
    created, _ = _ready_room(client)

    res = client.post(f"/api/rooms/{created['room_id']}/start", json={})
    assert res.status_code == 200
    room = res.json()
    assert room["status"] == "in_progress"
    assert room["deck_id"] == "soft-sweet-visual"
    assert len(room["question_sequence"]) == 10
    assert len(set(room["question_sequence"])) == 10

    res = client.post(f"/api/rooms/{created['room_id']}/start", json={})
    assert res.status_code == 409
    assert res.json()["detail"]["kind"] == "invalid_state"


def test_start_with_unknown_deck_and_no_questions(client):
    created, _ = _ready_room(client)

    res = client.post(f"/api/rooms/{created['room_id']}/start", json={"deck_id": "nope"})
    assert res.status_code == 404


def test_round_flow_over_http(client):
    created, guest_id = _ready_room(client)
    room_id = created["room_id"]
    host_id = created["host_player_id"]

    res = client.post(f"/api/rooms/{room_id}/start", json={"question_ids": QUESTION_IDS})
    assert res.status_code == 200

    res = client.post(f"/api/rooms/{room_id}/rounds/0/reveal", json={})
    assert res.status_code == 400

    for player_id, option in ((host_id, "b"), (guest_id, "b")):
        res = client.post(
            f"/api/rooms/{room_id}/rounds/0/lock",
            json={"player_id": player_id, "option_id": option}
        )
        assert res.status_code == 200

    current = client.get(f"/api/rooms/{room_id}/rounds/0").json()
    assert current["both_locked"] is True
    assert current["score_delta"] is None

    res = client.post(f"/api/rooms/{room_id}/rounds/0/reveal", json={})
    assert res.status_code == 200
    assert res.json() == {"score_delta": 1}

    res = client.post(f"/api/rooms/{room_id}/rounds/0/reveal", json={})
    assert res.status_code == 409

    res = client.post(
        f"/api/rooms/{room_id}/rounds/0/lock",
        json={"player_id": host_id, "option_id": "c"}
    )
    assert res.status_code == 409

    res = client.post(f"/api/rooms/{room_id}/advance", json={"expected_index": 0})
    assert res.json() == {"status": "in_progress", "round_index": 1, "advanced": True}
    res = client.post(f"/api/rooms/{room_id}/advance", json={"expected_index": 0})
    assert res.json() == {"status": "in_progress", "round_index": 1, "advanced": False}

    rounds = client.get(f"/api/rooms/{room_id}/rounds").json()
    assert [r["round_index"] for r in rounds] == [0, 1]

    score = client.get(f"/api/rooms/{room_id}/score").json()
    assert score == {
        "total_score": 1,
        "total_rounds": 10,
        "percentage": 10,
        "message": "Opposites attract!"
    }

    history = client.get(f"/api/rooms/{room_id}/history").json()
    assert history == [{
        "round_index": 0,
        "question_id": "q0",
        "answers": {host_id: "b", guest_id: "b"},
        "matched": True
    }]


def test_repeated_advance_without_index_moves_once(client):
    created, guest_id = _ready_room(client)
    room_id = created["room_id"]
    client.post(f"/api/rooms/{room_id}/start", json={"question_ids": QUESTION_IDS})

    res = client.post(f"/api/rooms/{room_id}/advance", json={})
    assert res.json() == {"status": "in_progress", "round_index": 0, "advanced": False}

    for player_id in (created["host_player_id"], guest_id):
        client.post(
            f"/api/rooms/{room_id}/rounds/0/lock",
            json={"player_id": player_id, "option_id": "a"}
        )
    assert client.post(f"/api/rooms/{room_id}/rounds/0/reveal", json={}).status_code == 200

    res = client.post(f"/api/rooms/{room_id}/advance", json={})
    assert res.json() == {"status": "in_progress", "round_index": 1, "advanced": True}
    res = client.post(f"/api/rooms/{room_id}/advance", json={})
    assert res.json() == {"status": "in_progress", "round_index": 1, "advanced": False}

    rounds = client.get(f"/api/rooms/{room_id}/rounds").json()
    assert [r["round_index"] for r in rounds] == [0, 1]


def test_lock_by_outsider_is_rejected(client):
    created, _ = _ready_room(client)
    room_id = created["room_id"]
    client.post(f"/api/rooms/{room_id}/start", json={"question_ids": QUESTION_IDS})
    outsider = _create_room(client, name="Zoe")["host_player_id"]

    res = client.post(
        f"/api/rooms/{room_id}/rounds/0/lock",
        json={"player_id": outsider, "option_id": "a"}
    )
    assert res.status_code == 400
    assert res.json()["detail"]["error"] == "PlayerNotInRoom"


def test_missing_round_is_404(client):
    created, _ = _ready_room(client)
    assert client.get(f"/api/rooms/{created['room_id']}/rounds/0").status_code == 404


def test_state_snapshot_tracks_version(client):
    created = _create_room(client)
    code = created["code"]

    state = client.get(f"/api/rooms/{code}/state").json()
    assert state["current_round"] is None
    assert state["score"]["total_score"] == 0
    version = state["room"]["state_version"]

    client.post(f"/api/rooms/{code}/join", json={"name": "Ben", "avatar": "😎"})
    state = client.get(f"/api/rooms/{code}/state").json()
    assert state["room"]["state_version"] > version
    assert len(state["players"]) == 2


def test_heartbeat_and_players(client):
    created = _create_room(client)
    host_id = created["host_player_id"]

    res = client.post(f"/api/players/{host_id}/heartbeat")
    assert res.status_code == 200
    assert res.json()["player_id"] == host_id

    players = client.get(f"/api/rooms/{created['room_id']}/players").json()
    assert players[0]["id"] == host_id
    assert players[0]["online"] is True

    assert client.post("/api/players/missing/heartbeat").status_code == 404


def test_get_deck(client):
    res = client.get("/api/decks/soft-sweet-visual")
    assert res.status_code == 200
    questions = res.json()["questions"]
    assert len(questions) >= 10
    assert all(len(q["options"]) == 4 for q in questions)

    assert client.get("/api/decks/unknown").status_code == 404
