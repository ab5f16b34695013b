from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from neurorace.core import feature_flags
from neurorace.features.session import SessionManager
from neurorace.features.session.router import create_session_router
from neurorace.web.app import create_app

BASE = "/api/v1/session"


def _client() -> tuple[TestClient, SessionManager]:
    manager = SessionManager()
    app = FastAPI()
    app.include_router(create_session_router(manager))
    return TestClient(app), manager


def test_create_session_coerces_fields_and_returns_state() -> None:
    client, manager = _client()

    response = client.post(BASE, json={"seed": "77", "rounds": "7"})
    assert response.status_code == 200
    data = response.json()
    sid = data["session"]

    config = manager._sessions[sid].config
    assert config.seed == 77
    assert config.max_rounds == 8
    assert data["state"]["phase"] == "not_started"


def test_create_session_with_empty_body_uses_defaults() -> None:
    client, manager = _client()

    sid = client.post(BASE, json={"seed": "", "rounds": None}).json()["session"]

    config = manager._sessions[sid].config
    assert config.max_rounds == 20
    assert config.seed is not None


def test_full_session_over_http() -> None:
    client, _ = _client()
    sid = client.post(BASE, json={"seed": 2024, "rounds": 6}).json()["session"]

    names = client.post(f"{BASE}/{sid}/names", json={"player1": "Ada", "player2": "Grace"}).json()
    assert names["state"]["player1_name"] == "Ada"

    assert client.post(f"{BASE}/{sid}/tutorial/start").json()["state"]["phase"] == "tutorial"
    assert client.post(f"{BASE}/{sid}/tutorial/try").json()["accepted"] is True
    assert client.post(f"{BASE}/{sid}/tutorial/complete").json()["accepted"] is True
    completed = client.post(f"{BASE}/{sid}/tutorial/complete").json()
    assert completed["state"]["tutorial"]["sandbox_phase"] == "complete"
    assert completed["state"]["tutorial_round"] == 2
    assert client.post(f"{BASE}/{sid}/tutorial/retry").json()["state"]["tutorial"]["retry_count"] == 1
    assert client.post(f"{BASE}/{sid}/tutorial/skip").json()["state"]["tutorial_complete"] is True
    assert client.post(f"{BASE}/{sid}/tutorial/advance").json()["accepted"] is False

    started = client.post(f"{BASE}/{sid}/main/start").json()
    assert started["accepted"] is True
    assert started["state"]["schedule_length"] == 6

    for _ in range(6):
        result = client.post(f"{BASE}/{sid}/round", json={"elapsed_ms": 900, "penalty_seconds": 0.25}).json()
        assert result["accepted"] is True
    state = client.get(f"{BASE}/{sid}").json()
    assert state["is_game_over"] is True
    assert len(state["score_log"]) == 6

    late = client.post(f"{BASE}/{sid}/round", json={"elapsed_ms": 100}).json()
    assert late["accepted"] is False

    summary = client.get(f"{BASE}/{sid}/summary").json()
    assert summary["rounds"] == 6
    assert summary["is_tie"] is True
    assert len(summary["breakdown"]) == 4

    rematch = client.post(f"{BASE}/{sid}/rematch").json()
    assert rematch["state"]["phase"] == "main_in_progress"
    assert rematch["state"]["player2_name"] == "Grace"

    assert client.post(f"{BASE}/{sid}/end").json()["state"]["is_game_over"] is True
    reset = client.post(f"{BASE}/{sid}/new-game").json()
    assert reset["state"]["phase"] == "not_started"
    assert reset["state"]["player2_name"] == ""


def test_missing_session_and_bad_input() -> None:
    client, _ = _client()

    assert client.get(f"{BASE}/nope").status_code == 404
    assert client.get(f"{BASE}/nope/summary").status_code == 404
    assert client.post(f"{BASE}/nope/rematch").status_code == 404
    assert client.post(f"{BASE}/nope/round", json={"elapsed_ms": 10}).status_code == 404

    sid = client.post(BASE, json={"seed": 1}).json()["session"]
    assert client.post(f"{BASE}/{sid}/round", json={"elapsed_ms": -5}).status_code == 422
    assert client.post(f"{BASE}/{sid}/round", json={}).status_code == 422

    assert client.delete(f"{BASE}/{sid}").json() == {"session": sid, "dropped": True}
    assert client.delete(f"{BASE}/{sid}").status_code == 404


def test_non_finite_round_times_are_rejected() -> None:
    client, manager = _client()
    sid = client.post(BASE, json={"seed": 11}).json()["session"]
    client.post(f"{BASE}/{sid}/tutorial/skip")
    client.post(f"{BASE}/{sid}/main/start")

    for raw in ('{"elapsed_ms": NaN}', '{"elapsed_ms": Infinity}', '{"elapsed_ms": 500, "penalty_seconds": NaN}'):
        response = client.post(f"{BASE}/{sid}/round", content=raw, headers={"content-type": "application/json"})
        assert response.status_code == 422

    state = client.get(f"{BASE}/{sid}")
    assert state.status_code == 200
    assert state.json()["score_log"] == []
    assert state.json()["player1_total_time"] == 0.0
    assert manager.summary(sid).rounds == 0


def test_create_session_caps_round_count() -> None:
    client, manager = _client()

    assert client.post(BASE, json={"rounds": 100000}).status_code == 422
    assert client.post(BASE, json={"rounds": "101"}).status_code == 422
    assert manager._sessions == {}

    sid = client.post(BASE, json={"seed": 4, "rounds": 100}).json()["session"]
    assert manager._sessions[sid].config.max_rounds == 100


def test_drop_session_removes_it_from_the_manager() -> None:
    client, manager = _client()
    sid = client.post(BASE, json={"seed": 9}).json()["session"]

    assert client.delete(f"{BASE}/{sid}").status_code == 200

    assert sid not in manager._sessions
    assert client.get(f"{BASE}/{sid}").status_code == 404


def test_app_healthz_reports_active_flags() -> None:
    client = TestClient(create_app())

    with feature_flags.override(enable={feature_flags.TUTORIAL_DISABLED}, disable={feature_flags.FIXED_ALTERNATION}):
        body = client.get("/healthz").json()

    assert body["status"] == "ok"
    assert body["features"] == [feature_flags.TUTORIAL_DISABLED]

    sid = client.post(BASE, json={"seed": 3}).json()["session"]
    assert client.get(f"{BASE}/{sid}").status_code == 200
