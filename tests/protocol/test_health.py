from __future__ import annotations

from fastapi.testclient import TestClient

from chesstutor.config import Settings
from chesstutor.protocol.http.app import create_app
from chesstutor.protocol.http.session import InMemorySessionStore


def test_healthz_ok() -> None:
    client = TestClient(create_app(Settings()))
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "x-request-id" in r.headers


def test_session_store_tracks_games() -> None:
    app = create_app(Settings())
    client = TestClient(app)
    store: InMemorySessionStore = app.state.sessions
    assert len(store) == 0
    game_id = client.post("/api/games").json()["game_id"]
    assert len(store) == 1
    assert store.get(game_id) is not None
    assert store.delete(game_id) is True
    assert store.delete(game_id) is False
    assert client.get(f"/api/games/{game_id}/state").status_code == 404
