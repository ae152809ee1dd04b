from fastapi.testclient import TestClient

from main import app


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_wrong_method_is_405(client):
    response = client.get("/create_daily_challenges")
    assert response.status_code == 405
    assert response.json() == {"error": "Method Not Allowed"}


def test_invalid_json_is_400(client):
    response = client.post(
        "/create_team",
        content="{not json",
        headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_empty_body_is_400(client):
    response = client.post("/end_league_room")
    assert response.status_code == 400
    assert "details" in response.json()


def test_wrong_field_type_lists_details(client):
    response = client.post("/create_team", json={"user_ids": "1,2", "league_room_id": 1})
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Validation failed"
    assert any(detail.startswith("user_ids") for detail in data["details"])


def test_unhandled_error_is_500(session, monkeypatch):
    from tandem.database import get_session
    from tandem.routers import streaks as streaks_router

    def explode(db):
        raise RuntimeError("boom")

    monkeypatch.setattr(streaks_router, "reset_broken_streaks", explode)
    app.dependency_overrides[get_session] = lambda: session
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post("/reset_streak")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


def test_request_id_is_generated(client):
    response = client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 32
