import pytest
from fastapi.testclient import TestClient

from lifelog.core.config import Settings
from lifelog.server.app import _create_app
from tests.fixtures.memory_store import failing

SCENARIO = {
    "title": "Test Event",
    "note": "Some Test note",
    "created_at": "2018-11-25T11:26:08Z",
    "type": {"value": "start"},
    "tags": [{"value": "test1"}, {"value": "test2"}],
}


def make_settings():
    return Settings(
        POSTGRES_USER="lifelog",
        POSTGRES_PASSWORD="secret",
        POSTGRES_DB="lifelog",
        POSTGRES_HOST="localhost",
        POSTGRES_PORT="5432",
    )


@pytest.fixture
def client(service):
    app = _create_app(make_settings(), service=service, manage_pool=False)
    with TestClient(app) as client:
        yield client


def test_routes_registered():
    app = _create_app(make_settings(), manage_pool=False)
    paths = app.openapi()["paths"]
    assert {"/api/health", "/api/events", "/api/events/{event_id}", "/api/event"} <= set(paths)
    assert "get" in paths["/api/events/{event_id}"]
    assert "post" in paths["/api/event"]


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": "Alive!", "error": None}

    r = client.get("/health")
    assert r.json() == {"status": "ok"}


def test_create_and_fetch_event(client):
    r = client.post("/api/event", json=SCENARIO)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["error"] is None
    event_id = body["data"]["eventID"]

    r = client.get(f"/api/events/{event_id}")
    assert r.status_code == 200
    event = r.json()["data"]["event"]
    assert event["id"] == event_id
    assert event["title"] == "Test Event"
    assert event["note"] == "Some Test note"
    assert event["created_at"] == "2018-11-25T11:26:08Z"
    assert event["type"] == {"value": "start"}
    assert {tag["value"] for tag in event["tags"]} == {"test1", "test2"}
    assert "row_id" not in event


def test_timestamp_alias_and_utc_output(client):
    body = dict(SCENARIO)
    del body["created_at"]
    body["timestamp"] = "2018-11-25T06:26:08-05:00"

    event_id = client.post("/api/event", json=body).json()["data"]["eventID"]

    event = client.get(f"/api/events/{event_id}").json()["data"]["event"]
    assert event["created_at"] == "2018-11-25T11:26:08Z"


def test_list_events(client):
    r = client.get("/api/events")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {"events": []}, "error": None}

    client.post("/api/event", json=SCENARIO)
    client.post("/api/event", json={**SCENARIO, "title": "Other", "tags": []})

    events = client.get("/api/events").json()["data"]["events"]
    assert [event["title"] for event in events] == ["Test Event", "Other"]
    assert events[1]["tags"] == []


def test_unknown_event_is_404_envelope(client):
    r = client.get("/api/events/missing")
    assert r.status_code == 404
    assert r.json() == {
        "success": False,
        "data": None,
        "error": {"code": 404, "message": "get_event: event with id 'missing' not found"},
    }


@pytest.mark.parametrize(
    "body",
    [
        {**SCENARIO, "title": ""},
        {k: v for k, v in SCENARIO.items() if k != "created_at"},
        {**SCENARIO, "type": {"value": " "}},
        {**SCENARIO, "created_at": "yesterday"},
    ],
)
def test_invalid_body_is_422_envelope(client, store, body):
    r = client.post("/api/event", json=body)
    assert r.status_code == 422
    payload = r.json()
    assert payload["success"] is False
    assert payload["data"] is None
    assert payload["error"]["code"] == 422
    assert payload["error"]["message"]
    assert store.events == {}


def test_storage_failure_is_503_envelope(client, store):
    store.failures["fetch_events"] = failing("fetch_events")

    r = client.get("/api/events")

    assert r.status_code == 503
    assert r.json()["error"] == {"code": 503, "message": "list_events: fetch_events: connection lost"}


def test_unexpected_error_is_500_envelope(client, store):
    store.failures["fetch_events"] = RuntimeError("boom")

    r = client.get("/api/events")

    assert r.status_code == 500
    assert r.json()["success"] is False
    assert r.json()["error"]["code"] == 500


def test_unknown_route_is_enveloped(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json()["success"] is False
    assert r.json()["error"]["code"] == 404
