import pytest
from fastapi.testclient import TestClient

from poisync.main import create_app

POSITION = {"latitude": 47.6, "longitude": -122.3}


@pytest.fixture
def http(settings, fake_service):
    app = create_app(settings, transport=fake_service.transport())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def synced(http):
    assert http.put("/api/position", json=POSITION).status_code == 200
    response = http.post("/api/sync")
    assert response.status_code == 200
    return http


def test_health(http):
    response = http.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["cached_pois"] == 0
    assert response.headers["X-Request-ID"]


def test_request_id_from_host_is_echoed(http):
    response = http.get("/health", headers={"X-Request-ID": "host-42"})
    assert response.headers["X-Request-ID"] == "host-42"


def test_position_roundtrip(http):
    assert http.get("/api/position").status_code == 404
    assert http.put("/api/position", json=POSITION).json() == POSITION
    assert http.get("/api/position").json() == POSITION


def test_position_out_of_range_rejected(http):
    assert http.put("/api/position", json={"latitude": 95, "longitude": 0}).status_code == 422


def test_sync_without_position_is_a_no_op(http, fake_service):
    response = http.post("/api/sync")
    assert response.json()["status"] == "no_position"
    assert fake_service.requests == []


def test_registered_collections(http):
    names = http.get("/api/resources").json()
    assert "notes" in names
    assert "ac_Marina" in names
    assert len(names) == 15


def test_sync_populates_collections_and_telemetry(synced):
    notes = synced.get("/api/resources/notes").json()
    assert list(notes) == ["A"]
    assert notes["A"]["name"] == "Dock X"
    assert notes["A"]["group"] == "Marina"

    marina = synced.get("/api/resources/ac_Marina/A").json()
    assert marina["poiType"] == "Marina"

    assert synced.get("/api/resources/ac_Hazard").json() == {}

    telemetry = synced.get("/api/telemetry").json()
    assert telemetry["pointsOfInterest.activeCaptain.A"]["category"] == "Marina"

    assert synced.get("/health").json()["buckets"] == {"notes": 1, "ac_Marina": 1}


def test_get_unknown_resource_is_404(synced):
    response = synced.get("/api/resources/notes/nope")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "RESOURCE_NOT_FOUND"


def test_unknown_collection_is_404(http):
    response = http.get("/api/resources/routes")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "UNKNOWN_RESOURCE_TYPE"


@pytest.mark.parametrize("method", ["put", "post"])
def test_writes_are_unsupported(synced, method):
    response = getattr(synced, method)("/api/resources/notes/A", json={"name": "changed"})
    assert response.status_code == 405
    assert response.json()["detail"]["error"] == "UNSUPPORTED_OPERATION"
    assert synced.get("/api/resources/notes/A").json()["name"] == "Dock X"


@pytest.mark.parametrize("kwargs", [{}, {"json": [1, 2]}])
def test_writes_without_an_object_body_are_unsupported(synced, kwargs):
    response = synced.put("/api/resources/notes/A", **kwargs)
    assert response.status_code == 405
    assert response.json()["detail"]["error"] == "UNSUPPORTED_OPERATION"


def test_delete_is_unsupported(synced):
    response = synced.delete("/api/resources/notes/A")
    assert response.status_code == 405
    assert synced.get("/api/resources/notes/A").status_code == 200


def test_distance_filter_and_limit(synced):
    near = synced.get("/api/resources/notes", params={"lat": 47.61, "lon": -122.35, "distance_km": 1})
    assert list(near.json()) == ["A"]

    far = synced.get("/api/resources/notes", params={"lat": 40.0, "lon": -120.0, "distance_km": 1})
    assert far.json() == {}

    # Category entries carry the raw mapLocation
    near_marina = synced.get("/api/resources/ac_Marina", params={"lat": 47.61, "lon": -122.35, "distance_km": 1})
    assert list(near_marina.json()) == ["A"]

    assert synced.get("/api/resources/notes", params={"limit": 1}).json().keys() == {"A"}


def test_notes_only_configuration(settings, fake_service):
    settings.CATEGORY_RESOURCES = False
    app = create_app(settings, transport=fake_service.transport())
    with TestClient(app) as client:
        client.put("/api/position", json=POSITION)
        client.post("/api/sync")

        assert client.get("/api/resources").json() == ["notes"]
        assert client.get("/api/resources/ac_Marina").status_code == 404
        assert client.get("/api/resources/notes/A").status_code == 200
