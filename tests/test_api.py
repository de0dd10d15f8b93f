"""HTTP-level tests for /api/discover-stops, /api/final-route and /health."""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import discover as discover_api
from app.core.settings import settings
from app.main import app
from tests.fakes import FakeGoogle, place

ORIGIN = "49.2827,-123.1207"
DESTINATION = "49.2488,-122.9805"


class _StaticDirections:
    """Answers every request with the same JSON body."""

    def __init__(self, body):
        self.body = body

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=self.body)))


@pytest.fixture
def api(monkeypatch):
    monkeypatch.setattr(settings, "google_maps_api_key", "test-key")
    saved = dict(app.dependency_overrides)

    def use(fake, **client_kwargs) -> TestClient:
        async def provide_client():
            async with fake.client() as client:
                yield client

        app.dependency_overrides[discover_api.get_http_client] = provide_client
        return TestClient(app, **client_kwargs)

    yield use

    app.dependency_overrides.clear()
    app.dependency_overrides.update(saved)


def test_health(api):
    r = api(FakeGoogle()).get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


# ──────────────────────────────────────────────────────────────
# /api/discover-stops
# ──────────────────────────────────────────────────────────────

def test_discover_cafes_vancouver_to_burnaby(api):
    fake = FakeGoogle(
        origin=ORIGIN,
        places={"cafe": [place("c1", rating=4.7, reviews=800), place("c2", photo=None)]},
    )
    r = api(fake).get(
        "/api/discover-stops",
        params={"origin": ORIGIN, "destination": DESTINATION, "themes": "cafes", "searchRadiusMeters": 3000},
    )
    assert r.status_code == 200
    body = r.json()

    assert body["base"]["polyline"]
    assert body["base"]["distance_text"] == "12.0 km"
    assert body["parameters"]["themes"] == ["cafes"]
    assert body["parameters"]["search_radius_meters"] == 3000

    cafes = body["candidates"]["cafes"]
    assert [c["place_id"] for c in cafes] == ["c1", "c2"]
    for c in cafes:
        assert c["location"] is not None
        assert c["theme"] == "cafes"
        if c["photo_url"] is not None:
            qs = parse_qs(urlparse(c["photo_url"]).query)
            assert qs["photoreference"] == [f"photo-ref-{c['place_id']}"]
    assert cafes[1]["photo_url"] is None


def test_discover_defaults(api):
    fake = FakeGoogle(origin=ORIGIN)
    r = api(fake).get("/api/discover-stops", params={"origin": ORIGIN, "destination": DESTINATION})
    assert r.status_code == 200
    params = r.json()["parameters"]
    assert params["themes"] == ["hikes", "waterfalls", "lakes", "cafes"]
    assert params["days"] == 2
    assert params["per_theme"] == 12
    assert params["per_sample_per_theme"] == 2
    assert params["search_radius_meters"] == 3000


def test_discover_all_zero_results_is_success(api):
    fake = FakeGoogle(origin=ORIGIN)
    r = api(fake).get(
        "/api/discover-stops",
        params={"origin": ORIGIN, "destination": DESTINATION, "themes": "hikes,cafes"},
    )
    assert r.status_code == 200
    assert r.json()["candidates"] == {"hikes": [], "cafes": []}


@pytest.mark.parametrize("params", [{"origin": ORIGIN}, {"destination": DESTINATION}, {}])
def test_discover_requires_origin_and_destination(api, params):
    fake = FakeGoogle(origin=ORIGIN)
    r = api(fake).get("/api/discover-stops", params=params)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "bad_discover_request"
    assert fake.requests == []


def test_discover_rejects_unknown_mode(api):
    r = api(FakeGoogle()).get(
        "/api/discover-stops",
        params={"origin": ORIGIN, "destination": DESTINATION, "mode": "teleport"},
    )
    assert r.status_code == 422


def test_discover_no_route_is_404(api):
    fake = FakeGoogle(origin=ORIGIN, base_status="ZERO_RESULTS")
    r = api(fake).get("/api/discover-stops", params={"origin": ORIGIN, "destination": "Honolulu"})
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "no_route"


def test_discover_directions_error_surfaces_status(api):
    fake = FakeGoogle(origin=ORIGIN, base_status="REQUEST_DENIED")
    r = api(fake).get("/api/discover-stops", params={"origin": ORIGIN, "destination": DESTINATION})
    assert r.status_code == 503
    detail = r.json()["detail"]
    assert detail["code"] == "directions_error"
    assert detail["status"] == "REQUEST_DENIED"


def test_discover_bad_polyline(api):
    fake = _StaticDirections({"status": "OK", "routes": [{"overview_polyline": {"points": "_p~iF"}, "legs": []}]})
    r = api(fake).get("/api/discover-stops", params={"origin": ORIGIN, "destination": DESTINATION})
    assert r.status_code == 503
    assert r.json()["detail"]["code"] == "bad_route_geometry"


def test_missing_api_key_is_503(api, monkeypatch):
    monkeypatch.setattr(settings, "google_maps_api_key", "")
    fake = FakeGoogle(origin=ORIGIN)
    r = api(fake).get("/api/discover-stops", params={"origin": ORIGIN, "destination": DESTINATION})
    assert r.status_code == 503
    assert r.json()["detail"]["code"] == "missing_api_key"
    assert fake.requests == []


def test_unexpected_error_is_generic_500(api):
    class Exploding:
        async def discover(self, req):
            raise RuntimeError("secret internals")

    client = api(FakeGoogle(), raise_server_exceptions=False)
    app.dependency_overrides[discover_api.get_corridor_service] = lambda: Exploding()

    r = client.get("/api/discover-stops", params={"origin": ORIGIN, "destination": DESTINATION})
    assert r.status_code == 500
    assert r.json() == {"detail": {"code": "internal_error", "message": "Unexpected server error"}}
    assert "secret" not in r.text


# ──────────────────────────────────────────────────────────────
# /api/final-route
# ──────────────────────────────────────────────────────────────

def test_final_route_three_stops(api):
    fake = FakeGoogle()
    r = api(fake).post(
        "/api/final-route",
        json={"origin": ORIGIN, "destination": DESTINATION, "selectedPlaceIds": ["a", "b", "c"], "mode": "driving"},
    )
    assert r.status_code == 200
    body = r.json()
    assert sorted(body["waypoint_order"]) == [0, 1, 2]
    assert len(body["waypoint_order"]) == 3
    assert body["totals"]["duration_seconds"] > 0
    assert len(body["legs"]) == 4
    assert body["polyline"]


def test_final_route_requires_selection(api):
    fake = FakeGoogle()
    r = api(fake).post(
        "/api/final-route",
        json={"origin": ORIGIN, "destination": DESTINATION, "selectedPlaceIds": []},
    )
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "empty_selection"
    assert fake.requests == []


def test_final_route_requires_origin(api):
    r = api(FakeGoogle()).post("/api/final-route", json={"destination": DESTINATION, "selectedPlaceIds": ["a"]})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "bad_final_route_request"


def test_final_route_provider_error(api):
    fake = FakeGoogle(final_status="MAX_WAYPOINTS_EXCEEDED")
    r = api(fake).post(
        "/api/final-route",
        json={"origin": ORIGIN, "destination": DESTINATION, "selectedPlaceIds": ["a"]},
    )
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["code"] == "directions_error"
    assert detail["status"] == "MAX_WAYPOINTS_EXCEEDED"
    assert detail["message"] == "bad waypoints"


def test_run_server_serves_the_app_with_configured_address(monkeypatch):
    import app.main as main

    seen = {}
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kw: seen.update(target=target, **kw))
    monkeypatch.setattr(settings, "server_port", 9123)

    main.run_server()
    assert seen == {"target": app, "host": settings.server_host, "port": 9123}

    main.run_server(host="127.0.0.1", port=8000)
    assert seen["host"] == "127.0.0.1"
    assert seen["port"] == 8000
