"""
Routing layer tests: health, proxied endpoints and error mapping
"""
import pytest
from fastapi.testclient import TestClient

from fpl_proxy.main import app, get_pipeline
from fpl_proxy.resources import ResourceFamily
from fpl_proxy.sources import ClientError, NetworkError, Payload, RateLimited, ServerError, Success, SourceChain

from conftest import DEFAULT_CHAINS, ScriptedFetcher, make_pipeline

client = TestClient(app)

CHAINS = {
    **DEFAULT_CHAINS,
    ResourceFamily.LIVE_EVENT: SourceChain.build(primary="primary/live/{gw}"),
    ResourceFamily.LEAGUE: SourceChain.build(primary="primary/league/{league_id}/{page}"),
    ResourceFamily.LEAGUE_BY_PHASE: SourceChain.build(primary="primary/league/{league_id}/phase/{phase}"),
    ResourceFamily.MANAGER_HISTORY: SourceChain.build(primary="primary/manager/{manager_id}/history"),
}


@pytest.fixture
def use_pipeline():
    """Install a pipeline over scripted sources for the duration of a test."""
    def install(script, ttls=None):
        fetcher = ScriptedFetcher(script)
        pipeline = make_pipeline(fetcher, CHAINS, ttls)
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return fetcher
    yield install
    app.dependency_overrides.clear()


def test_health_endpoint_returns_200():
    """Test that /health returns HTTP 200"""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_endpoint_returns_ok_status():
    """Test that /health returns status: OK"""
    data = client.get("/health").json()
    assert data["status"] == "OK"
    assert "timestamp" in data


def test_version_endpoint():
    data = client.get("/version").json()
    assert data["version"].startswith("v")


def test_unknown_path_returns_error_envelope():
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Not Found"
    assert "timestamp" in body


def test_bootstrap_is_proxied_verbatim(use_pipeline):
    raw = b'{"events": [], "teams": [], "elements": []}'
    use_pipeline({
        "primary/bootstrap": [Success(Payload(raw))],
        "secondary/bootstrap": [],
        "bootstrap-static.json": [],
    })

    response = client.get("/bootstrap-static")

    assert response.status_code == 200
    assert response.content == raw
    assert response.headers["content-type"].startswith("application/json")
    assert response.headers["cache-control"] == "public, max-age=300"


def test_picks_are_cached_between_requests(use_pipeline):
    fetcher = use_pipeline(
        {"primary/picks/123/4": [Success(Payload(b'{"picks":[]}'))]},
        ttls={ResourceFamily.PICKS: 600},
    )

    assert client.get("/picks/123/4").status_code == 200
    assert client.get("/picks/123/4").status_code == 200
    assert fetcher.calls == ["primary/picks/123/4"]


def test_league_routes_map_to_families(use_pipeline):
    fetcher = use_pipeline({
        "primary/league/314/2": [Success(Payload(b"{}"))],
        "primary/league/314/phase/3": [Success(Payload(b"{}"))],
    })

    assert client.get("/league/314/2").status_code == 200
    assert client.get("/league/mon/314/3").status_code == 200
    assert fetcher.calls == ["primary/league/314/2", "primary/league/314/phase/3"]


def test_manager_history_route(use_pipeline):
    fetcher = use_pipeline({"primary/manager/77/history": [Success(Payload(b'{"current":[]}'))]})
    response = client.get("/manager/77/history")
    assert response.status_code == 200
    assert response.json() == {"current": []}
    assert fetcher.calls == ["primary/manager/77/history"]


def test_rate_limited_body_is_returned_with_200(use_pipeline):
    use_pipeline({"primary/live/5": [RateLimited(Payload(b'{"ok":true}'))]})
    response = client.get("/live-event/5")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_client_error_is_passed_through(use_pipeline):
    use_pipeline({"primary/manager/9": [ClientError(404)]})
    response = client.get("/manager/9")
    assert response.status_code == 404
    assert "timestamp" in response.json()


def test_exhaustion_maps_to_server_error(use_pipeline):
    use_pipeline({"primary/manager/9": [NetworkError("refused")]})
    response = client.get("/manager/9")
    assert response.status_code == 502
    assert "all available sources" in response.json()["error"]


def test_unavailable_upstream_maps_to_503(use_pipeline):
    use_pipeline({"primary/manager/9": [ServerError(503)]})
    assert client.get("/manager/9").status_code == 503


def test_invalid_path_params_are_rejected(use_pipeline):
    fetcher = use_pipeline({})
    assert client.get("/element-summary/abc").status_code == 422
    assert client.get("/live-event/0").status_code == 422
    assert client.get("/picks/1/39").status_code == 422
    assert fetcher.calls == []


def test_invalid_path_params_use_error_envelope(use_pipeline):
    use_pipeline({})
    response = client.get("/live-event/39")
    assert response.status_code == 422
    body = response.json()
    assert set(body) == {"error", "timestamp"}
    assert "gw" in body["error"]


def test_cache_stats_endpoint(use_pipeline):
    use_pipeline({})
    data = client.get("/cache/stats").json()
    assert data["cache"]["entries"] == 0
    assert "bootstrap" in data["families"]
