import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from patroniglue.backend import HTTPBackend
from patroniglue.cache import MemoryCache
from patroniglue.main import create_app
from patroniglue.models import BackendConfig, CacheConfig, FrontendConfig, Settings


class StubPatroni:
    def __init__(self, codes=None, default: int = 200):
        self.codes = dict(codes or {})
        self.default = default
        self.calls: list[str] = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path)
        if self.fail:
            raise httpx.ConnectError("connection refused")
        return httpx.Response(self.codes.get(request.url.path.lstrip("/"), self.default))


def _app(stub: StubPatroni, ttl: float = 30, logformat: str | None = None):
    settings = Settings(
        frontend=FrontendConfig(logformat=logformat),
        backend=BackendConfig(host="patroni.test", port=8008),
        cache=CacheConfig(ttl=ttl, interval=0.25),
    )
    cache = MemoryCache.from_config(settings.cache)
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    backend = HTTPBackend(settings.backend, cache, client=client)
    return create_app(settings, cache=cache, backend=backend)


def test_health_is_always_ok():
    stub = StubPatroni(default=503)
    with TestClient(_app(stub)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"healthy": True}
    assert response.headers["content-type"] == "application/json"
    assert stub.calls == []


def test_primary_available_when_backend_returns_200():
    stub = StubPatroni(codes={"primary": 200})
    with TestClient(_app(stub)) as client:
        response = client.get("/primary")

    assert response.status_code == 200
    assert response.json() == {"primary": True}
    assert response.headers["content-type"] == "application/json"


def test_master_is_an_alias_of_primary():
    stub = StubPatroni(codes={"primary": 200})
    with TestClient(_app(stub)) as client:
        response = client.get("/master")

    assert response.status_code == 200
    assert response.json() == {"primary": True}
    assert stub.calls == ["/primary"]


def test_replica_unavailable_when_backend_returns_503():
    stub = StubPatroni(codes={"replica": 503})
    with TestClient(_app(stub)) as client:
        response = client.get("/replica")

    assert response.status_code == 503
    assert response.json() == {"replica": False}


@pytest.mark.parametrize("path", ["/read-write", "/read-only"])
def test_other_statuses_follow_backend(path):
    stub = StubPatroni(codes={path.lstrip("/"): 200}, default=503)
    with TestClient(_app(stub)) as client:
        ok = client.get(path)
        down = client.get("/replica")

    assert ok.status_code == 200
    assert ok.json() == {path.lstrip("/"): True}
    assert down.status_code == 503


def test_options_is_accepted_on_status_routes():
    stub = StubPatroni()
    with TestClient(_app(stub)) as client:
        response = client.options("/replica")

    assert response.status_code == 200
    assert response.json() == {"replica": True}


def test_backend_error_is_reported_as_unavailable_with_message():
    stub = StubPatroni()
    stub.fail = True
    with TestClient(_app(stub)) as client:
        response = client.get("/primary")

    assert response.status_code == 503
    payload = response.json()
    assert payload["primary"] is False
    assert "could not request" in payload["error"]


def test_repeated_probes_are_served_from_cache():
    stub = StubPatroni()
    with TestClient(_app(stub)) as client:
        for _ in range(5):
            assert client.get("/read-write").status_code == 200

    assert stub.calls == ["/read-write"]


def test_disabled_cache_probes_backend_every_time():
    stub = StubPatroni()
    with TestClient(_app(stub, ttl=0)) as client:
        for _ in range(3):
            client.get("/replica")

    assert stub.calls == ["/replica"] * 3


def test_lifespan_starts_and_stops_cache_evictor():
    app = _app(StubPatroni())
    cache = app.state.cache
    with TestClient(app):
        assert cache.running is True
    assert cache.running is False


def test_unknown_route_is_not_found():
    with TestClient(_app(StubPatroni())) as client:
        response = client.get("/leader")

    assert response.status_code == 404


def test_requests_are_logged_with_configured_format(caplog):
    stub = StubPatroni()
    with caplog.at_level(logging.INFO, logger="patroniglue.access"):
        with TestClient(_app(stub, logformat="%m %U from %a")) as client:
            client.get("/replica?verbose=1")

    messages = [record.getMessage() for record in caplog.records if record.name == "patroniglue.access"]
    assert any(message.startswith("GET /replica?verbose=1 from ") for message in messages)


def test_create_app_builds_components_from_settings():
    app = create_app(Settings(cache=CacheConfig(ttl=2, interval=0.5)))

    assert isinstance(app.state.cache, MemoryCache)
    assert app.state.cache.ttl == 2
    assert app.state.cache.interval == 0.5
    assert isinstance(app.state.backend, HTTPBackend)
    assert app.state.backend.base_url == "http://localhost:80"


def test_undecodable_200_body_still_reports_available():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip"))

    settings = Settings(backend=BackendConfig(host="patroni.test", port=8008), cache=CacheConfig(ttl=30))
    cache = MemoryCache.from_config(settings.cache)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    app = create_app(settings, cache=cache, backend=HTTPBackend(settings.backend, cache, client=client))

    with TestClient(app) as test_client:
        response = test_client.get("/primary")

    assert response.status_code == 200
    assert response.json() == {"primary": True}


def test_app_serves_probes_across_two_lifespans(monkeypatch):
    stub = StubPatroni(codes={"replica": 200})
    real_async_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_async_client(transport=httpx.MockTransport(stub), **kwargs)

    monkeypatch.setattr("patroniglue.backend.httpx.AsyncClient", client_factory)
    app = create_app(Settings(backend=BackendConfig(host="patroni.test", port=8008), cache=CacheConfig(ttl=0)))

    with TestClient(app) as client:
        first = client.get("/replica")
    with TestClient(app) as client:
        second = client.get("/replica")

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json() == {"replica": True}
    assert stub.calls == ["/replica", "/replica"]


def test_lifespan_drives_an_injected_cache():
    events = []

    class FakeManagedCache:
        ttl = 5.0
        interval = 1.0

        async def get(self, key):
            return True

        async def set(self, key, value):
            raise AssertionError("cache hit should not write")

        async def startup(self):
            events.append("startup")

        async def shutdown(self):
            events.append("shutdown")

    cache = FakeManagedCache()
    stub = StubPatroni(default=503)
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    backend = HTTPBackend(BackendConfig(host="patroni.test", port=8008), cache, client=client)
    app = create_app(cache=cache, backend=backend)

    with TestClient(app) as test_client:
        response = test_client.get("/read-only")

    assert response.status_code == 200
    assert response.json() == {"read-only": True}
    assert events == ["startup", "shutdown"]
    assert stub.calls == []
