from __future__ import annotations

import httpx
import pytest

from arenacontent.core.exception import UpstreamError
from arenacontent.core.fetcher import ArtifactFetcher, rewrite_artifact_url

CONTROLLER = "http://omnia-controller-manager.omnia-system:8082"


def test_rewrite_local_development_url():
    url = "http://localhost:8082/arena/test.tar.gz"
    out = rewrite_artifact_url(url, prefixes=["http://localhost:8082"], controller_url=CONTROLLER)
    assert out == "http://omnia-controller-manager.omnia-system:8082/arena/test.tar.gz"


def test_rewrite_leaves_other_urls_alone():
    for url in ["https://artifacts.example.com/a.tar.gz", "http://localhost:80821/x", "http://localhost:9000/a"]:
        assert rewrite_artifact_url(url, prefixes=["http://localhost:8082"], controller_url=CONTROLLER) == url


def test_fetch_uses_rewritten_url(settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, content=b"payload")

    fetcher = ArtifactFetcher(settings, transport=httpx.MockTransport(handler))
    assert fetcher.fetch("http://localhost:8082/arena/test.tar.gz") == b"payload"
    assert seen == ["http://omnia-controller-manager.omnia-system:8082/arena/test.tar.gz"]


def test_fetch_non_2xx_is_upstream_error(settings):
    fetcher = ArtifactFetcher(settings, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    with pytest.raises(UpstreamError) as ei:
        fetcher.fetch("http://artifacts.local/a.tar.gz")
    assert ei.value.status_code == 503


def test_fetch_transport_error_is_upstream_error(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = ArtifactFetcher(settings, transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError):
        fetcher.fetch("http://artifacts.local/a.tar.gz")


def test_fetch_retries_transport_errors(settings, monkeypatch):
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda s: None)
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, content=b"ok")

    fetcher = ArtifactFetcher(settings.model_copy(update={"fetch_retries": 2}), transport=httpx.MockTransport(handler))
    assert fetcher.fetch("http://artifacts.local/a.tar.gz") == b"ok"
    assert calls["n"] == 2


def test_fetch_malformed_url_is_upstream_error(settings):
    fetcher = ArtifactFetcher(settings, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(UpstreamError, match="artifact fetch failed"):
        fetcher.fetch("http://[::1")
