from __future__ import annotations

import logging
from typing import Iterable, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from arenacontent.core.exception import UpstreamError
from arenacontent.core.runtime.settings import Settings

log = logging.getLogger("arenacontent.core.fetcher")


def rewrite_artifact_url(url: str, *, prefixes: Iterable[str], controller_url: str) -> str:
    """Map local-development artifact URLs onto the in-cluster controller service.

    The controller advertises artifact URLs on its loopback address when run
    locally; from inside the cluster those are only reachable through the
    controller's Service.
    """
    target = controller_url.rstrip("/")
    for prefix in prefixes:
        p = prefix.rstrip("/")
        if p and (url == p or url.startswith(p + "/")):
            return target + url[len(p):]
    return url


class ArtifactFetcher:
    """Downloads remote bundles over HTTP with a bounded timeout."""

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._transport = transport

    def resolve_url(self, url: str) -> str:
        return rewrite_artifact_url(
            url,
            prefixes=self.settings.dev_artifact_prefixes,
            controller_url=self.settings.controller_url,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.settings.fetch_timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    def fetch(self, url: str) -> bytes:
        """GET the artifact and return its body.

        Transport errors are retried (fetch_retries); any failure ends as UpstreamError.
        """
        target = self.resolve_url(url)
        attempts = max(1, 1 + int(self.settings.fetch_retries or 0))
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        try:
            with self._client() as client:
                response = retrying(client.get, target)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamError(f"artifact fetch failed: {target}: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"artifact fetch failed: {target}: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        log.debug("fetched artifact url=%s bytes=%d", target, len(response.content))
        return response.content
