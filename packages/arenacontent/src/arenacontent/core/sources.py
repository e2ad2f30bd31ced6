"""Source lookup and ConfigMap collaborators.

Two implementations share one contract:

- KubeClient: the Kubernetes REST API over httpx (in-cluster service account).
- ManifestCatalog: YAML manifests laid out like the API paths, for local
  development and tests::

      {catalog}/workspaces/{workspace}.yaml
      {catalog}/namespaces/{ns}/arenasources/{name}.yaml
      {catalog}/namespaces/{ns}/configmaps/{name}.yaml
"""

from __future__ import annotations

import base64
import binascii
import logging
import ssl
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union

import httpx
import yaml
from pydantic import ValidationError

from arenacontent.core.archive import extract_archive
from arenacontent.core.exception import (
    ContentNotFoundError,
    CorruptArchiveError,
    SourceNotFoundError,
    SpecError,
    UpstreamError,
)
from arenacontent.core.runtime.settings import Settings
from arenacontent.core.spec import ArenaSource, WorkspaceSpec

log = logging.getLogger("arenacontent.core.sources")

API_GROUP = "omnia.altairalabs.ai"
API_VERSION = "v1alpha1"

FileMap = Dict[str, Union[str, bytes]]


class SourceLookup(Protocol):
    """Finds Sources by workspace; callers have already checked authorization."""

    def get_namespace(self, workspace: str) -> str:
        ...

    def get_source(self, workspace: str, name: str) -> ArenaSource:
        ...


class ConfigMapReader(Protocol):
    def get_configmap_content(self, namespace: str, name: str) -> Optional[FileMap]:
        ...


def configmap_files(obj: Mapping[str, Any], *, max_bytes: Optional[int] = None) -> Optional[FileMap]:
    """Files held by a ConfigMap object.

    A ``*.tar.gz``/``*.tgz`` entry in binaryData wins when it extracts to at
    least one file; otherwise the plain data keys are used.
    """
    binary = obj.get("binaryData") or {}
    for key, encoded in binary.items():
        if not (str(key).endswith(".tar.gz") or str(key).endswith(".tgz")):
            continue
        try:
            files = extract_archive(base64.b64decode(encoded), max_bytes=max_bytes)
        except (binascii.Error, ValueError, CorruptArchiveError) as e:
            log.warning("ignoring unreadable ConfigMap archive key=%s: %s", key, e)
            break
        if files:
            return dict(files)
        break
    data = obj.get("data")
    if not data:
        return None
    return {str(k): str(v) for k, v in data.items()}


def _parse_source(obj: Any, *, origin: str) -> ArenaSource:
    try:
        return ArenaSource.model_validate(obj)
    except ValidationError as e:
        raise SpecError(f"Invalid ArenaSource manifest ({origin}): {e}") from e


def _parse_workspace(obj: Any, *, origin: str) -> WorkspaceSpec:
    try:
        return WorkspaceSpec.model_validate(obj)
    except ValidationError as e:
        raise SpecError(f"Invalid Workspace manifest ({origin}): {e}") from e


class KubeClient:
    """Kubernetes API collaborator backed by httpx.

    The service-account token is re-read for every client so rotated tokens
    are picked up without a restart.
    """

    def __init__(self, settings: Settings, *, transport: Optional[httpx.BaseTransport] = None, token: Optional[str] = None):
        self.settings = settings
        self._transport = transport
        self._token = token

    def _headers(self) -> dict:
        token = self._token
        if token is None:
            p = Path(self.settings.kube_token_path)
            token = p.read_text(encoding="utf-8").strip() if p.exists() else ""
        h = {"Accept": "application/json"}
        if token:
            h["Authorization"] = f"Bearer {token}"
        return h

    def _verify(self):
        ca = Path(self.settings.kube_ca_path)
        return ssl.create_default_context(cafile=str(ca)) if ca.exists() else True

    def client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.settings.kube_api_url.rstrip("/"),
            headers=self._headers(),
            timeout=self.settings.fetch_timeout,
            verify=self._verify(),
            transport=self._transport,
        )

    def _get(self, path: str) -> Optional[dict]:
        """GET a JSON object; None on 404, UpstreamError on anything else that fails."""
        try:
            with self.client() as c:
                r = c.get(path)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Kubernetes API request failed: GET {path}: {e}") from e
        if r.status_code == 404:
            return None
        if not r.is_success:
            raise UpstreamError(f"Kubernetes API request failed: GET {path}: HTTP {r.status_code}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(f"Kubernetes API returned invalid JSON: GET {path}") from e

    def get_workspace(self, workspace: str) -> WorkspaceSpec:
        obj = self._get(f"/apis/{API_GROUP}/{API_VERSION}/workspaces/{workspace}")
        if obj is None:
            raise ContentNotFoundError(f"Workspace not found: {workspace}")
        return _parse_workspace(obj, origin=f"workspace/{workspace}")

    def get_namespace(self, workspace: str) -> str:
        return self.get_workspace(workspace).namespace

    def get_source(self, workspace: str, name: str) -> ArenaSource:
        ns = self.get_namespace(workspace)
        obj = self._get(f"/apis/{API_GROUP}/{API_VERSION}/namespaces/{ns}/arenasources/{name}")
        if obj is None:
            raise SourceNotFoundError(f"Arena source not found: {name}")
        return _parse_source(obj, origin=f"{ns}/{name}")

    def get_configmap_content(self, namespace: str, name: str) -> Optional[FileMap]:
        obj = self._get(f"/api/v1/namespaces/{namespace}/configmaps/{name}")
        if obj is None:
            return None
        return configmap_files(obj, max_bytes=self.settings.max_archive_bytes)


class ManifestCatalog:
    """Reads Workspaces, ArenaSources and ConfigMaps from YAML files on disk."""

    def __init__(self, root: str | Path, *, settings: Optional[Settings] = None):
        self.root = Path(root)
        self.settings = settings

    def _load(self, p: Path) -> Optional[dict]:
        if not p.is_file():
            return None
        try:
            with open(p, "r", encoding="utf-8") as f:
                obj = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SpecError(f"Invalid YAML in {p}: {e}") from e
        if obj is not None and not isinstance(obj, dict):
            raise SpecError(f"Manifest must be a YAML mapping: {p}")
        return obj

    def get_namespace(self, workspace: str) -> str:
        p = self.root / "workspaces" / f"{workspace}.yaml"
        obj = self._load(p)
        if obj is None:
            # Without a Workspace manifest the namespace shares the workspace name.
            return workspace
        return _parse_workspace(obj, origin=str(p)).namespace

    def get_source(self, workspace: str, name: str) -> ArenaSource:
        ns = self.get_namespace(workspace)
        p = self.root / "namespaces" / ns / "arenasources" / f"{name}.yaml"
        obj = self._load(p)
        if obj is None:
            raise SourceNotFoundError(f"Arena source not found: {name}")
        source = _parse_source(obj, origin=str(p))
        if not source.metadata.namespace:
            source.metadata.namespace = ns
        return source

    def get_configmap_content(self, namespace: str, name: str) -> Optional[FileMap]:
        obj = self._load(self.root / "namespaces" / namespace / "configmaps" / f"{name}.yaml")
        if obj is None:
            return None
        max_bytes = self.settings.max_archive_bytes if self.settings else None
        return configmap_files(obj, max_bytes=max_bytes)


def load_source_file(path: str | Path) -> ArenaSource:
    """Parse a single ArenaSource manifest (used by the CLI)."""
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            obj = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise SpecError(f"Invalid YAML in {p}: {e}") from e
    return _parse_source(obj, origin=str(p))


def build_collaborators(settings: Settings):
    """The (SourceLookup, ConfigMapReader) pair selected by settings."""
    if settings.catalog_path:
        catalog = ManifestCatalog(settings.catalog_path, settings=settings)
        return catalog, catalog
    kube = KubeClient(settings)
    return kube, kube
