from __future__ import annotations

import os
from importlib import import_module
from typing import List

from pydantic import BaseModel, Field

DEFAULT_CONTROLLER_URL = "http://omnia-controller-manager.omnia-system:8082"
DEFAULT_DEV_ARTIFACT_PREFIX = "http://localhost:8082"


class Settings(BaseModel):
    # Defaults are static. Use load_settings(env=...) to read from an env snapshot.
    content_root: str = "/workspace-content"

    # Remote artifact fetch
    # - artifact URLs starting with one of dev_artifact_prefixes are rewritten to controller_url
    controller_url: str = DEFAULT_CONTROLLER_URL
    dev_artifact_prefixes: List[str] = Field(default_factory=lambda: [DEFAULT_DEV_ARTIFACT_PREFIX])
    fetch_timeout: float = 10.0
    fetch_retries: int = 0

    # Content limits
    max_file_bytes: int = 10 * 1024 * 1024
    max_archive_bytes: int = 100 * 1024 * 1024

    # Collaborators
    # - catalog_path set: sources/configmaps are read from YAML manifests on disk
    # - otherwise: the in-cluster Kubernetes API is used
    kube_api_url: str = "https://kubernetes.default.svc"
    kube_token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    kube_ca_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
    catalog_path: str | None = None

    log_level: str = "INFO"

    # Observability
    # - log_format: "text" (default) or "json". When json, arenacontent logs emit a single JSON
    #   object per line, suitable for log aggregation.
    log_format: str = "text"

    # Optional metrics sink module (exposes METRICS: MetricsSink)
    metrics_module: str | None = None

    @classmethod
    def from_env(cls, env: dict[str, str], overrides: dict | None = None) -> "Settings":
        """Build Settings from an explicit env snapshot (does not read os.environ)."""
        def g(key: str, default: str | None = None) -> str | None:
            return env.get(key, default)  # type: ignore[return-value]

        prefixes = g("ARENA_DEV_ARTIFACT_PREFIXES", DEFAULT_DEV_ARTIFACT_PREFIX) or ""
        data = {
            "content_root": g("ARENA_CONTENT_ROOT") or g("WORKSPACE_CONTENT_PATH") or "/workspace-content",
            "controller_url": g("ARENA_CONTROLLER_URL", DEFAULT_CONTROLLER_URL),
            "dev_artifact_prefixes": [p.strip() for p in prefixes.split(",") if p.strip()],
            "fetch_timeout": float(g("ARENA_FETCH_TIMEOUT", "10") or 10),
            "fetch_retries": int(g("ARENA_FETCH_RETRIES", "0") or 0),
            "max_file_bytes": int(g("ARENA_MAX_FILE_BYTES", str(10 * 1024 * 1024)) or 0),
            "max_archive_bytes": int(g("ARENA_MAX_ARCHIVE_BYTES", str(100 * 1024 * 1024)) or 0),
            "kube_api_url": g("ARENA_KUBE_API_URL", "https://kubernetes.default.svc"),
            "kube_token_path": g("ARENA_KUBE_TOKEN_PATH", "/var/run/secrets/kubernetes.io/serviceaccount/token"),
            "kube_ca_path": g("ARENA_KUBE_CA_PATH", "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"),
            "catalog_path": g("ARENA_CATALOG_PATH") or None,
            "log_level": g("ARENA_LOG_LEVEL", "INFO"),
            "log_format": g("ARENA_LOG_FORMAT", "text"),
            "metrics_module": g("ARENA_METRICS_MODULE") or None,
        }
        if overrides:
            data.update(overrides)
        return cls(**data)


def load_settings(overrides: dict | None = None, *, env: dict[str, str] | None = None) -> Settings:
    """Load settings from (1) env snapshot, (2) optional settings module, (3) explicit overrides.

    If env is not provided, we build a snapshot from os.environ.
    """
    env2 = {k: str(v) for k, v in os.environ.items()} if env is None else env
    s = Settings.from_env(env2)
    mod = env2.get("ARENA_SETTINGS_MODULE")
    if mod:
        m = import_module(mod)
        data = getattr(m, "SETTINGS", {})
        if not isinstance(data, dict):
            raise TypeError("ARENA_SETTINGS_MODULE must expose SETTINGS: dict")
        s = s.model_copy(update=data)
    if overrides:
        s = s.model_copy(update=overrides)
    return s
