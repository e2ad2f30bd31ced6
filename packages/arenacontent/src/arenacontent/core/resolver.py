"""Backend fallback chain that turns a Source into one ContentRoot.

Steps run in a fixed order and each returns a tagged result:

    configmap -> artifact -> filesystem

The first ``Found`` wins. ``Missing`` and ``BackendFailure`` both move on to
the next step; failures are logged and recorded on the ResolveObserver but
never reach the caller. Only "no step found anything" becomes a
ContentNotFoundError.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from arenacontent.core.archive import extract_archive
from arenacontent.core.exception import (
    ContentNotFoundError,
    FileNotFoundInContent,
    InvalidInputError,
)
from arenacontent.core.fetcher import ArtifactFetcher
from arenacontent.core.observability import ResolveObserver
from arenacontent.core.runtime.settings import Settings
from arenacontent.core.sources import ConfigMapReader
from arenacontent.core.spec import ArenaSource, ContentRoot, DirectoryRoot, FileContent, MapRoot
from arenacontent.core.versions import VersionStore

log = logging.getLogger("arenacontent.core.resolver")

NOT_SYNCED_MESSAGE = "Source content not synced yet"
NO_CONTENT_MESSAGE = "No content found"


@dataclass(frozen=True)
class Found:
    root: ContentRoot


@dataclass(frozen=True)
class Missing:
    reason: str


@dataclass(frozen=True)
class BackendFailure:
    error: Exception


StepResult = Union[Found, Missing, BackendFailure]
Step = Tuple[str, Callable[[ArenaSource, Path], StepResult]]


def validate_content_path(path: Optional[str]) -> str:
    """Normalize a client-supplied relative path, rejecting traversal.

    Returns the slash-joined path with empty segments removed.
    """
    if not isinstance(path, str) or not path.strip():
        raise InvalidInputError("Missing 'path' query parameter")
    raw = path.strip().replace("\\", "/")
    if raw.startswith("/"):
        raise InvalidInputError(f"Invalid path: {path}")
    parts = [p for p in raw.split("/") if p and p != "."]
    if not parts or ".." in parts:
        raise InvalidInputError(f"Invalid path: {path}")
    return "/".join(parts)


def _encode(data: bytes) -> Tuple[str, str]:
    """(content, encoding): utf-8 text when possible, base64 for binary data."""
    if b"\x00" not in data:
        try:
            return data.decode("utf-8"), "utf-8"
        except UnicodeDecodeError:
            pass
    return base64.b64encode(data).decode("ascii"), "base64"


class ContentResolver:
    """Resolve a Source's content root across ConfigMap, artifact and filesystem backends."""

    def __init__(self, settings: Settings, *, configmaps: ConfigMapReader, fetcher: Optional[ArtifactFetcher] = None):
        self.settings = settings
        self.configmaps = configmaps
        self.fetcher = fetcher or ArtifactFetcher(settings)

    # -- steps ----------------------------------------------------------------

    def _from_configmap(self, source: ArenaSource, base: Path) -> StepResult:
        name = source.configmap_name
        if not name:
            return Missing("no ConfigMap referenced")
        namespace = source.metadata.namespace or ""
        try:
            data = self.configmaps.get_configmap_content(namespace, name)
        except Exception as e:
            return BackendFailure(e)
        if not data:
            return Missing(f"ConfigMap {namespace}/{name} has no content")
        files = {k: (v.encode("utf-8") if isinstance(v, str) else v) for k, v in data.items()}
        return Found(MapRoot(files=files, backend="configmap"))

    def _from_artifact(self, source: ArenaSource, base: Path) -> StepResult:
        url = source.artifact_url
        if not url:
            return Missing("no artifact url")
        try:
            payload = self.fetcher.fetch(url)
            files = extract_archive(payload, max_bytes=self.settings.max_archive_bytes)
        except Exception as e:
            return BackendFailure(e)
        if not files:
            return Missing("artifact archive is empty")
        return Found(MapRoot(files=files, backend="artifact"))

    def _from_filesystem(self, source: ArenaSource, base: Path) -> StepResult:
        store = VersionStore(base)
        if not store.exists():
            return Missing(NOT_SYNCED_MESSAGE)
        content_dir = store.content_dir()
        if content_dir == store.base_path and not store.has_content():
            return Missing(NO_CONTENT_MESSAGE)
        return Found(DirectoryRoot(path=content_dir))

    def steps(self) -> List[Step]:
        return [
            ("configmap", self._from_configmap),
            ("artifact", self._from_artifact),
            ("filesystem", self._from_filesystem),
        ]

    # -- public API -------------------------------------------------------------

    def resolve(self, source: ArenaSource, base: str | Path) -> ContentRoot:
        """Return the first ContentRoot any backend yields.

        Raises ContentNotFoundError when none does; its message tells "never
        synced" (no base directory) apart from "synced but empty".
        """
        base = Path(base)
        label = f"{source.metadata.namespace or '-'}/{source.name}"
        obs = ResolveObserver(settings=self.settings, logger=log, source=label)
        obs.resolve_start()

        last_missing = NO_CONTENT_MESSAGE
        for backend, step in self.steps():
            obs.backend_start(backend)
            result = step(source, base)
            if isinstance(result, Found):
                obs.backend_end(backend, outcome="found")
                obs.resolve_end(backend=backend)
                return result.root
            if isinstance(result, BackendFailure):
                obs.backend_end(backend, outcome="error", detail=f"{type(result.error).__name__}: {result.error}")
            else:
                obs.backend_end(backend, outcome="missing", detail=result.reason)
                last_missing = result.reason

        obs.resolve_end(backend=None)
        raise ContentNotFoundError(last_missing)

    def read_file(self, source: ArenaSource, base: str | Path, path: Optional[str]) -> FileContent:
        """Resolve the content root, then return one file from it."""
        rel = validate_content_path(path)
        root = self.resolve(source, base)
        if any(part.startswith(".") for part in rel.split("/")):
            raise FileNotFoundInContent(rel)

        if isinstance(root, MapRoot):
            data = root.files.get(rel)
            if data is None:
                raise FileNotFoundInContent(rel)
        else:
            data = self._read_from_directory(root.path, rel)

        if len(data) > self.settings.max_file_bytes:
            raise InvalidInputError(f"File too large: {rel} ({len(data)} bytes)")
        content, encoding = _encode(data)
        return FileContent(path=rel, content=content, size=len(data), encoding=encoding)

    def _read_from_directory(self, root: Path, rel: str) -> bytes:
        base = root.resolve()
        target = (base / rel).resolve()
        if not target.is_relative_to(base):
            raise InvalidInputError(f"Invalid path: {rel}")
        if not target.is_file():
            raise FileNotFoundInContent(rel)
        size = target.stat().st_size
        if size > self.settings.max_file_bytes:
            raise InvalidInputError(f"File too large: {rel} ({size} bytes)")
        return target.read_bytes()
