"""Request-level operations behind the HTTP routes and the CLI.

ContentService ties a source lookup to the on-disk layout::

    {content_root}/{workspace}/{namespace}/arena/{source}

and turns resolver/VersionStore outcomes into response shapes and
user-facing not-found messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from arenacontent.core.exception import ContentNotFoundError, InvalidInputError, SourceNotReadyError
from arenacontent.core.fetcher import ArtifactFetcher
from arenacontent.core.observability import log_event
from arenacontent.core.resolver import NO_CONTENT_MESSAGE, ContentResolver, validate_content_path
from arenacontent.core.runtime.settings import Settings
from arenacontent.core.sources import ConfigMapReader, SourceLookup
from arenacontent.core.spec import ArenaSource, ContentTree, FileContent, Version
from arenacontent.core.tree import build_tree
from arenacontent.core.versions import VersionStore

log = logging.getLogger("arenacontent.core.service")

READY_PHASE = "Ready"
RESYNC_MESSAGE = "Source content directory not found. The source may need to be re-synced."


def not_ready_message(phase: Optional[str], what: str = "Versions") -> str:
    return f"Source is not ready (phase: {phase or 'Unknown'}). {what} will be available once the source is synced."


@dataclass
class VersionsListing:
    source_name: str
    head: Optional[str]
    versions: List[Version] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "sourceName": self.source_name,
            "head": self.head,
            "versions": [v.as_dict() for v in self.versions],
        }


@dataclass
class VersionSwitch:
    source_name: str
    previous_head: Optional[str]
    new_head: str
    success: bool = True

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "sourceName": self.source_name,
            "previousHead": self.previous_head,
            "newHead": self.new_head,
        }


@dataclass
class ContentListing:
    source_name: str
    tree: ContentTree
    backend: str

    def as_dict(self) -> dict:
        return {"sourceName": self.source_name, **self.tree.as_dict()}


class ContentService:
    def __init__(
        self,
        settings: Settings,
        *,
        sources: SourceLookup,
        configmaps: ConfigMapReader,
        fetcher: Optional[ArtifactFetcher] = None,
    ):
        self.settings = settings
        self.sources = sources
        self.resolver = ContentResolver(settings, configmaps=configmaps, fetcher=fetcher)

    def source_base_path(self, workspace: str, namespace: str, source_name: str) -> Path:
        return Path(self.settings.content_root) / workspace / namespace / "arena" / source_name

    def _lookup(self, workspace: str, source_name: str) -> tuple[ArenaSource, Path]:
        source = self.sources.get_source(workspace, source_name)
        namespace = source.metadata.namespace or self.sources.get_namespace(workspace)
        return source, self.source_base_path(workspace, namespace, source_name)

    def _missing_base(self, source: ArenaSource, what: str) -> ContentNotFoundError:
        if source.phase != READY_PHASE:
            return SourceNotReadyError(not_ready_message(source.phase, what), phase=source.phase)
        return ContentNotFoundError(RESYNC_MESSAGE)

    def get_versions(self, workspace: str, source_name: str) -> VersionsListing:
        source, base = self._lookup(workspace, source_name)
        store = VersionStore(base)
        if not store.exists():
            raise self._missing_base(source, "Versions")
        return VersionsListing(source_name=source_name, head=store.read_head(), versions=store.list_versions())

    def switch_version(self, workspace: str, source_name: str, version: Any) -> VersionSwitch:
        if not isinstance(version, str) or not version:
            raise InvalidInputError("Missing or invalid 'version' field in request body")
        source, base = self._lookup(workspace, source_name)
        store = VersionStore(base)
        if not store.exists():
            raise ContentNotFoundError(RESYNC_MESSAGE)
        result = store.switch_version(version)
        log_event(
            log,
            settings=self.settings,
            level=logging.INFO,
            event="version_switched",
            workspace=workspace,
            source=source_name,
            previous_head=result.previous_head,
            new_head=result.new_head,
        )
        return VersionSwitch(source_name=source_name, previous_head=result.previous_head, new_head=result.new_head)

    def get_content(self, workspace: str, source_name: str) -> ContentListing:
        source, base = self._lookup(workspace, source_name)
        try:
            root = self.resolver.resolve(source, base)
        except ContentNotFoundError:
            if not base.is_dir():
                raise self._missing_base(source, "Content") from None
            raise ContentNotFoundError(NO_CONTENT_MESSAGE) from None
        return ContentListing(source_name=source_name, tree=build_tree(root), backend=root.backend)

    def get_file(self, workspace: str, source_name: str, path: Optional[str]) -> FileContent:
        rel = validate_content_path(path)
        source, base = self._lookup(workspace, source_name)
        try:
            return self.resolver.read_file(source, base, rel)
        except ContentNotFoundError as e:
            if type(e) is not ContentNotFoundError:
                raise
            if not base.is_dir():
                raise self._missing_base(source, "Content") from None
            raise ContentNotFoundError(NO_CONTENT_MESSAGE) from None
