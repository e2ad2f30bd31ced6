"""Public, stable API surface for arenacontent.

Code embedding the content engine (other services, operator tooling) should
import from **`arenacontent.core.api`**. Everything else is internal.
"""

from __future__ import annotations

# Archives
from arenacontent.core.archive import extract_archive, read_member
# Exceptions
from arenacontent.core.exception import (
    ArenaContentError,
    ContentNotFoundError,
    CorruptArchiveError,
    FileNotFoundInContent,
    InvalidInputError,
    SourceNotFoundError,
    SourceNotReadyError,
    SpecError,
    UpstreamError,
    VersionNotFoundError,
)
# Remote artifacts
from arenacontent.core.fetcher import ArtifactFetcher, rewrite_artifact_url
# Observability
from arenacontent.core.observability import MetricsSink, ResolveObserver, log_event
# Resolution
from arenacontent.core.resolver import BackendFailure, ContentResolver, Found, Missing
# Settings
from arenacontent.core.runtime.settings import Settings, load_settings
# Service
from arenacontent.core.service import ContentService
# Collaborators
from arenacontent.core.sources import (
    ConfigMapReader,
    KubeClient,
    ManifestCatalog,
    SourceLookup,
    build_collaborators,
)
# Models
from arenacontent.core.spec import (
    ArenaSource,
    ContentRoot,
    ContentTree,
    DirectoryRoot,
    FileContent,
    MapRoot,
    SwitchResult,
    TreeNode,
    Version,
)
from arenacontent.core.tree import build_tree
from arenacontent.core.versions import VersionStore

__all__ = [
    # models
    "ArenaSource",
    "ContentRoot",
    "DirectoryRoot",
    "MapRoot",
    "Version",
    "SwitchResult",
    "TreeNode",
    "ContentTree",
    "FileContent",
    # engine
    "VersionStore",
    "extract_archive",
    "read_member",
    "ArtifactFetcher",
    "rewrite_artifact_url",
    "ContentResolver",
    "Found",
    "Missing",
    "BackendFailure",
    "build_tree",
    "ContentService",
    # collaborators
    "SourceLookup",
    "ConfigMapReader",
    "KubeClient",
    "ManifestCatalog",
    "build_collaborators",
    # settings / observability
    "Settings",
    "load_settings",
    "MetricsSink",
    "ResolveObserver",
    "log_event",
    # exceptions
    "ArenaContentError",
    "SpecError",
    "InvalidInputError",
    "ContentNotFoundError",
    "SourceNotFoundError",
    "SourceNotReadyError",
    "VersionNotFoundError",
    "FileNotFoundInContent",
    "CorruptArchiveError",
    "UpstreamError",
]
