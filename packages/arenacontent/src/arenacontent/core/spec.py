from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

# ---------------------------------------------------------------------------
# Kubernetes objects (read-only views)
# ---------------------------------------------------------------------------

SourceType = Literal["git", "oci", "s3", "configmap"]
SourcePhase = Literal["Pending", "Initializing", "Ready", "Fetching", "Error"]

_K8S_MODEL = ConfigDict(populate_by_name=True, extra="ignore")


class ObjectMetaSpec(BaseModel):
    model_config = _K8S_MODEL

    name: str
    namespace: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)


class GitSourceSpec(BaseModel):
    model_config = _K8S_MODEL

    url: str
    ref: Dict[str, str] = Field(default_factory=dict)
    path: Optional[str] = None


class OCISourceSpec(BaseModel):
    model_config = _K8S_MODEL

    url: str
    insecure: bool = False


class S3SourceSpec(BaseModel):
    model_config = _K8S_MODEL

    bucket: str
    prefix: Optional[str] = None
    endpoint: Optional[str] = None
    region: Optional[str] = None


class ConfigMapRefSpec(BaseModel):
    model_config = _K8S_MODEL

    name: str
    key: Optional[str] = None


class ArenaSourceSpec(BaseModel):
    """Selects exactly one sync origin for a source.

    Only ``configMap`` matters to content resolution; the other origins are
    kept so manifests round-trip without losing information.
    """

    model_config = _K8S_MODEL

    type: SourceType = "git"
    git: Optional[GitSourceSpec] = None
    oci: Optional[OCISourceSpec] = None
    s3: Optional[S3SourceSpec] = None
    config_map: Optional[ConfigMapRefSpec] = Field(default=None, alias="configMap")
    interval: Optional[str] = None
    suspend: bool = False
    timeout: Optional[str] = None
    target_path: Optional[str] = Field(default=None, alias="targetPath")


class ArtifactSpec(BaseModel):
    """Most recent remote bundle produced by the sync controller."""

    model_config = _K8S_MODEL

    url: Optional[str] = None
    checksum: Optional[str] = None
    revision: Optional[str] = None
    content_path: Optional[str] = Field(default=None, alias="contentPath")
    version: Optional[str] = None
    size: Optional[int] = None
    last_update_time: Optional[str] = Field(default=None, alias="lastUpdateTime")


class ArenaSourceStatusSpec(BaseModel):
    model_config = _K8S_MODEL

    phase: Optional[str] = None
    artifact: Optional[ArtifactSpec] = None
    head_version: Optional[str] = Field(default=None, alias="headVersion")
    version_count: Optional[int] = Field(default=None, alias="versionCount")
    last_sync_revision: Optional[str] = Field(default=None, alias="lastSyncRevision")


class ArenaSource(BaseModel):
    """An ArenaSource custom resource as returned by the Kubernetes API."""

    model_config = _K8S_MODEL

    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = "ArenaSource"
    metadata: ObjectMetaSpec
    spec: ArenaSourceSpec = Field(default_factory=ArenaSourceSpec)
    status: ArenaSourceStatusSpec = Field(default_factory=ArenaSourceStatusSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def phase(self) -> Optional[str]:
        return self.status.phase

    @property
    def artifact_url(self) -> Optional[str]:
        artifact = self.status.artifact
        return artifact.url if artifact and artifact.url else None

    @property
    def configmap_name(self) -> Optional[str]:
        cm = self.spec.config_map
        return cm.name if cm and cm.name else None


class WorkspaceNamespaceSpec(BaseModel):
    model_config = _K8S_MODEL

    name: str


class WorkspaceBodySpec(BaseModel):
    model_config = _K8S_MODEL

    namespace: WorkspaceNamespaceSpec


class WorkspaceSpec(BaseModel):
    """Workspace custom resource; only the namespace mapping is used."""

    model_config = _K8S_MODEL

    metadata: ObjectMetaSpec
    spec: WorkspaceBodySpec

    @property
    def namespace(self) -> str:
        return self.spec.namespace.name


# ---------------------------------------------------------------------------
# Content roots, versions and trees
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirectoryRoot:
    """Content served straight from a directory on the content volume."""

    path: Path
    backend: str = "filesystem"


@dataclass(frozen=True)
class MapRoot:
    """In-memory ``path -> bytes`` content (ConfigMap data or an extracted archive)."""

    files: Dict[str, bytes]
    backend: str = "configmap"


ContentRoot = Union[DirectoryRoot, MapRoot]


@dataclass(frozen=True)
class Version:
    hash: str
    created_at: str
    size: int
    file_count: int
    is_latest: bool = False

    def as_dict(self) -> dict:
        return {
            "hash": self.hash,
            "createdAt": self.created_at,
            "size": self.size,
            "fileCount": self.file_count,
            "isLatest": self.is_latest,
        }


@dataclass(frozen=True)
class SwitchResult:
    previous_head: Optional[str]
    new_head: str


@dataclass
class TreeNode:
    name: str
    path: str
    is_directory: bool
    size: Optional[int] = None
    children: Optional[List["TreeNode"]] = None

    def as_dict(self) -> dict:
        out: Dict[str, Any] = {"name": self.name, "path": self.path, "isDirectory": self.is_directory}
        if self.is_directory:
            out["children"] = [c.as_dict() for c in self.children or []]
        else:
            out["size"] = self.size
        return out


@dataclass
class ContentTree:
    nodes: List[TreeNode] = field(default_factory=list)
    file_count: int = 0
    directory_count: int = 0

    def as_dict(self) -> dict:
        return {
            "tree": [n.as_dict() for n in self.nodes],
            "fileCount": self.file_count,
            "directoryCount": self.directory_count,
        }


@dataclass(frozen=True)
class FileContent:
    path: str
    content: str
    size: int
    encoding: Literal["utf-8", "base64"] = "utf-8"

    def as_dict(self) -> dict:
        return {"path": self.path, "content": self.content, "size": self.size, "encoding": self.encoding}


__all__ = [
    # kubernetes objects
    "SourceType",
    "SourcePhase",
    "ObjectMetaSpec",
    "GitSourceSpec",
    "OCISourceSpec",
    "S3SourceSpec",
    "ConfigMapRefSpec",
    "ArenaSourceSpec",
    "ArtifactSpec",
    "ArenaSourceStatusSpec",
    "ArenaSource",
    "WorkspaceNamespaceSpec",
    "WorkspaceBodySpec",
    "WorkspaceSpec",
    # content
    "DirectoryRoot",
    "MapRoot",
    "ContentRoot",
    "Version",
    "SwitchResult",
    "TreeNode",
    "ContentTree",
    "FileContent",
]
