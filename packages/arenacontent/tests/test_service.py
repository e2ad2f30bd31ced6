from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from arenacontent.core.exception import (
    ContentNotFoundError,
    FileNotFoundInContent,
    InvalidInputError,
    SourceNotFoundError,
    SourceNotReadyError,
    VersionNotFoundError,
)
from arenacontent.core.fetcher import ArtifactFetcher
from arenacontent.core.service import ContentService


class StaticSources:
    def __init__(self, *sources, namespace="test-ns"):
        self.by_name = {s.name: s for s in sources}
        self.namespace = namespace

    def get_namespace(self, workspace):
        return self.namespace

    def get_source(self, workspace, name):
        if name not in self.by_name:
            raise SourceNotFoundError(f"Arena source not found: {name}")
        return self.by_name[name]


@pytest.fixture()
def service_for(settings, configmaps):
    def _make(*sources, configmaps_=None, handler=None):
        fetcher = ArtifactFetcher(settings, transport=httpx.MockTransport(handler or (lambda r: httpx.Response(404))))
        return ContentService(settings, sources=StaticSources(*sources), configmaps=configmaps_ or configmaps, fetcher=fetcher)

    return _make


def _base(settings, source="test-source") -> Path:
    return Path(settings.content_root) / "test-ws" / "test-ns" / "arena" / source


def test_source_base_path(settings, service_for):
    svc = service_for()
    assert svc.source_base_path("ws", "ns", "src") == Path(settings.content_root) / "ws" / "ns" / "arena" / "src"


def test_get_versions(settings, service_for, make_source, write_file):
    base = _base(settings)
    write_file(base / ".arena" / "versions" / "v1" / "a.yaml")
    write_file(base / ".arena" / "HEAD", "v1\n")

    out = service_for(make_source()).get_versions("test-ws", "test-source").as_dict()

    assert out["sourceName"] == "test-source"
    assert out["head"] == "v1"
    assert [v["hash"] for v in out["versions"]] == ["v1"]


def test_get_versions_missing_base_depends_on_phase(service_for, make_source):
    with pytest.raises(SourceNotReadyError) as ei:
        service_for(make_source(phase="Pending")).get_versions("test-ws", "test-source")
    assert str(ei.value) == "Source is not ready (phase: Pending). Versions will be available once the source is synced."

    with pytest.raises(ContentNotFoundError, match="re-synced"):
        service_for(make_source(phase="Ready")).get_versions("test-ws", "test-source")


def test_unknown_source(service_for):
    with pytest.raises(SourceNotFoundError):
        service_for().get_versions("test-ws", "nope")


def test_switch_version(settings, service_for, make_source, write_file):
    base = _base(settings)
    write_file(base / ".arena" / "versions" / "v1" / "a.yaml")
    write_file(base / ".arena" / "versions" / "v2" / "a.yaml")
    write_file(base / ".arena" / "HEAD", "v1\n")
    svc = service_for(make_source())

    out = svc.switch_version("test-ws", "test-source", "v2").as_dict()
    assert out == {"success": True, "sourceName": "test-source", "previousHead": "v1", "newHead": "v2"}

    with pytest.raises(VersionNotFoundError):
        svc.switch_version("test-ws", "test-source", "ghost")
    assert (base / ".arena" / "HEAD").read_text("utf-8") == "v2\n"


@pytest.mark.parametrize("bad", [None, "", 42, ["v1"]])
def test_switch_version_requires_string(service_for, make_source, bad):
    with pytest.raises(InvalidInputError, match="Missing or invalid 'version'"):
        service_for(make_source()).switch_version("test-ws", "test-source", bad)


def test_switch_version_without_base(service_for, make_source):
    with pytest.raises(ContentNotFoundError):
        service_for(make_source()).switch_version("test-ws", "test-source", "v1")


def test_get_content_from_head(settings, service_for, make_source, write_file):
    vdir = _base(settings) / ".arena" / "versions" / "abc123"
    write_file(vdir / "config.yaml")
    write_file(vdir / "scenarios" / "test.yaml")
    write_file(_base(settings) / ".arena" / "HEAD", "abc123\n")

    listing = service_for(make_source()).get_content("test-ws", "test-source")

    assert listing.backend == "filesystem"
    out = listing.as_dict()
    assert [n["name"] for n in out["tree"]] == ["scenarios", "config.yaml"]
    assert (out["fileCount"], out["directoryCount"]) == (2, 1)


def test_get_content_messages(settings, service_for, make_source):
    with pytest.raises(SourceNotReadyError, match="not ready"):
        service_for(make_source(phase="Initializing")).get_content("test-ws", "test-source")
    with pytest.raises(ContentNotFoundError, match="re-synced"):
        service_for(make_source()).get_content("test-ws", "test-source")

    (_base(settings) / ".arena").mkdir(parents=True)
    with pytest.raises(ContentNotFoundError, match="No content found"):
        service_for(make_source()).get_content("test-ws", "test-source")


def test_get_content_from_configmap_without_base(service_for, make_source, configmaps_factory):
    cms = configmaps_factory({("test-ns", "prompts"): {"system.md": "hello"}})
    listing = service_for(make_source(configmap="prompts"), configmaps_=cms).get_content("test-ws", "test-source")
    assert listing.backend == "configmap"
    assert listing.as_dict()["fileCount"] == 1


def test_get_file_from_remote_artifact(service_for, make_source, tar_gz):
    body = "apiVersion: v1\nkind: Arena"
    handler = lambda r: httpx.Response(200, content=tar_gz({"config.yaml": body}))
    svc = service_for(make_source(artifact_url="http://localhost:8082/arena/test.tar.gz"), handler=handler)

    out = svc.get_file("test-ws", "test-source", "config.yaml").as_dict()

    assert out == {"path": "config.yaml", "content": body, "size": len(body), "encoding": "utf-8"}
    with pytest.raises(FileNotFoundInContent):
        svc.get_file("test-ws", "test-source", "missing.yaml")


def test_get_file_validates_path_before_lookup(service_for):
    with pytest.raises(InvalidInputError):
        service_for().get_file("test-ws", "unknown-source", None)
