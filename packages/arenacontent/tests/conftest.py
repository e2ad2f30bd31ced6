import gzip
import io
import tarfile
from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from arenacontent.core.runtime.settings import Settings
from arenacontent.core.spec import ArenaSource


def _tar_gz(files: dict) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for name, data in files.items():
            raw = data.encode("utf-8") if isinstance(data, str) else data
            info = tarfile.TarInfo(name=name)
            info.size = len(raw)
            tf.addfile(info, io.BytesIO(raw))
    return gzip.compress(buf.getvalue())


def _write(p: Path, data="x") -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        p.write_bytes(data)
    else:
        p.write_text(data, encoding="utf-8")
    return p


@pytest.fixture()
def settings(tmp_path):
    return Settings(content_root=str(tmp_path / "content"), log_level="DEBUG")


@pytest.fixture()
def tar_gz():
    return _tar_gz


@pytest.fixture()
def write_file():
    return _write


@pytest.fixture()
def make_source():
    def _make(name="test-source", *, namespace="test-ns", phase="Ready", artifact_url=None, configmap=None):
        obj = {
            "apiVersion": "omnia.altairalabs.ai/v1alpha1",
            "kind": "ArenaSource",
            "metadata": {"name": name, "namespace": namespace},
            "spec": {"type": "configmap" if configmap else "git"},
            "status": {"phase": phase},
        }
        if configmap:
            obj["spec"]["configMap"] = {"name": configmap}
        if artifact_url:
            obj["status"]["artifact"] = {"url": artifact_url, "revision": "main@sha1:abc"}
        return ArenaSource.model_validate(obj)

    return _make


class StaticConfigMaps:
    """ConfigMapReader over a dict keyed by (namespace, name)."""

    def __init__(self, maps=None, *, error=None):
        self.maps = maps or {}
        self.error = error
        self.calls = []

    def get_configmap_content(self, namespace, name):
        self.calls.append((namespace, name))
        if self.error is not None:
            raise self.error
        return self.maps.get((namespace, name))


@pytest.fixture()
def configmaps():
    return StaticConfigMaps()


@pytest.fixture()
def configmaps_factory():
    return StaticConfigMaps
