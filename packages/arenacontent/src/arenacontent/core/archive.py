from __future__ import annotations

import gzip
import io
import logging
import tarfile
import zlib
from typing import Dict, Optional

from arenacontent.core.exception import CorruptArchiveError

log = logging.getLogger("arenacontent.core.archive")


def normalize_member_path(name: str) -> str:
    """Archive member name -> content path ("./a/b" and "/a/b" become "a/b")."""
    out = str(name).replace("\\", "/")
    while out.startswith("./"):
        out = out[2:]
    return out.lstrip("/")


def _gunzip(data: bytes, max_bytes: Optional[int]) -> bytes:
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as gz:
            if max_bytes:
                raw = gz.read(max_bytes + 1)
                if len(raw) > max_bytes:
                    raise CorruptArchiveError(f"bundle exceeds {max_bytes} bytes uncompressed")
                return raw
            return gz.read()
    except (OSError, EOFError, zlib.error) as e:
        raise CorruptArchiveError(f"invalid gzip stream: {e}") from e


def extract_archive(data: bytes, *, max_bytes: Optional[int] = None) -> Dict[str, bytes]:
    """Unpack a tar+gzip bundle into ``path -> bytes``.

    Only regular files are kept. Any gunzip/tar failure, or a member path
    with a ``..`` segment, raises CorruptArchiveError and nothing is
    returned. Bundles are small prompt/config packs, so the whole archive is
    materialized in memory.
    """
    raw = _gunzip(data, max_bytes)
    files: Dict[str, bytes] = {}
    try:
        with tarfile.open(fileobj=io.BytesIO(raw), mode="r:") as tf:
            for member in tf:
                if not member.isfile():
                    continue
                path = normalize_member_path(member.name)
                if not path or path.endswith("/"):
                    continue
                if ".." in path.split("/"):
                    raise CorruptArchiveError(f"archive member escapes bundle root: {member.name}")
                fobj = tf.extractfile(member)
                files[path] = fobj.read() if fobj is not None else b""
    except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
        raise CorruptArchiveError(f"invalid tar archive: {e}") from e
    log.debug("extracted bundle files=%d", len(files))
    return files


def read_member(files: Dict[str, bytes], path: str) -> Optional[bytes]:
    """Single-path lookup into an extracted bundle."""
    return files.get(normalize_member_path(path))
