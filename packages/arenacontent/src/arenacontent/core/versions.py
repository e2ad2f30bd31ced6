"""On-disk version bookkeeping for a source's content directory.

Layout under a source base path::

    {base}/.arena/HEAD                 one line: version hash + "\\n"
    {base}/.arena/versions/{hash}/...  immutable snapshot trees
    {base}/.arena/tags/{tag}           optional: one line, a version hash
    {base}/<legacy files>              pre-versioning flat content

Versions are created and garbage collected by the sync controller; this
module only reads them and moves HEAD. There is no locking: HEAD writes are
last-writer-wins, and a version validated by ``switch_version`` may still be
collected before the HEAD write lands.
"""

from __future__ import annotations

import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from arenacontent.core.exception import VersionNotFoundError
from arenacontent.core.spec import SwitchResult, Version

log = logging.getLogger("arenacontent.core.versions")

ARENA_DIR = ".arena"
HEAD_FILE = "HEAD"
VERSIONS_DIR = "versions"
TAGS_DIR = "tags"
LATEST_REF = "latest"


def _created_ts(st: os.stat_result) -> float:
    """Creation time where the platform records it, inode change time otherwise."""
    birth = getattr(st, "st_birthtime", None)
    return float(birth) if birth else float(st.st_ctime)


def _iso_utc(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_plain_name(name: str) -> bool:
    """A single, visible path component (no separators, no dot prefix)."""
    if not name or name.startswith("."):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def _count_files(root: Path) -> Tuple[int, int]:
    """Return (file_count, total_bytes) for every regular file under root.

    Unreadable sub-entries are skipped; they never abort the count.
    """
    count = 0
    total = 0

    def _on_error(err: OSError) -> None:
        log.warning("skipping unreadable entry while counting %s: %s", root, err)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        for fname in filenames:
            try:
                st = os.stat(os.path.join(dirpath, fname))
            except OSError as e:
                log.warning("skipping unreadable file %s: %s", os.path.join(dirpath, fname), e)
                continue
            if stat.S_ISREG(st.st_mode):
                count += 1
                total += int(st.st_size)
    return count, total


class VersionStore:
    """HEAD pointer and version directories for one source base path."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)

    @property
    def arena_dir(self) -> Path:
        return self.base_path / ARENA_DIR

    @property
    def head_path(self) -> Path:
        return self.arena_dir / HEAD_FILE

    @property
    def versions_dir(self) -> Path:
        return self.arena_dir / VERSIONS_DIR

    @property
    def tags_dir(self) -> Path:
        return self.arena_dir / TAGS_DIR

    def exists(self) -> bool:
        return self.base_path.is_dir()

    def version_path(self, version_hash: str) -> Path:
        return self.versions_dir / version_hash

    # -- HEAD ---------------------------------------------------------------

    def read_head(self) -> Optional[str]:
        """Return the selected version hash, or None when no version is selected.

        A missing or unreadable HEAD file is a valid state, not an error.
        """
        try:
            text = self.head_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.warning("failed reading HEAD at %s; treating as missing: %s", self.head_path, e)
            return None
        head = text.strip()
        return head or None

    def write_head(self, version_hash: str) -> None:
        self.arena_dir.mkdir(parents=True, exist_ok=True)
        self.head_path.write_text(version_hash + "\n", encoding="utf-8")

    # -- versions -------------------------------------------------------------

    def version_exists(self, version_hash: str) -> bool:
        if not _is_plain_name(version_hash):
            return False
        return self.version_path(version_hash).is_dir()

    def list_versions(self) -> List[Version]:
        """List version directories, newest first.

        Dot-prefixed entries and non-directories are excluded. ``is_latest``
        marks the entry with the greatest creation time (first one wins ties).
        """
        try:
            entries = list(os.scandir(self.versions_dir))
        except FileNotFoundError:
            return []
        except OSError as e:
            log.warning("failed listing versions at %s: %s", self.versions_dir, e)
            return []

        found: List[Tuple[str, Path, float]] = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_dir():
                    continue
                ts = _created_ts(entry.stat())
            except OSError as e:
                log.warning("skipping version entry %s: %s", entry.path, e)
                continue
            found.append((entry.name, Path(entry.path), ts))

        latest: Optional[str] = None
        latest_ts: Optional[float] = None
        for name, _path, ts in found:
            if latest_ts is None or ts > latest_ts:
                latest, latest_ts = name, ts

        out: List[Version] = []
        for name, path, ts in sorted(found, key=lambda x: x[2], reverse=True):
            file_count, size = _count_files(path)
            out.append(
                Version(
                    hash=name,
                    created_at=_iso_utc(ts),
                    size=size,
                    file_count=file_count,
                    is_latest=name == latest,
                )
            )
        return out

    def switch_version(self, version_hash: str) -> SwitchResult:
        """Point HEAD at an existing version directory.

        Raises VersionNotFoundError (HEAD untouched) when the version is absent.
        """
        if not self.version_exists(version_hash):
            raise VersionNotFoundError(version_hash)
        previous = self.read_head()
        self.write_head(version_hash)
        log.info("switched HEAD base=%s previous=%s new=%s", self.base_path, previous, version_hash)
        return SwitchResult(previous_head=previous, new_head=version_hash)

    def resolve_ref(self, ref: str) -> Optional[str]:
        """Resolve "latest", a tag name, or a version hash to an existing version hash."""
        if ref == LATEST_REF:
            return self.read_head()
        if _is_plain_name(ref):
            try:
                tagged = (self.tags_dir / ref).read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError):
                tagged = ""
            if tagged:
                return tagged
        return ref if self.version_exists(ref) else None

    # -- content --------------------------------------------------------------

    def content_dir(self) -> Path:
        """Directory holding the active content.

        The HEAD version when it exists, otherwise the base path itself
        (legacy flat layout, or a HEAD left pointing at a collected version).
        """
        head = self.read_head()
        if head and self.version_exists(head):
            return self.version_path(head)
        if head:
            log.warning("HEAD points to missing version %s under %s; using base path", head, self.base_path)
        return self.base_path

    def has_content(self) -> bool:
        """True when the base path holds any visible entry.

        Dot-prefixed names (the .arena bookkeeping folder, .gitkeep and the like)
        are hidden from the tree, so they do not count.
        """
        try:
            with os.scandir(self.base_path) as it:
                return any(not entry.name.startswith(".") for entry in it)
        except OSError:
            return False
