from __future__ import annotations

import gzip
import io
import tarfile

import pytest

from arenacontent.core.archive import extract_archive, normalize_member_path, read_member
from arenacontent.core.exception import CorruptArchiveError


def test_extract_keeps_regular_files_and_normalizes_paths(tar_gz):
    data = tar_gz({"./config.yaml": "apiVersion: v1\nkind: Arena", "/scenarios/test.yaml": "t: 1\n"})
    files = extract_archive(data)
    assert files == {"config.yaml": b"apiVersion: v1\nkind: Arena", "scenarios/test.yaml": b"t: 1\n"}


def test_extract_skips_directories_and_symlinks():
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        d = tarfile.TarInfo("prompts")
        d.type = tarfile.DIRTYPE
        tf.addfile(d)
        link = tarfile.TarInfo("prompts/link")
        link.type = tarfile.SYMTYPE
        link.linkname = "../../etc/passwd"
        tf.addfile(link)
        body = b"hello"
        f = tarfile.TarInfo("prompts/a.txt")
        f.size = len(body)
        tf.addfile(f, io.BytesIO(body))

    assert extract_archive(gzip.compress(buf.getvalue())) == {"prompts/a.txt": b"hello"}


def test_non_gzip_bytes_are_corrupt():
    with pytest.raises(CorruptArchiveError):
        extract_archive(b"0123456789")


def test_gzip_of_non_tar_is_corrupt():
    with pytest.raises(CorruptArchiveError):
        extract_archive(gzip.compress(b"just some text, not a tarball" * 40))


def test_parent_segments_reject_whole_archive(tar_gz):
    with pytest.raises(CorruptArchiveError):
        extract_archive(tar_gz({"ok.yaml": "x", "a/../../escape.yaml": "y"}))


def test_uncompressed_size_ceiling(tar_gz):
    data = tar_gz({"big.bin": b"\0" * 8192})
    with pytest.raises(CorruptArchiveError):
        extract_archive(data, max_bytes=1024)


def test_read_member_is_a_lookup(tar_gz):
    files = extract_archive(tar_gz({"dir/x.yaml": "x"}))
    assert read_member(files, "./dir/x.yaml") == b"x"
    assert read_member(files, "missing") is None


def test_normalize_member_path():
    assert normalize_member_path("./a/b") == "a/b"
    assert normalize_member_path("/a") == "a"
    assert normalize_member_path("a\\b") == "a/b"
