"""Tests for project snapshot archives."""

from __future__ import annotations

import os
import zipfile

import pytest

from pagesdeploy.archive import (
    DEFAULT_EXCLUDES,
    create_archive,
    extract_archive,
    is_excluded,
    verify_archive,
)
from pagesdeploy.errors import DataError


def _make_tree(root):
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.js").write_text("console.log(1)")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    (root / "node_modules" / "left-pad" / "index.js").write_text("x")
    (root / ".git" / "objects" / "ab").mkdir(parents=True)
    (root / ".git" / "objects" / "ab" / "cdef").write_bytes(b"\x00obj")
    (root / ".git" / "logs").mkdir()
    (root / ".git" / "logs" / "HEAD").write_text("log")
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "dist").mkdir()
    (root / "dist" / "index.html").write_text("<h1>hi</h1>")
    (root / "debug.log").write_text("noise")
    (root / ".DS_Store").write_text("")
    return root


def _names(archive):
    with zipfile.ZipFile(archive) as zf:
        return set(zf.namelist())


class TestIsExcluded:
    def test_directory_patterns(self):
        assert is_excluded("node_modules/", DEFAULT_EXCLUDES)
        assert is_excluded(".git/logs/", DEFAULT_EXCLUDES)
        assert not is_excluded(".git/objects/", DEFAULT_EXCLUDES)

    def test_basename_patterns_match_anywhere(self):
        assert is_excluded("src/deep/trace.log", DEFAULT_EXCLUDES)
        assert is_excluded("a/.DS_Store", DEFAULT_EXCLUDES)
        assert not is_excluded("src/app.js", DEFAULT_EXCLUDES)

    def test_keep_overrides_exclusion(self):
        assert is_excluded("dist/", DEFAULT_EXCLUDES)
        assert not is_excluded("dist/", DEFAULT_EXCLUDES, keep=("dist",))
        assert not is_excluded("dist/app.log", DEFAULT_EXCLUDES, keep=("dist",))


class TestCreateArchive:
    def test_excludes_caches_and_keeps_repository(self, tmp_path):
        root = _make_tree(tmp_path / "proj")
        archive = tmp_path / "project.zip"
        stats = create_archive(root, archive)

        names = _names(archive)
        assert "src/app.js" in names
        assert ".git/HEAD" in names
        assert ".git/objects/ab/cdef" in names
        assert not any(n.startswith("node_modules/") for n in names)
        assert ".git/logs/HEAD" not in names
        assert "dist/index.html" not in names
        assert "debug.log" not in names
        assert stats.files == len(names)
        assert stats.size_bytes == archive.stat().st_size

    def test_keep_build_output(self, tmp_path):
        root = _make_tree(tmp_path / "proj")
        archive = tmp_path / "project.zip"
        create_archive(root, archive, keep=("dist",))
        assert "dist/index.html" in _names(archive)

    def test_archive_inside_root_is_not_self_included(self, tmp_path):
        root = _make_tree(tmp_path / "proj")
        archive = root / "snapshot.zip"
        create_archive(root, archive)
        assert "snapshot.zip" not in _names(archive)

    def test_unwritable_target(self, tmp_path):
        root = _make_tree(tmp_path / "proj")
        with pytest.raises(DataError):
            create_archive(root, tmp_path / "missing" / "project.zip")


class TestVerifyArchive:
    def test_valid(self, tmp_path):
        root = _make_tree(tmp_path / "proj")
        archive = tmp_path / "project.zip"
        create_archive(root, archive)
        assert verify_archive(archive) is True

    def test_garbage(self, tmp_path):
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"not a zip")
        assert verify_archive(bad) is False

    def test_missing(self, tmp_path):
        assert verify_archive(tmp_path / "nope.zip") is False


class TestExtractArchive:
    def test_round_trip_keeps_permissions(self, tmp_path):
        root = tmp_path / "proj"
        root.mkdir()
        script = root / "build.sh"
        script.write_text("#!/bin/sh\n")
        os.chmod(script, 0o755)
        archive = tmp_path / "project.zip"
        create_archive(root, archive)

        dest = tmp_path / "out"
        extract_archive(archive, dest)
        assert (dest / "build.sh").read_text() == "#!/bin/sh\n"
        assert os.stat(dest / "build.sh").st_mode & 0o777 == 0o755

    def test_rejects_escaping_member(self, tmp_path):
        archive = tmp_path / "evil.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("../escape.txt", "x")
        with pytest.raises(DataError, match="escapes"):
            extract_archive(archive, tmp_path / "dest")
        assert not (tmp_path / "escape.txt").exists()

    def test_corrupt_archive(self, tmp_path):
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"junk")
        with pytest.raises(DataError):
            extract_archive(bad, tmp_path / "dest")
