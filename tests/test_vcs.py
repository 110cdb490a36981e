"""Tests for the git collaborator."""

from __future__ import annotations

import pytest

from pagesdeploy.vcs import Git, normalize_remote_url, pages_site_url
from tests.conftest import create_test_repo, git


class TestNormalizeRemoteUrl:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://github.com/octo/site.git", "https://github.com/octo/site"),
            ("git@github.com:octo/site.git", "https://github.com/octo/site"),
            ("https://github.com/octo/site/", "https://github.com/octo/site"),
            ("/srv/git/site.git", "/srv/git/site"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_remote_url(raw) == expected


class TestPagesSiteUrl:
    def test_project_site(self):
        assert pages_site_url("git@github.com:octo/site.git") == "https://octo.github.io/site"

    def test_user_site(self):
        assert pages_site_url("https://github.com/octo/octo.github.io") == "https://octo.github.io"

    def test_non_github(self):
        assert pages_site_url("https://gitlab.com/octo/site") is None


class TestGitQueries:
    def test_repository_and_branch(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert g.is_repository()
        assert g.current_branch() == "main"
        assert g.toplevel().resolve() == repo.resolve()
        assert len(g.short_revision()) >= 4

    def test_not_a_repository(self, tmp_path):
        g = Git(tmp_path)
        assert not g.is_repository()
        assert g.toplevel() is None

    def test_detached_head_has_no_branch(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        git(repo, "checkout", "-q", "--detach")
        assert Git(repo).current_branch() == ""

    def test_remote_url_and_verify(self, tmp_path, origin):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert g.remote_url() == ""
        git(repo, "remote", "add", "origin", str(origin))
        assert g.remote_url() == str(origin)
        assert g.verify_remote(str(origin))
        assert not g.verify_remote(str(tmp_path / "nowhere.git"))

    def test_branch_exists(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert g.branch_exists("main")
        assert not g.branch_exists("gh-pages")

    def test_uncommitted_changes(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert not g.has_uncommitted_changes()
        (repo / "README.md").write_text("changed\n")
        assert g.has_uncommitted_changes()

    def test_show_file(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert g.show_file("main", "README.md") == "# Hello\n"
        assert g.show_file("main", "CNAME") is None


class TestGitMutations:
    def test_orphan_branch_and_commit(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        g = Git(repo)
        assert g.checkout_orphan("gh-pages").ok
        g.remove_all_tracked()
        (repo / "README.md").unlink(missing_ok=True)
        (repo / "index.html").write_text("hello")
        assert g.add_all().ok
        assert g.has_staged_changes()
        assert "index.html" in g.staged_name_status()
        assert g.commit("publish").ok
        assert git(repo, "ls-tree", "--name-only", "gh-pages") == "index.html"
        # Orphan branch shares no history with main.
        assert git(repo, "rev-list", "--count", "gh-pages") == "1"

    def test_checkout_failure_reported(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        result = Git(repo).checkout("does-not-exist")
        assert not result.ok
        assert result.stderr

    def test_push_to_bare_remote(self, tmp_path, origin):
        repo = create_test_repo(tmp_path / "repo")
        git(repo, "remote", "add", "origin", str(origin))
        assert Git(repo).push("origin", "main").ok
        assert git(origin, "rev-parse", "main") == git(repo, "rev-parse", "main")

    def test_delete_branch(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        git(repo, "branch", "stale")
        g = Git(repo)
        assert g.delete_branch("stale").ok
        assert not g.branch_exists("stale")

    def test_remote_branch_lookup_and_fetch(self, tmp_path, origin):
        repo = create_test_repo(tmp_path / "repo")
        git(repo, "remote", "add", "origin", str(origin))
        git(repo, "branch", "gh-pages")
        git(repo, "push", "-q", "origin", "gh-pages")
        git(repo, "branch", "-D", "gh-pages")
        g = Git(repo)

        assert g.remote_branch_exists("origin", "gh-pages") is True
        assert g.remote_branch_exists("origin", "other") is False
        assert not g.branch_exists("gh-pages")
        assert g.fetch_branch("origin", "gh-pages").ok
        assert git(repo, "rev-parse", "gh-pages") == git(origin, "rev-parse", "gh-pages")

    def test_remote_branch_lookup_unreachable(self, tmp_path):
        repo = create_test_repo(tmp_path / "repo")
        git(repo, "remote", "add", "origin", str(tmp_path / "missing.git"))
        assert Git(repo).remote_branch_exists("origin", "gh-pages") is None
