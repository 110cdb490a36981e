"""Tests for the CLI, including end-to-end deployments into a local bare remote."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from pagesdeploy import __version__
from pagesdeploy.cli._helpers import preflight
from pagesdeploy.cli.main import app
from pagesdeploy.errors import DeployError, EnvironmentCheckError
from pagesdeploy.vcs import Git, GitResult
from tests.conftest import BUILD_COMMAND, git, make_context, make_settings

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path):
    return {
        "PAGES_DEPLOY_HOME": str(tmp_path / "home"),
        "PAGES_DEPLOY_TMPDIR": str(tmp_path / "private"),
        "PAGES_DEPLOY_RETRY_DELAY": "0",
    }


def _deploy(project, env, *extra):
    args = [
        "deploy",
        "--yes",
        "--project-root",
        str(project),
        "--build-command",
        BUILD_COMMAND,
        "--build-dir",
        "out",
        *extra,
    ]
    return runner.invoke(app, args, env=env)


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestInfo:
    def test_shows_resolved_configuration(self, project, cli_env):
        result = runner.invoke(app, ["info", "--project-root", str(project)], env=cli_env)
        assert result.exit_code == 0
        assert "gh-pages" in result.output
        assert "unknown" in result.output


class TestPreflight:
    def test_missing_manifest(self, tmp_path):
        with pytest.raises(EnvironmentCheckError, match="No package.json"):
            preflight(make_context(make_settings(tmp_path)))

    def test_missing_build_script_warns_unattended(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "x"}))
        ctx = make_context(make_settings(tmp_path))
        preflight(ctx)
        assert "No build script found" in ctx.display.console.export_text()

    def test_missing_build_script_declined(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "x"}))
        ctx = make_context(make_settings(tmp_path, interactive=True))
        with patch("pagesdeploy.confirm.Prompt.ask", return_value="n"):
            with pytest.raises(DeployError, match="no build script"):
                preflight(ctx)

    def test_undecodable_manifest_warns(self, tmp_path, cli_env):
        (tmp_path / "package.json").write_bytes(b'{"name": "\xff\xfe"}')
        result = runner.invoke(app, ["info", "--project-root", str(tmp_path)], env=cli_env)
        assert result.exit_code == 0, result.output
        assert "unknown" in result.output

        ctx = make_context(make_settings(tmp_path))
        preflight(ctx)
        assert "No build script found" in ctx.display.console.export_text()

    def test_cli_exits_before_any_work(self, tmp_path, cli_env):
        args = ["deploy", "--yes", "--project-root", str(tmp_path)]
        result = runner.invoke(app, args, env=cli_env)
        assert result.exit_code == 1
        assert "No package.json found" in result.output


class TestUsageErrors:
    def test_bad_boolean_env(self, project, cli_env):
        result = _deploy(project, {**cli_env, "DRY_RUN": "sometimes"})
        assert result.exit_code == 2
        assert "Invalid boolean for DRY_RUN" in result.output

    def test_bad_branch(self, project, cli_env):
        result = _deploy(project, cli_env, "--branch", "bad branch")
        assert result.exit_code == 2


class TestDeployEndToEnd:
    def test_publishes_to_new_branch(self, project, origin, cli_env, tmp_path, online):
        real_push = Git.push
        with patch.object(Git, "push", autospec=True, side_effect=real_push) as push:
            result = _deploy(project, cli_env)

        assert result.exit_code == 0, result.output
        assert push.call_count == 1
        assert git(origin, "show", "gh-pages:index.html") == "hello"
        files = set(git(origin, "ls-tree", "-r", "--name-only", "gh-pages").splitlines())
        assert files == {"index.html", ".nojekyll", "CNAME"}
        assert git(origin, "rev-list", "--count", "gh-pages") == "1"
        assert "Deploy completed successfully!" in result.output

        # The caller's repository is untouched and the workspace is gone.
        assert git(project, "branch", "--show-current") == "main"
        assert git(project, "status", "--porcelain") == ""
        assert not Git(project).branch_exists("gh-pages")
        assert list((tmp_path / "private").iterdir()) == []

    def test_redeploy_without_changes_pushes_nothing(self, project, origin, cli_env, online):
        first = _deploy(project, cli_env)
        assert first.exit_code == 0, first.output
        tip = git(origin, "rev-parse", "gh-pages")

        with patch.object(Git, "push") as push:
            second = _deploy(project, cli_env)

        assert second.exit_code == 0, second.output
        push.assert_not_called()
        assert "No changes detected - deployment up to date" in second.output
        assert git(origin, "rev-parse", "gh-pages") == tip
        assert git(origin, "rev-list", "--count", "gh-pages") == "1"

    def test_redeploy_with_changes_extends_history(self, project, origin, cli_env, online):
        first = _deploy(project, cli_env)
        assert first.exit_code == 0, first.output
        previous = git(origin, "rev-parse", "gh-pages")

        changed = "mkdir -p out && printf goodbye > out/index.html"
        with patch.object(Git, "push", autospec=True, side_effect=Git.push) as push:
            second = _deploy(project, cli_env, "--build-command", changed)

        assert second.exit_code == 0, second.output
        push.assert_called_once()
        assert push.call_args.kwargs == {"force": False}
        assert git(origin, "show", "gh-pages:index.html") == "goodbye"
        assert git(origin, "rev-list", "--count", "gh-pages") == "2"
        assert git(origin, "rev-parse", "gh-pages~1") == previous
        assert not Git(project).branch_exists("gh-pages")

    def test_dry_run_never_pushes(self, project, origin, cli_env, online):
        with patch.object(Git, "push") as push:
            result = _deploy(project, cli_env, "--dry-run")
        assert result.exit_code == 0, result.output
        push.assert_not_called()
        assert "DRY RUN: Would push to origin/gh-pages" in result.output
        assert git(origin, "branch", "--list", "gh-pages") == ""

    def test_push_failure_restores_everything(self, project, cli_env, tmp_path, online):
        failed = GitResult(ok=False, stderr="fatal: unable to access remote")
        with patch.object(Git, "push", return_value=failed) as push:
            result = _deploy(project, cli_env)

        assert result.exit_code != 0
        assert push.call_count == 3
        assert "GitHub Pages push failed after 3 attempt(s)" in result.output
        assert "Deploy failed, but environment is clean" in result.output
        assert git(project, "branch", "--show-current") == "main"
        assert list((tmp_path / "private").iterdir()) == []

    def test_build_failure(self, project, cli_env, tmp_path, online):
        result = _deploy(project, cli_env, "--build-command", "sh -c 'exit 7'")
        assert result.exit_code == 1
        assert "Build command failed with exit code 7" in result.output
        assert not (tmp_path / "private").exists()
