"""Coarse-grained git operations run in a subprocess.

Each operation reports success or failure only; output is parsed no further
than presence/absence checks and single-line values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pagesdeploy._log import get_logger
from pagesdeploy._subprocess import SubprocessTimeout, run_subprocess_text

logger = get_logger("vcs")

_SCP_LIKE_RE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")
_GITHUB_RE = re.compile(r"^https?://github\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/?$")


@dataclass
class GitResult:
    ok: bool
    stdout: str = ""
    stderr: str = ""

    @property
    def text(self) -> str:
        return self.stdout.strip()


def normalize_remote_url(url: str) -> str:
    """Strip a trailing ``.git`` and turn ``git@host:owner/repo`` into an https URL."""
    url = url.strip()
    if url.endswith(".git"):
        url = url[: -len(".git")]
    if "://" not in url:
        match = _SCP_LIKE_RE.match(url)
        if match:
            url = f"https://{match.group('host')}/{match.group('path')}"
    return url.rstrip("/")


def pages_site_url(remote_url: str) -> str | None:
    """Return ``https://<owner>.github.io/<repo>`` for a GitHub remote, else None."""
    match = _GITHUB_RE.match(normalize_remote_url(remote_url))
    if not match:
        return None
    owner, repo = match.group("owner"), match.group("repo")
    if repo.lower() == f"{owner.lower()}.github.io":
        return f"https://{repo}"
    return f"https://{owner}.github.io/{repo}"


class Git:
    """Git collaborator bound to one working directory."""

    def __init__(self, cwd: Path, *, timeout: int | None = 120) -> None:
        self.cwd = Path(cwd)
        self.timeout = timeout

    def run(self, *args: str, timeout: int | None = None) -> GitResult:
        cmd = ["git", "-C", str(self.cwd), *args]
        try:
            stdout, stderr, returncode = run_subprocess_text(
                cmd, timeout=timeout if timeout is not None else self.timeout
            )
        except SubprocessTimeout as exc:
            logger.debug("git %s: %s", args[0] if args else "", exc)
            return GitResult(ok=False, stderr=str(exc))
        if returncode != 0:
            logger.debug("git %s failed (%d): %s", " ".join(args), returncode, stderr.strip())
        return GitResult(ok=returncode == 0, stdout=stdout, stderr=stderr)

    # -- Queries ---------------------------------------------------------------

    def is_repository(self) -> bool:
        result = self.run("rev-parse", "--is-inside-work-tree")
        return result.ok and result.text == "true"

    def toplevel(self) -> Path | None:
        result = self.run("rev-parse", "--show-toplevel")
        return Path(result.text) if result.ok and result.text else None

    def current_branch(self) -> str:
        """Return the checked-out branch name, or ``""`` when detached or unknown."""
        result = self.run("branch", "--show-current")
        return result.text if result.ok else ""

    def remote_url(self, remote: str = "origin") -> str:
        result = self.run("config", "--get", f"remote.{remote}.url")
        return result.text if result.ok else ""

    def verify_remote(self, url: str) -> bool:
        return self.run("ls-remote", "--heads", url).ok

    def branch_exists(self, branch: str) -> bool:
        return self.run("show-ref", "--verify", "--quiet", f"refs/heads/{branch}").ok

    def remote_branch_exists(self, remote: str, branch: str) -> bool | None:
        """Whether *remote* carries *branch*; None when the remote cannot be queried."""
        result = self.run("ls-remote", "--heads", remote, f"refs/heads/{branch}", timeout=300)
        if not result.ok:
            return None
        return bool(result.text)

    def short_revision(self, ref: str = "HEAD") -> str:
        result = self.run("rev-parse", "--short", ref)
        return result.text if result.ok else "unknown"

    def has_uncommitted_changes(self) -> bool:
        unstaged = self.run("diff", "--quiet")
        staged = self.run("diff", "--cached", "--quiet")
        return not (unstaged.ok and staged.ok)

    def has_staged_changes(self) -> bool:
        return not self.run("diff", "--cached", "--quiet").ok

    def staged_name_status(self) -> str:
        return self.run("diff", "--cached", "--name-status").text

    def show_file(self, ref: str, path: str) -> str | None:
        """Return the contents of *path* at *ref*, or None when absent."""
        result = self.run("cat-file", "-e", f"{ref}:{path}")
        if not result.ok:
            return None
        shown = self.run("show", f"{ref}:{path}")
        return shown.stdout if shown.ok else None

    def status_ok(self) -> bool:
        return self.run("status", "--porcelain").ok

    # -- Mutations -------------------------------------------------------------

    def checkout(self, branch: str) -> GitResult:
        return self.run("checkout", "--quiet", branch)

    def discard_local_changes(self) -> GitResult:
        return self.run("reset", "--hard", "--quiet", "HEAD")

    def delete_branch(self, branch: str) -> GitResult:
        return self.run("branch", "-D", branch)

    def checkout_orphan(self, branch: str) -> GitResult:
        return self.run("checkout", "--quiet", "--orphan", branch)

    def remove_all_tracked(self) -> GitResult:
        return self.run("rm", "-r", "-f", "--quiet", "--ignore-unmatch", ".")

    def add_all(self) -> GitResult:
        return self.run("add", "--all", ".")

    def commit(self, message: str) -> GitResult:
        return self.run("commit", "--quiet", "--no-verify", "-m", message)

    def fetch_branch(self, remote: str, branch: str) -> GitResult:
        """Fetch *branch* from *remote* into a local branch of the same name."""
        return self.run(
            "fetch", "--quiet", remote, f"refs/heads/{branch}:refs/heads/{branch}", timeout=300
        )

    def push(self, remote: str, branch: str, *, force: bool = False) -> GitResult:
        args = ["push", remote, branch]
        if force:
            args.insert(1, "--force")
        return self.run(*args, timeout=300)
