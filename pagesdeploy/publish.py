"""Publish state machine: drive the hosting branch inside the isolated copy.

Target resolution converges three starting points on an emptied working tree:

* branch absent locally and remotely -> orphan branch        (``created``)
* branch present, switch succeeds    -> tracked files wiped  (``present-clean``)
* branch present, switch fails       -> deleted, orphaned    (``recreated``)

A branch only the remote carries is fetched into the copy first. Only the
``recreated`` state is force-pushed.

The tree is then populated from the build output, staged, committed, and
pushed unless this is a dry run or the operator declines.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from pagesdeploy._log import get_logger
from pagesdeploy.context import DeployContext
from pagesdeploy.errors import AttemptFailed, DataError, EnvironmentCheckError
from pagesdeploy.retry import RetryPolicy
from pagesdeploy.vcs import Git

logger = get_logger("publish")

MARKER_FILE = ".nojekyll"
DOMAIN_FILE = "CNAME"


class BranchState(str, Enum):
    CREATED = "created"
    PRESENT_CLEAN = "present-clean"
    RECREATED = "recreated"


class PublishOutcome(str, Enum):
    NOTHING_TO_PUBLISH = "nothing-to-publish"
    PUSHED = "pushed"
    DRY_RUN = "dry-run"
    DECLINED = "declined"


@dataclass
class PublishTarget:
    branch: str
    exists: bool = False
    state: BranchState | None = None


@dataclass
class PublishResult:
    target: PublishTarget
    outcome: PublishOutcome
    commit_message: str | None = None
    push_attempts: int = 0
    staged: list[str] = field(default_factory=list)


def clear_working_tree(work_dir: Path) -> None:
    """Delete every top-level entry except version-control metadata."""
    for entry in work_dir.iterdir():
        if entry.name == ".git":
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def copy_tree_contents(src: Path, dest: Path) -> int:
    """Copy *src*'s contents, hidden entries included, into *dest*. Returns files copied."""
    count = 0
    for entry in src.iterdir():
        target = dest / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, symlinks=True, dirs_exist_ok=True)
            count += sum(1 for p in target.rglob("*") if p.is_file())
        else:
            shutil.copy2(entry, target, follow_symlinks=False)
            count += 1
    return count


def build_commit_message(
    *,
    source_branch: str,
    revision: str,
    framework: str,
    build_dir: str,
    app_name: str,
    timestamp: datetime | None = None,
) -> str:
    stamp = (timestamp or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"Deploy to GitHub Pages - {stamp}\n"
        f"\n"
        f"Built from: {source_branch} ({revision})\n"
        f"Framework: {framework}\n"
        f"Build dir: {build_dir}\n"
        f"Deployed via: {app_name}"
    )


class PublishStateMachine:
    def __init__(self, ctx: DeployContext, work_dir: Path, site_dir: Path) -> None:
        self.ctx = ctx
        self.settings = ctx.settings
        self.display = ctx.display
        self.work_dir = work_dir
        self.site_dir = site_dir
        self.git = Git(work_dir, timeout=self.settings.command_timeout or 120)
        self.target = PublishTarget(branch=self.settings.branch)
        self.source_branch = ctx.original_branch or ""

    def run(self) -> PublishResult:
        # Revision of the source branch, read before HEAD moves to the hosting branch.
        revision = self.git.short_revision()
        self.resolve_target()
        self.populate()
        if not self.stage():
            self.display.info("No changes detected - deployment up to date")
            return PublishResult(target=self.target, outcome=PublishOutcome.NOTHING_TO_PUBLISH)
        staged = self.git.staged_name_status().splitlines()
        if self.settings.verbose:
            logger.debug("Files to be committed:\n%s", "\n".join(staged))
        message = self.commit(revision)
        result = PublishResult(
            target=self.target,
            outcome=PublishOutcome.PUSHED,
            commit_message=message,
            staged=staged,
        )
        self.publish(result)
        return result

    # -- 1. Target resolution --------------------------------------------------

    def resolve_target(self) -> BranchState:
        branch = self.target.branch
        self.target.exists = self.git.branch_exists(branch) or self._fetch_remote_branch(branch)
        if self.target.exists:
            self.display.info(f"Switching to existing {branch} branch...")
            # Uncommitted edits carried into the copy would block the switch.
            self.git.discard_local_changes()
            if self.git.checkout(branch).ok:
                state = BranchState.PRESENT_CLEAN
            else:
                self.display.warning(
                    f"Existing {branch} branch appears corrupted, recreating..."
                )
                self.git.delete_branch(branch)
                self._create_orphan(branch)
                state = BranchState.RECREATED
        else:
            self.display.info(f"Creating new {branch} branch...")
            self._create_orphan(branch)
            state = BranchState.CREATED
        clear_working_tree(self.work_dir)
        self.target.state = state
        logger.debug("Hosting branch %s resolved to state %s", branch, state.value)
        return state

    def _fetch_remote_branch(self, branch: str) -> bool:
        """Bring the published branch into the copy, which carries no remote refs."""
        remote = self.settings.remote
        present = self.git.remote_branch_exists(remote, branch)
        if present is None:
            raise EnvironmentCheckError(f"Cannot query branch '{branch}' on remote '{remote}'")
        if not present:
            return False
        self.display.info(f"Fetching {branch} branch from {remote}...")
        result = self.git.fetch_branch(remote, branch)
        if not result.ok:
            raise EnvironmentCheckError(
                f"Cannot fetch branch '{branch}' from '{remote}': "
                f"{result.stderr.strip() or 'git fetch failed'}"
            )
        return True

    def _create_orphan(self, branch: str) -> None:
        result = self.git.checkout_orphan(branch)
        if not result.ok:
            raise EnvironmentCheckError(
                f"Cannot create branch '{branch}': {result.stderr.strip() or 'git checkout failed'}"
            )
        self.git.remove_all_tracked()

    # -- 2. Populate -----------------------------------------------------------

    def populate(self) -> int:
        self.display.info("Copying build files to repository root...")
        if not self.site_dir.is_dir():
            raise DataError(f"Build output not found: {self.site_dir}")
        count = copy_tree_contents(self.site_dir, self.work_dir)
        (self.work_dir / MARKER_FILE).write_text("")
        logger.debug("Created %s file", MARKER_FILE)

        if self.source_branch:
            domain = self.git.show_file(self.source_branch, DOMAIN_FILE)
            if domain is not None:
                (self.work_dir / DOMAIN_FILE).write_text(domain)
                self.display.info(f"{DOMAIN_FILE} file copied from {self.source_branch} branch")
        return count

    # -- 3. Stage & diff -------------------------------------------------------

    def stage(self) -> bool:
        """Stage everything; return True when the index differs from the branch tip."""
        result = self.git.add_all()
        if not result.ok:
            raise EnvironmentCheckError(f"Failed to stage files: {result.stderr.strip()}")
        return self.git.has_staged_changes()

    # -- 4. Commit -------------------------------------------------------------

    def commit(self, revision: str) -> str:
        message = build_commit_message(
            source_branch=self.source_branch or "unknown",
            revision=revision,
            framework=self.settings.framework,
            build_dir=self.settings.build_dir,
            app_name=self.settings.app_name,
        )
        result = self.git.commit(message)
        if not result.ok:
            raise EnvironmentCheckError(f"Failed to commit: {result.stderr.strip()}")
        self.display.success("Changes committed")
        return message

    # -- 5. Publish ------------------------------------------------------------

    def publish(self, result: PublishResult) -> None:
        remote, branch = self.settings.remote, self.target.branch
        if self.settings.dry_run:
            self.display.info(f"DRY RUN: Would push to {remote}/{branch}")
            self.display.info(f"Commit: {result.commit_message}")
            result.outcome = PublishOutcome.DRY_RUN
            return

        if self.ctx.interactive and not self.ctx.engine.confirm(
            "Push to GitHub Pages?", default=True
        ):
            self.display.info("Deployment prepared but not pushed (user choice)")
            result.outcome = PublishOutcome.DECLINED
            return

        self.display.status("Pushing to GitHub Pages...")
        # A recreated branch has no parent and cannot fast-forward the remote one.
        force = self.target.state is BranchState.RECREATED

        def attempt() -> None:
            result.push_attempts += 1
            pushed = self.git.push(remote, branch, force=force)
            if not pushed.ok:
                raise AttemptFailed(pushed.stderr.strip() or "git push failed")

        policy = RetryPolicy(
            max_attempts=self.settings.retry_attempts,
            delay=self.settings.retry_delay,
            description="GitHub Pages push",
        )
        policy.run(attempt)
        self.display.success("Successfully deployed to GitHub Pages!")
        result.outcome = PublishOutcome.PUSHED
