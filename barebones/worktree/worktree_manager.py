"""Worktree manager for worktree backend.

Directory Structure
-------------------
~/GitHub/
└── owner/
    └── repo/                  # Repository root
        ├── .bare/             # Bare clone, the shared object store
        │   └── worktrees/     # Git worktree metadata
        ├── .git               # FILE containing "gitdir: ./.bare"
        ├── __main__/          # Canonical worktree, source of shared files
        └── feature-x/         # One directory per additional worktree

All git commands run from the repository root; the .git file makes the
root resolve to the bare clone, so `git worktree add feature-x` places
the worktree next to __main__.

Concurrency
-----------
Nothing here serializes access to the worktree table. git takes its own
locks on refs and on .bare/worktrees/<name>; callers that need more
(updating __main__ while worktrees are added) hold a RepositoryLock.
"""

import logging
from pathlib import Path
from typing import List, Optional

from .branch_manager import BranchManager
from .errors import ToolFailureError, WorktreeExistsError, WorktreeNotFoundError, WorktreeOpFailedError
from .models import MAIN_WORKTREE_NAME, Worktree, main_worktree_path
from .process import diagnostic, run_command

logger = logging.getLogger(__name__)

ALREADY_UP_TO_DATE_MARKERS = ("Already up to date", "Already up-to-date")


def is_already_up_to_date(output: str) -> bool:
    """Whether git output says a pull found nothing new.

    Some git versions report this through a non-zero exit. The check is a
    substring match on English output, so a localized git (LANG other
    than English) never matches and such pulls fail.
    """
    return any(marker in output for marker in ALREADY_UP_TO_DATE_MARKERS)


def parse_worktree_porcelain(output: str) -> List[Worktree]:
    """Parse `git worktree list --porcelain` output.

    Format, one block per worktree separated by blank lines:
        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>    (or "detached", or "bare")
    """
    worktrees = []
    for block in output.strip().split("\n\n"):
        worktree: Optional[Worktree] = None
        for line in block.splitlines():
            line = line.strip()
            if line.startswith("worktree "):
                worktree = Worktree(path=Path(line[len("worktree ") :]))
            elif worktree is None:
                continue
            elif line.startswith("HEAD "):
                worktree.head = line[len("HEAD ") :]
            elif line.startswith("branch "):
                worktree.branch = line[len("branch ") :]
            elif line == "bare":
                worktree.bare = True
            elif line == "detached":
                worktree.detached = True
        if worktree is not None:
            worktrees.append(worktree)
    return worktrees


class WorktreeManager:
    """Manages named worktrees of a bare-backed repository."""

    def __init__(
        self,
        branch_manager: Optional[BranchManager] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize worktree manager."""
        self.branch_manager = branch_manager or BranchManager(timeout=timeout)
        self.timeout = timeout

    def get_worktree_path(self, repo_root: Path, name: str) -> Path:
        """Get the absolute path of the worktree called ``name``."""
        return Path(repo_root).resolve() / name

    def add(
        self,
        repo_root: Path,
        name: str,
        branch: Optional[str] = None,
        upstream_remote: str = "origin",
        base_branch: str = "main",
    ) -> Path:
        """Create a worktree and return its absolute path.

        With ``branch`` the worktree checks out that exact branch. Without
        it a branch called ``name`` is created from
        ``{upstream_remote}/{base_branch}``; if such a branch already
        exists locally or on the remote it is reset to that start point,
        so a worktree can be recreated after its branch outlived it. The
        new branch tracks the start point whatever `branch.autoSetupMerge`
        says.

        Raises:
            WorktreeExistsError: the target path is already a worktree
            WorktreeOpFailedError: git refused, message is git's stderr
        """
        repo_root = Path(repo_root)
        worktree_path = self.get_worktree_path(repo_root, name)

        if self.find(repo_root, name) is not None:
            raise WorktreeExistsError(worktree_path)

        if branch:
            args = ["git", "worktree", "add", name, branch]
        else:
            start_point = f"{upstream_remote}/{base_branch}"
            exists = self.branch_manager.branch_exists(repo_root, name, upstream_remote)
            # -B resets a leftover branch instead of failing on it
            flag = "-B" if exists else "-b"
            args = ["git", "worktree", "add", "--track", flag, name, name, start_point]

        logger.info(f"Creating worktree {name} at {worktree_path}")

        try:
            result = run_command(args, cwd=repo_root, timeout=self.timeout)
        except ToolFailureError as e:
            logger.error(f"Failed to create worktree: {e.message}")
            raise WorktreeOpFailedError(e.command, e.returncode, e.message) from e

        logger.debug(f"Worktree creation output: {result.stdout}")
        logger.info(f"Successfully created worktree {name}")
        return worktree_path

    def remove(self, repo_root: Path, name: str) -> None:
        """Force-remove a worktree, then delete its branch if possible.

        Callers must not pass the canonical worktree name.

        Raises:
            WorktreeNotFoundError: no worktree is registered at the path
            WorktreeOpFailedError: git refused to remove it
        """
        repo_root = Path(repo_root)
        worktree_path = self.get_worktree_path(repo_root, name)

        if self.find(repo_root, name) is None:
            raise WorktreeNotFoundError(name, worktree_path)

        logger.info(f"Removing worktree {name}")

        try:
            run_command(
                ["git", "worktree", "remove", str(worktree_path), "--force"],
                cwd=repo_root,
                timeout=self.timeout,
            )
        except ToolFailureError as e:
            logger.error(f"Failed to remove worktree: {e.message}")
            raise WorktreeOpFailedError(e.command, e.returncode, e.message) from e

        # Branch may be absent or checked out elsewhere
        if not self.branch_manager.delete_branch(repo_root, name):
            logger.info(f"Kept branch {name} after removing its worktree")

        logger.info(f"Successfully removed worktree {name}")

    def list(self, repo_root: Path) -> List[Worktree]:
        """List all worktrees of a repository, including the bare entry."""
        result = run_command(
            ["git", "worktree", "list", "--porcelain"],
            cwd=repo_root,
            timeout=self.timeout,
        )
        worktrees = parse_worktree_porcelain(result.stdout)
        for worktree in worktrees:
            if not worktree.bare:
                worktree.commit_message = self._commit_subject(worktree.path)
        return worktrees

    def find(self, repo_root: Path, name: str) -> Optional[Worktree]:
        """Get the worktree registered at ``{repo_root}/{name}``."""
        worktree_path = self.get_worktree_path(repo_root, name)
        result = run_command(
            ["git", "worktree", "list", "--porcelain"],
            cwd=repo_root,
            timeout=self.timeout,
        )
        for worktree in parse_worktree_porcelain(result.stdout):
            if worktree.path.resolve() == worktree_path:
                return worktree
        return None

    def worktree_exists(self, repo_root: Path, name: str) -> bool:
        return self.find(repo_root, name) is not None

    def update_main(
        self, repo_root: Path, upstream_remote: str = "origin", base_branch: str = "main"
    ) -> None:
        """Pull ``{upstream_remote}/{base_branch}`` into the canonical worktree.

        A non-zero exit that only says "already up to date" counts as
        success.
        """
        main_path = main_worktree_path(repo_root)
        args = ["git", "pull", upstream_remote, base_branch]

        logger.info(f"Updating {MAIN_WORKTREE_NAME} from {upstream_remote}/{base_branch}")
        result = run_command(args, cwd=main_path, check=False, timeout=self.timeout)
        if result.returncode == 0:
            logger.debug(f"Pull output: {result.stdout}")
            return

        output = (result.stdout or "") + (result.stderr or "")
        if is_already_up_to_date(output):
            logger.info(f"{MAIN_WORKTREE_NAME} already up to date (exit code {result.returncode})")
            return

        message = diagnostic(result.stdout, result.stderr, result.returncode)
        logger.error(f"Failed to update {MAIN_WORKTREE_NAME}: {message}")
        raise ToolFailureError(args, result.returncode, message)

    def _commit_subject(self, worktree_path: Path) -> Optional[str]:
        """Subject line of the worktree's HEAD commit, None if unavailable."""
        if not worktree_path.exists():
            return None
        try:
            result = run_command(
                ["git", "log", "-1", "--format=%s"],
                cwd=worktree_path,
                check=False,
                timeout=self.timeout,
            )
        except ToolFailureError as e:
            logger.debug(f"Could not read HEAD commit of {worktree_path}: {e}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None
