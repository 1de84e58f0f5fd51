"""Repository cloner for worktree backend."""

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Callable, Optional, Union

from .branch_manager import BranchManager
from .errors import RepositoryExistsError, ToolFailureError
from .models import BARE_DIR_NAME, GITLINK_CONTENTS, MAIN_WORKTREE_NAME
from .process import run_command, stream_command

logger = logging.getLogger(__name__)

# git@github.com:owner/repo.git
SSH_URL_PATTERN = re.compile(r"^[\w.-]+@[^:/\s]+:(?P<owner>[^/\s]+)/")
# https://github.com/owner/repo.git, ssh://git@host/owner/repo.git
URL_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://(?:[^@/\s]+@)?[^/\s]+/(?P<owner>[^/\s]+)/", re.IGNORECASE)

ORIGIN_FETCH_REFSPEC = "+refs/heads/*:refs/remotes/origin/*"


def extract_owner(url: str) -> str:
    """Get the owner segment of a remote URL.

    Falls back to the current OS user for URLs without one (local paths).
    """
    url = url.strip()
    for pattern in (SSH_URL_PATTERN, URL_PATTERN):
        match = pattern.match(url)
        if match:
            return match.group("owner")
    return os.environ.get("USER") or "user"


class RepositoryCloner:
    """Clones remotes into the bare + worktrees layout."""

    def __init__(
        self,
        workspace_root: Union[Path, str],
        branch_manager: Optional[BranchManager] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize repository cloner."""
        self.workspace_root = Path(workspace_root).expanduser()
        self.branch_manager = branch_manager or BranchManager(timeout=timeout)
        self.timeout = timeout

    def get_repo_path(self, owner: str, target_dir: str) -> Path:
        """Get local path for a repository."""
        return (self.workspace_root / owner / target_dir).resolve()

    def repo_exists(self, repo_path: Path) -> bool:
        """Check if a bare clone already lives at ``repo_path``."""
        return (Path(repo_path) / BARE_DIR_NAME).exists()

    def clone_repository(
        self,
        url: str,
        target_dir: str,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> Path:
        """Bare-clone ``url`` and create the canonical worktree.

        Layout produced under ``{workspace_root}/{owner}/{target_dir}``:
        ``.bare`` (the clone), ``.git`` (gitlink to .bare) and
        ``__main__`` checked out on main, or master when there is no main.

        Returns:
            Absolute repository root

        Raises:
            RepositoryExistsError: target already contains .bare
            ToolFailureError: any git step failed; later steps are skipped
        """
        progress = on_progress or (lambda line: None)
        repo_path = self.get_repo_path(extract_owner(url), target_dir)

        if self.repo_exists(repo_path):
            raise RepositoryExistsError(repo_path)

        created = not repo_path.exists()
        repo_path.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning repository {url} to {repo_path}")

        try:
            stream_command(
                ["git", "clone", "--bare", url, BARE_DIR_NAME],
                cwd=repo_path,
                on_line=progress,
                timeout=self.timeout,
            )
        except ToolFailureError as e:
            logger.error(f"Failed to clone repository: {e.message}")
            # Clean up partial clone
            if created and repo_path.exists():
                shutil.rmtree(repo_path)
            elif (repo_path / BARE_DIR_NAME).exists():
                shutil.rmtree(repo_path / BARE_DIR_NAME)
            raise

        (repo_path / ".git").write_text(GITLINK_CONTENTS)
        progress("Created .git file")

        # Bare clones do not set up remote-tracking refs
        run_command(
            ["git", "config", "remote.origin.fetch", ORIGIN_FETCH_REFSPEC],
            cwd=repo_path,
            timeout=self.timeout,
        )
        progress("Configured remote fetch")

        run_command(["git", "fetch", "origin"], cwd=repo_path, timeout=self.timeout)
        progress("Fetched remote branches")

        if self.branch_manager.local_branch_exists(repo_path, "main"):
            default_branch = "main"
        else:
            default_branch = "master"

        run_command(
            ["git", "worktree", "add", MAIN_WORKTREE_NAME, default_branch],
            cwd=repo_path,
            timeout=self.timeout,
        )
        if default_branch == "main":
            progress(f"Created {MAIN_WORKTREE_NAME} worktree")
        else:
            progress(f"Created {MAIN_WORKTREE_NAME} worktree ({default_branch})")

        logger.info(f"Successfully cloned {url} to {repo_path}")
        return repo_path
