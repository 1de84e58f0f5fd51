"""Branch and remote management for worktree backend."""

import logging
import re
from pathlib import Path
from typing import List, Optional

from .errors import ToolFailureError
from .models import Remote
from .process import run_command

logger = logging.getLogger(__name__)

REMOTE_LINE_PATTERN = re.compile(r"^(\S+)\s+(\S+)\s+\(fetch\)")


class BranchManager:
    """Manages git branch and remote operations on a repository root."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def list_branches(self, repo_root: Path) -> List[str]:
        """List local and remote branch short names.

        The remote HEAD pointer (e.g. origin/HEAD) is not a branch and is
        left out.
        """
        result = run_command(
            ["git", "branch", "-a", "--format=%(refname)"],
            cwd=repo_root,
            timeout=self.timeout,
        )

        branches = []
        for line in result.stdout.splitlines():
            ref = line.strip()
            if ref.startswith("refs/heads/"):
                branches.append(ref[len("refs/heads/") :])
            elif ref.startswith("refs/remotes/"):
                short = ref[len("refs/remotes/") :]
                if short.endswith("/HEAD"):
                    continue
                branches.append(short)
        return branches

    def branch_exists(self, repo_root: Path, branch: str, remote: str = "origin") -> bool:
        """Check for ``branch`` locally or as ``{remote}/{branch}``."""
        candidates = {branch, f"{remote}/{branch}"}
        return any(b in candidates for b in self.list_branches(repo_root))

    def local_branch_exists(self, repo_root: Path, branch: str) -> bool:
        """Check if a branch exists locally (in refs/heads/)."""
        result = run_command(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
            cwd=repo_root,
            check=False,
            timeout=self.timeout,
        )
        return result.returncode == 0

    def delete_branch(self, repo_root: Path, branch: str) -> bool:
        """Force-delete a local branch.

        Returns False when git refuses (branch absent or checked out in
        another worktree).
        """
        try:
            run_command(["git", "branch", "-D", branch], cwd=repo_root, timeout=self.timeout)
        except ToolFailureError as e:
            logger.debug(f"Branch {branch} not deleted: {e}")
            return False
        logger.info(f"Deleted branch {branch}")
        return True

    def get_remote_url(self, repo_root: Path, remote: str = "origin") -> Optional[str]:
        """Get the URL of a remote, None if it is not configured."""
        result = run_command(
            ["git", "remote", "get-url", remote],
            cwd=repo_root,
            check=False,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def list_remotes(self, repo_root: Path) -> List[Remote]:
        """List configured remotes (fetch URLs)."""
        result = run_command(["git", "remote", "-v"], cwd=repo_root, timeout=self.timeout)

        remotes = []
        seen = set()
        for line in result.stdout.splitlines():
            # Format: origin  git@github.com:owner/repo.git (fetch)
            match = REMOTE_LINE_PATTERN.match(line.strip())
            if match and match.group(1) not in seen:
                seen.add(match.group(1))
                remotes.append(Remote(name=match.group(1), url=match.group(2)))
        return remotes

    def add_remote(self, repo_root: Path, name: str, url: str, fetch: bool = True) -> None:
        """Add a remote and fetch it."""
        run_command(["git", "remote", "add", name, url], cwd=repo_root, timeout=self.timeout)
        logger.info(f"Added remote {name} -> {url}")
        if fetch:
            run_command(["git", "fetch", name], cwd=repo_root, timeout=self.timeout)
            logger.info(f"Fetched remote {name}")

    def remove_remote(self, repo_root: Path, name: str) -> None:
        """Remove a remote."""
        run_command(["git", "remote", "remove", name], cwd=repo_root, timeout=self.timeout)
        logger.info(f"Removed remote {name}")
