"""Dependency installation through the repository's package manager."""

import logging
from pathlib import Path
from typing import Optional, Union

from .detect import PackageManager, detect_package_manager
from .errors import InstallFailedError, ToolFailureError
from .process import run_command

logger = logging.getLogger(__name__)


class DependencyInstaller:
    """Runs ``<manager> install`` in a directory.

    Worktrees always get a manager-driven install, never a copy of
    __main__'s dependency tree, so per-worktree lockfile changes are
    honoured; the manager's local cache keeps it fast.
    """

    def __init__(
        self,
        default_manager: Union[PackageManager, str] = PackageManager.PNPM,
        timeout: Optional[float] = None,
    ):
        self.default_manager = PackageManager(default_manager)
        self.timeout = timeout

    def detect(self, main_path: Path) -> PackageManager:
        """Detect the package manager from the canonical worktree."""
        return detect_package_manager(main_path, self.default_manager)

    def install(self, root: Path, manager: Optional[Union[PackageManager, str]] = None) -> None:
        """Install dependencies in ``root``.

        Raises:
            InstallFailedError: the install exited non-zero
        """
        pm = PackageManager(manager) if manager else self.detect(root)
        args = [pm.value, "install"]

        logger.info(f"Installing dependencies in {root} with {pm.value}")
        try:
            result = run_command(args, cwd=root, timeout=self.timeout)
        except ToolFailureError as e:
            logger.error(f"Failed to install dependencies: {e.message}")
            raise InstallFailedError(e.command, e.returncode, e.message) from e

        logger.debug(f"Install output: {result.stdout}")
