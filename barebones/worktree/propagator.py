"""Propagation of untracked files from __main__ into new worktrees.

Symlinked entries are shared with __main__ (secrets, local env files);
copied entries are forked and never follow later edits in __main__.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import WorktreeConfig

logger = logging.getLogger(__name__)


@dataclass
class PropagationSkipped:
    """A configured pattern that was not propagated."""

    pattern: str
    mode: str  # "symlink" or "copy"
    reason: str


@dataclass
class PropagationResult:
    linked: List[Path] = field(default_factory=list)
    copied: List[Path] = field(default_factory=list)
    skipped: List[PropagationSkipped] = field(default_factory=list)


def _relative(pattern: str) -> Optional[Path]:
    """Pattern as a relative path, None if it would leave the worktree."""
    rel = Path(pattern)
    if not pattern.strip() or rel.is_absolute() or ".." in rel.parts:
        return None
    return rel


def remove_entry(path: Path) -> None:
    """Remove a file, symlink or directory tree; absent paths are fine."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


class FilePropagator:
    """Symlinks and copies configured paths from __main__ into a worktree."""

    def run(
        self,
        config: WorktreeConfig,
        main_path: Path,
        worktree_path: Path,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> PropagationResult:
        """Apply ``config.symlink`` then ``config.copy``, each in order.

        Patterns whose source is missing in __main__ are skipped with a
        warning.
        """
        progress = on_progress or (lambda line: None)
        main_path = Path(main_path).resolve()
        worktree_path = Path(worktree_path)
        result = PropagationResult()

        for pattern in config.symlink:
            source, target = self._paths(pattern, "symlink", main_path, worktree_path, result)
            if source is None:
                progress(f"Skipped {pattern} ({result.skipped[-1].reason})")
                continue
            self.link(source, target)
            result.linked.append(target)
            progress(f"Linked {pattern}")

        for pattern in config.copy:
            source, target = self._paths(pattern, "copy", main_path, worktree_path, result)
            if source is None:
                progress(f"Skipped {pattern} ({result.skipped[-1].reason})")
                continue
            self.copy(source, target)
            result.copied.append(target)
            progress(f"Copied {pattern}")

        return result

    def _paths(self, pattern, mode, main_path, worktree_path, result):
        rel = _relative(pattern)
        if rel is None:
            logger.warning(f"{mode.capitalize()} skipped (pattern outside worktree): {pattern}")
            result.skipped.append(PropagationSkipped(pattern, mode, "pattern outside worktree"))
            return None, None

        source = main_path / rel
        if not source.exists():
            logger.warning(f"{mode.capitalize()} skipped (source not found): {pattern}")
            result.skipped.append(PropagationSkipped(pattern, mode, "source not found"))
            return None, None

        return source, worktree_path / rel

    def link(self, source: Path, target: Path) -> None:
        """Point ``target`` at the absolute ``source``, replacing what is there."""
        remove_entry(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.symlink_to(source, target_is_directory=source.is_dir())
        logger.debug(f"Linked {target} -> {source}")

    def copy(self, source: Path, target: Path) -> None:
        """Copy a file or directory tree from ``source`` to ``target``."""
        # Never write through a link into __main__
        if target.is_symlink():
            target.unlink()
        elif target.exists() and target.is_dir() != source.is_dir():
            remove_entry(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            shutil.copytree(source, target, symlinks=True, dirs_exist_ok=True)
        else:
            shutil.copy2(source, target)
        logger.debug(f"Copied {source} -> {target}")
