"""Exceptions raised by the worktree backend."""

from pathlib import Path
from typing import List, Optional, Sequence, Union


class BareBonesError(Exception):
    """Base exception for all barebones errors."""


class AlreadyExistsError(BareBonesError):
    """Raised when the target of a create operation already exists."""

    def __init__(self, path: Union[Path, str], message: Optional[str] = None):
        self.path = Path(path)
        super().__init__(message or f"Already exists: {path}")


class RepositoryExistsError(AlreadyExistsError):
    """Raised when a clone target already holds a bare repository."""

    def __init__(self, path: Union[Path, str]):
        super().__init__(path, f"Repository already exists at {path}")


class WorktreeExistsError(AlreadyExistsError):
    """Raised when the target path is already a registered worktree."""

    def __init__(self, path: Union[Path, str]):
        super().__init__(path, f"Worktree already exists at {path}")


class NotFoundError(BareBonesError):
    """Raised when a worktree or branch is absent."""


class WorktreeNotFoundError(NotFoundError):
    """Raised when no worktree is registered under a name."""

    def __init__(self, name: str, path: Optional[Union[Path, str]] = None):
        self.name = name
        self.path = Path(path) if path else None
        message = f"Worktree '{name}' not found"
        if path:
            message += f" at {path}"
        super().__init__(message)


class ToolFailureError(BareBonesError):
    """An external tool exited non-zero.

    ``str(error)`` is the tool's own diagnostic text so it can be shown to
    users verbatim.
    """

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.command: List[str] = list(command)
        self.returncode = returncode
        if not message:
            message = f"'{' '.join(self.command)}' exited with code {returncode}"
        self.message = message
        super().__init__(message)


class WorktreeOpFailedError(ToolFailureError):
    """git refused to create or remove a worktree."""


class InstallFailedError(ToolFailureError):
    """The package manager install verb exited non-zero."""

    @property
    def exit_code(self) -> Optional[int]:
        return self.returncode


class ProtectedWorktreeError(BareBonesError):
    """Raised when asked to remove the canonical worktree."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Worktree '{name}' is the canonical worktree and cannot be removed")


class ProgressClosedError(BareBonesError):
    """Raised when progress is emitted after the terminal event."""
