"""Worktree backend for barebones."""

from .branch_manager import BranchManager
from .config import BareBonesConfig, WorktreeConfig, get_barebones_config
from .detect import PackageManager, RepositoryType, detect_package_manager, detect_repository_type
from .errors import (
    AlreadyExistsError,
    BareBonesError,
    InstallFailedError,
    NotFoundError,
    ProgressClosedError,
    ProtectedWorktreeError,
    RepositoryExistsError,
    ToolFailureError,
    WorktreeExistsError,
    WorktreeNotFoundError,
    WorktreeOpFailedError,
)
from .installer import DependencyInstaller
from .locks import RepositoryLock
from .models import MAIN_WORKTREE_NAME, Remote, Repository, Worktree
from .pipeline import WorktreePipeline
from .progress import EventKind, ProgressEvent, ProgressReporter, Stage, line_sink
from .propagator import FilePropagator, PropagationResult, PropagationSkipped
from .repo_manager import RepositoryCloner, extract_owner
from .storage import JsonWorktreeConfigStore, MemoryWorktreeConfigStore, WorktreeConfigStore
from .worktree_manager import WorktreeManager, is_already_up_to_date

__all__ = [
    "AlreadyExistsError",
    "BareBonesConfig",
    "BareBonesError",
    "BranchManager",
    "DependencyInstaller",
    "EventKind",
    "FilePropagator",
    "InstallFailedError",
    "JsonWorktreeConfigStore",
    "MAIN_WORKTREE_NAME",
    "MemoryWorktreeConfigStore",
    "NotFoundError",
    "PackageManager",
    "ProgressClosedError",
    "ProgressEvent",
    "ProgressReporter",
    "PropagationResult",
    "PropagationSkipped",
    "ProtectedWorktreeError",
    "Remote",
    "Repository",
    "RepositoryCloner",
    "RepositoryExistsError",
    "RepositoryLock",
    "RepositoryType",
    "Stage",
    "ToolFailureError",
    "Worktree",
    "WorktreeConfig",
    "WorktreeConfigStore",
    "WorktreeExistsError",
    "WorktreeManager",
    "WorktreeNotFoundError",
    "WorktreeOpFailedError",
    "WorktreePipeline",
    "detect_package_manager",
    "detect_repository_type",
    "extract_owner",
    "get_barebones_config",
    "is_already_up_to_date",
    "line_sink",
]
