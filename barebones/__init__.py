"""barebones: bare-repository worktree orchestration."""

__version__ = "0.1.0"
