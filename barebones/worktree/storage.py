"""Storage for per-repository worktree configuration."""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from .config import WorktreeConfig, _get_state_base

logger = logging.getLogger(__name__)

RepoId = Union[Path, str]


def _get_default_config_path() -> Path:
    """Get the default worktree config path, honoring XDG_STATE_HOME."""
    return _get_state_base() / "worktree-config.json"


class WorktreeConfigStore(ABC):
    """Get/set WorktreeConfig by repository identifier.

    The identifier is the repository root path.
    """

    @abstractmethod
    def get(self, repo_id: RepoId) -> WorktreeConfig:
        """Get the config of a repository, defaults when none is stored."""

    @abstractmethod
    def set(self, repo_id: RepoId, config: WorktreeConfig) -> None:
        """Store the config of a repository."""

    @staticmethod
    def key(repo_id: RepoId) -> str:
        """Absolute, symlink-free spelling of a repository root."""
        return str(Path(repo_id).expanduser().resolve())


class MemoryWorktreeConfigStore(WorktreeConfigStore):
    """In-memory store, mostly for tests."""

    def __init__(self, configs: Optional[Dict[str, WorktreeConfig]] = None):
        self._configs: Dict[str, WorktreeConfig] = dict(configs or {})

    def get(self, repo_id: RepoId) -> WorktreeConfig:
        config = self._configs.get(self.key(repo_id))
        if config is None:
            return WorktreeConfig()
        return WorktreeConfig.from_dict(config.to_dict())

    def set(self, repo_id: RepoId, config: WorktreeConfig) -> None:
        self._configs[self.key(repo_id)] = WorktreeConfig.from_dict(config.to_dict())


class JsonWorktreeConfigStore(WorktreeConfigStore):
    """Persists worktree configs as one JSON object keyed by repository path."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config storage."""
        if config_path is None:
            config_path = _get_default_config_path()
        self.config_path = Path(config_path)
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict]:
        """Load the whole store from disk."""
        if not self.config_path.exists():
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable worktree config {self.config_path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring worktree config {self.config_path}: not a JSON object")
            return {}
        return data

    def _save(self, data: Dict[str, Dict]) -> None:
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, repo_id: RepoId) -> WorktreeConfig:
        with self._lock:
            data = self._load()
        return WorktreeConfig.from_dict(data.get(self.key(repo_id), {}))

    def set(self, repo_id: RepoId, config: WorktreeConfig) -> None:
        with self._lock:
            data = self._load()
            data[self.key(repo_id)] = config.to_dict()
            self._save(data)
        logger.debug(f"Saved worktree config for {repo_id}")
