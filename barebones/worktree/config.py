"""Configuration management for worktree backend."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import tomli
import tomli_w


def _get_state_base() -> Path:
    """Get the base state directory, honoring XDG_STATE_HOME."""
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return Path(xdg_state) / "barebones"
    return Path.home() / ".bare-bones"


def _get_workspace_base() -> Path:
    return Path.home() / "GitHub"


@dataclass
class WorktreeConfig:
    """Per-repository file propagation settings.

    Read when a worktree is created; editing it does not touch worktrees
    that already exist.
    """

    symlink: List[str] = field(default_factory=list)
    copy: List[str] = field(default_factory=list)
    upstream_remote: str = "origin"
    base_branch: str = "main"

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "symlink": list(self.symlink),
            "copy": list(self.copy),
            "upstreamRemote": self.upstream_remote,
            "baseBranch": self.base_branch,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "WorktreeConfig":
        """Create from dictionary, missing keys fall back to defaults.

        Anything other than a dict (e.g. a null entry) yields the defaults.
        """
        if not isinstance(data, dict):
            return cls()
        return cls(
            symlink=list(data.get("symlink") or []),
            copy=list(data.get("copy") or []),
            upstream_remote=data.get("upstreamRemote") or "origin",
            base_branch=data.get("baseBranch") or "main",
        )


@dataclass
class BareBonesConfig:
    """Global settings for barebones."""

    workspace_root: Union[Path, str] = field(default_factory=_get_workspace_base)
    state_dir: Union[Path, str] = field(default_factory=_get_state_base)
    default_package_manager: str = "pnpm"
    command_timeout: Optional[float] = None  # Seconds, per external command
    lock_repository: bool = True
    max_workers: int = 4

    def __post_init__(self):
        """Ensure paths are Path objects and expand user."""
        if isinstance(self.workspace_root, str):
            self.workspace_root = Path(self.workspace_root).expanduser()
        if isinstance(self.state_dir, str):
            self.state_dir = Path(self.state_dir).expanduser()

    @property
    def worktree_config_path(self) -> Path:
        return Path(self.state_dir) / "worktree-config.json"

    @property
    def log_path(self) -> Path:
        return Path(self.state_dir) / "bare.log"

    def to_dict(self) -> Dict:
        """Convert to dictionary for TOML serialization."""
        section: Dict = {
            "workspace_root": str(self.workspace_root),
            "state_dir": str(self.state_dir),
            "default_package_manager": self.default_package_manager,
            "lock_repository": self.lock_repository,
            "max_workers": self.max_workers,
        }
        # TOML has no null
        if self.command_timeout is not None:
            section["command_timeout"] = self.command_timeout
        return {"barebones": section}

    @classmethod
    def from_dict(cls, data: Dict) -> "BareBonesConfig":
        """Create from dictionary."""
        section = data.get("barebones", {})

        return cls(
            workspace_root=Path(section.get("workspace_root", _get_workspace_base())).expanduser(),
            state_dir=Path(section.get("state_dir", _get_state_base())).expanduser(),
            default_package_manager=section.get("default_package_manager", "pnpm"),
            command_timeout=section.get("command_timeout"),
            lock_repository=section.get("lock_repository", True),
            max_workers=section.get("max_workers", 4),
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    config_dir = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return config_dir / "barebones" / "config.toml"


def load_config() -> Dict:
    """Load configuration from file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    with open(config_path, "rb") as f:
        return tomli.load(f)


def save_config(config: Dict) -> None:
    """Save configuration to file."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)


def get_barebones_config() -> BareBonesConfig:
    """Get global configuration, loading from file if exists."""
    config_data = load_config()
    return BareBonesConfig.from_dict(config_data)
