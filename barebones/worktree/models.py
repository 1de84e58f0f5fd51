"""Data models for worktree backend."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

MAIN_WORKTREE_NAME = "__main__"
BARE_DIR_NAME = ".bare"
GITLINK_CONTENTS = f"gitdir: ./{BARE_DIR_NAME}\n"


def main_worktree_path(repo_root: Union[Path, str]) -> Path:
    """Get the path of the canonical worktree of a repository."""
    return Path(repo_root) / MAIN_WORKTREE_NAME


@dataclass
class Repository:
    """A registered repository.

    ``path`` is the root holding ``.bare``, ``.git`` and the worktree
    directories, not a worktree itself.
    """

    id: str
    name: str
    path: Path
    remote_url: Optional[str] = None
    type: str = "standard"
    added_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["path"] = str(self.path)
        data["added_at"] = self.added_at.isoformat()
        data["last_accessed"] = self.last_accessed.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Repository":
        """Create from dictionary."""
        data = data.copy()
        data["path"] = Path(data["path"])
        for key in ("added_at", "last_accessed"):
            if data.get(key):
                data[key] = datetime.fromisoformat(data[key])
            else:
                data.pop(key, None)
        return cls(**data)


@dataclass
class Worktree:
    """One entry of `git worktree list --porcelain`."""

    path: Path
    head: Optional[str] = None
    branch: Optional[str] = None  # Full ref, e.g. refs/heads/feature-x
    bare: bool = False
    detached: bool = False
    commit_message: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def branch_name(self) -> Optional[str]:
        """Short branch name, None when detached."""
        if self.branch and self.branch.startswith("refs/heads/"):
            return self.branch[len("refs/heads/") :]
        return self.branch

    @property
    def is_main(self) -> bool:
        return self.name == MAIN_WORKTREE_NAME

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["path"] = str(self.path)
        return data


@dataclass
class Remote:
    """A configured git remote."""

    name: str
    url: str
