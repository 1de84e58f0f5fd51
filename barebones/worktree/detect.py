"""Package manager and repository type detection.

Both detections are ordered tables of ``(predicate, result)`` pairs
checked against the canonical worktree; the first match wins.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Callable, List, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Rule = Tuple[Callable[[Path], bool], T]


class PackageManager(str, Enum):
    """Supported package managers; the value is the executable name."""

    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"
    NPM = "npm"


class RepositoryType(str, Enum):
    TURBOREPO = "turborepo"
    NX = "nx"
    LERNA = "lerna"
    WORKSPACE = "workspace"
    STANDARD = "standard"


def has_file(name: str) -> Callable[[Path], bool]:
    """Predicate: ``name`` exists under the checked directory."""
    return lambda root: (root / name).exists()


def declares_workspaces(root: Path) -> bool:
    """Predicate: package.json declares npm/yarn or pnpm workspaces."""
    package_json = root / "package.json"
    if not package_json.exists():
        return False
    try:
        pkg = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read {package_json}: {e}")
        return False
    if not isinstance(pkg, dict):
        return False
    pnpm = pkg.get("pnpm")
    return bool(pkg.get("workspaces") or (isinstance(pnpm, dict) and pnpm.get("workspaces")))


PACKAGE_MANAGER_RULES: List[Rule] = [
    (has_file("pnpm-lock.yaml"), PackageManager.PNPM),
    (has_file("yarn.lock"), PackageManager.YARN),
    (has_file("bun.lockb"), PackageManager.BUN),
    (has_file("package-lock.json"), PackageManager.NPM),
]

REPOSITORY_TYPE_RULES: List[Rule] = [
    (has_file("turbo.json"), RepositoryType.TURBOREPO),
    (has_file("nx.json"), RepositoryType.NX),
    (has_file("lerna.json"), RepositoryType.LERNA),
    (declares_workspaces, RepositoryType.WORKSPACE),
]


def first_match(rules: Sequence[Rule], root: Path, default: T) -> T:
    """Evaluate rules in order and return the first matching result."""
    for predicate, result in rules:
        if predicate(root):
            return result
    return default


def detect_package_manager(
    main_path: Path, default: PackageManager = PackageManager.PNPM
) -> PackageManager:
    """Detect the package manager from lockfiles in the canonical worktree."""
    manager = first_match(PACKAGE_MANAGER_RULES, Path(main_path), default)
    logger.debug(f"Detected package manager {manager.value} in {main_path}")
    return manager


def detect_repository_type(main_path: Path) -> RepositoryType:
    """Detect the monorepo flavour of the canonical worktree."""
    return first_match(REPOSITORY_TYPE_RULES, Path(main_path), RepositoryType.STANDARD)
