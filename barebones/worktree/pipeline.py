"""Worktree lifecycle orchestration.

Every operation runs its steps strictly in order and reports through a
ProgressReporter. Failures never escape as exceptions; they end the
progress stream with a single error event and the operation returns
None (or False). Completed steps are not rolled back, so a caller can
simply retry.

AddWorktree:
    1. update __main__ from {upstream}/{base}      (Stage.UPDATING)
    2. install dependencies in __main__           (Stage.INSTALLING_MAIN)
    3. create the worktree and its branch         (Stage.CREATING_WORKTREE)
    4. symlink/copy configured files              (Stage.PROPAGATING_FILES)
    5. install dependencies in the new worktree   (Stage.INSTALLING_WORKTREE)

SyncMain runs steps 1 and 2 only.

Steps 1-3 mutate state shared by every worktree of the repository, so
they run under the repository lock; steps 4 and 5 only touch the new
worktree and overlap freely between concurrent calls.
"""

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from .branch_manager import BranchManager
from .config import BareBonesConfig, WorktreeConfig, get_barebones_config
from .detect import PackageManager, detect_repository_type
from .errors import BareBonesError, ProtectedWorktreeError
from .installer import DependencyInstaller
from .locks import RepositoryLock
from .models import MAIN_WORKTREE_NAME, Repository, main_worktree_path
from .progress import ProgressReporter, ProgressSink, Stage
from .propagator import FilePropagator
from .repo_manager import RepositoryCloner
from .storage import JsonWorktreeConfigStore, WorktreeConfigStore
from .worktree_manager import WorktreeManager

logger = logging.getLogger(__name__)

RepoRef = Union[Repository, Path, str]


def repo_root_of(repo: RepoRef) -> Path:
    """Absolute repository root from a registry record or a path.

    Relative and symlinked spellings of one root map to the same path, so
    they find the same stored WorktreeConfig.
    """
    path = repo.path if isinstance(repo, Repository) else repo
    return Path(path).expanduser().resolve()


class WorktreePipeline:
    """Composes cloning, worktree management, propagation and installs."""

    def __init__(
        self,
        config: Optional[BareBonesConfig] = None,
        config_store: Optional[WorktreeConfigStore] = None,
        cloner: Optional[RepositoryCloner] = None,
        worktree_manager: Optional[WorktreeManager] = None,
        propagator: Optional[FilePropagator] = None,
        installer: Optional[DependencyInstaller] = None,
        branch_manager: Optional[BranchManager] = None,
    ):
        self.config = config or get_barebones_config()
        timeout = self.config.command_timeout

        self.branch_manager = branch_manager or BranchManager(timeout=timeout)
        self.config_store = config_store or JsonWorktreeConfigStore(self.config.worktree_config_path)
        self.cloner = cloner or RepositoryCloner(
            self.config.workspace_root, branch_manager=self.branch_manager, timeout=timeout
        )
        self.worktree_manager = worktree_manager or WorktreeManager(
            branch_manager=self.branch_manager, timeout=timeout
        )
        self.propagator = propagator or FilePropagator()
        self.installer = installer or DependencyInstaller(
            PackageManager(self.config.default_package_manager), timeout=timeout
        )

        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    @contextmanager
    def _repository_lock(self, repo_root: Path) -> Iterator[None]:
        if not self.config.lock_repository:
            yield
            return
        with RepositoryLock(repo_root):
            yield

    def _update_and_install_main(
        self, repo_root: Path, wt_config: WorktreeConfig, reporter: ProgressReporter
    ) -> PackageManager:
        """Steps 1 and 2; returns the package manager used."""
        main_path = main_worktree_path(repo_root)
        upstream = wt_config.upstream_remote
        base = wt_config.base_branch

        reporter.enter(Stage.UPDATING, f"Updating {MAIN_WORKTREE_NAME} from {upstream}/{base}...")
        self.worktree_manager.update_main(repo_root, upstream, base)
        reporter.step_done(f"{MAIN_WORKTREE_NAME} updated")

        manager = self.installer.detect(main_path)
        reporter.enter(
            Stage.INSTALLING_MAIN,
            f"Installing dependencies in {MAIN_WORKTREE_NAME} ({manager.value})...",
        )
        self.installer.install(main_path, manager)
        reporter.step_done("Dependencies installed")
        return manager

    def sync_main(self, repo: RepoRef, sink: Optional[ProgressSink] = None) -> bool:
        """Update __main__ and reinstall its dependencies."""
        repo_root = repo_root_of(repo)
        reporter = ProgressReporter(sink, tag="UPDATE-MAIN")
        logger.info(f"[UPDATE-MAIN] Starting update for: {repo_root}")

        try:
            wt_config = self.config_store.get(repo_root)
            with self._repository_lock(repo_root):
                self._update_and_install_main(repo_root, wt_config, reporter)
        except (BareBonesError, OSError) as e:
            logger.error(f"[UPDATE-MAIN] Failed for {repo_root}: {e}")
            reporter.fail(e)
            return False
        except Exception as e:  # pylint: disable=broad-except
            logger.exception(f"[UPDATE-MAIN] Unexpected failure for {repo_root}")
            reporter.fail(e)
            return False

        reporter.complete("Update complete")
        return True

    def add_worktree(
        self,
        repo: RepoRef,
        name: str,
        sink: Optional[ProgressSink] = None,
        branch: Optional[str] = None,
    ) -> Optional[Path]:
        """Create a ready-to-use worktree; returns its path, None on failure."""
        repo_root = repo_root_of(repo)
        main_path = main_worktree_path(repo_root)
        reporter = ProgressReporter(sink, tag="ADD-WORKTREE")
        logger.info(f"[ADD-WORKTREE] Starting {name} in {repo_root}")

        try:
            # Read once; later edits do not affect this worktree
            wt_config = self.config_store.get(repo_root)

            with self._repository_lock(repo_root):
                manager = self._update_and_install_main(repo_root, wt_config, reporter)

                reporter.enter(Stage.CREATING_WORKTREE, f"Creating worktree {name}...")
                worktree_path = self.worktree_manager.add(
                    repo_root,
                    name,
                    branch=branch,
                    upstream_remote=wt_config.upstream_remote,
                    base_branch=wt_config.base_branch,
                )
                reporter.step_done(f"Worktree created at {worktree_path}")

            reporter.enter(Stage.PROPAGATING_FILES, "Setting up worktree files...")
            result = self.propagator.run(wt_config, main_path, worktree_path, on_progress=reporter.info)
            reporter.step_done(
                f"Files set up ({len(result.linked)} linked, {len(result.copied)} copied, "
                f"{len(result.skipped)} skipped)"
            )

            reporter.enter(
                Stage.INSTALLING_WORKTREE,
                f"Installing dependencies in {name} ({manager.value})...",
            )
            self.installer.install(worktree_path, manager)
            reporter.step_done("Dependencies installed")
        except (BareBonesError, OSError) as e:
            logger.error(f"[ADD-WORKTREE] {name} failed at {reporter.stage.value}: {e}")
            reporter.fail(e)
            return None
        except Exception as e:  # pylint: disable=broad-except
            logger.exception(f"[ADD-WORKTREE] {name} failed unexpectedly at {reporter.stage.value}")
            reporter.fail(e)
            return None

        reporter.complete(f"Worktree {name} ready")
        return worktree_path

    def clone_repository(
        self, url: str, target_dir: str, sink: Optional[ProgressSink] = None
    ) -> Optional[Repository]:
        """Clone ``url`` into the bare layout; returns a registry record."""
        reporter = ProgressReporter(sink, tag="CLONE")
        logger.info(f"[CLONE] Starting clone of {url}")

        try:
            reporter.enter(Stage.CLONING, "Starting clone...")
            repo_root = self.cloner.clone_repository(url, target_dir, on_progress=reporter.info)
            reporter.step_done("Clone complete")

            repo_type = detect_repository_type(main_worktree_path(repo_root))
            reporter.info(f"Detected type: {repo_type.value}")
            remote_url = self.branch_manager.get_remote_url(repo_root)
        except (BareBonesError, OSError) as e:
            logger.error(f"[CLONE] Failed to clone {url}: {e}")
            reporter.fail(e)
            return None
        except Exception as e:  # pylint: disable=broad-except
            logger.exception(f"[CLONE] Unexpected failure cloning {url}")
            reporter.fail(e)
            return None

        repository = Repository(
            id=str(uuid.uuid4()),
            name=Path(target_dir).name,
            path=repo_root,
            remote_url=remote_url,
            type=repo_type.value,
        )
        reporter.complete("Repository cloned")
        return repository

    def remove_worktree(self, repo: RepoRef, name: str) -> None:
        """Remove a worktree and its branch.

        Raises:
            ProtectedWorktreeError: ``name`` is the canonical worktree
            WorktreeNotFoundError, WorktreeOpFailedError: see WorktreeManager.remove
        """
        if name == MAIN_WORKTREE_NAME:
            raise ProtectedWorktreeError(name)
        repo_root = repo_root_of(repo)
        with self._repository_lock(repo_root):
            self.worktree_manager.remove(repo_root, name)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers, thread_name_prefix="barebones"
                )
            return self._executor

    def submit_add_worktree(
        self,
        repo: RepoRef,
        name: str,
        sink: Optional[ProgressSink] = None,
        branch: Optional[str] = None,
    ) -> "Future[Optional[Path]]":
        """Run add_worktree on the pipeline's worker pool."""
        return self._get_executor().submit(self.add_worktree, repo, name, sink, branch)

    def submit_sync_main(self, repo: RepoRef, sink: Optional[ProgressSink] = None) -> "Future[bool]":
        """Run sync_main on the pipeline's worker pool."""
        return self._get_executor().submit(self.sync_main, repo, sink)

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None
