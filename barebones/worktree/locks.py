"""Per-repository advisory lock."""

import fcntl
import logging
from pathlib import Path
from typing import IO, Optional, Union

from .models import BARE_DIR_NAME

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = "barebones.lock"


class RepositoryLock:
    """Exclusive flock on a file inside the repository's .bare directory.

    flock locks belong to the open file, so two threads of one process
    exclude each other just like two processes do. Not reentrant.
    """

    def __init__(self, repo_root: Union[Path, str]):
        repo_root = Path(repo_root)
        bare_dir = repo_root / BARE_DIR_NAME
        lock_dir = bare_dir if bare_dir.is_dir() else repo_root
        self.lock_path = lock_dir / LOCK_FILE_NAME
        self._file: Optional[IO[str]] = None

    def acquire(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.lock_path, "a", encoding="utf-8")  # pylint: disable=consider-using-with
        try:
            fcntl.flock(f, fcntl.LOCK_EX)
        except OSError:
            f.close()
            raise
        self._file = f
        logger.debug(f"Acquired {self.lock_path}")

    def release(self) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file, fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
        logger.debug(f"Released {self.lock_path}")

    def __enter__(self) -> "RepositoryLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
