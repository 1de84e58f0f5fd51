"""Tests for the per-repository lock."""

import threading
import time

from barebones.worktree.locks import RepositoryLock


def test_lock_file_lives_in_bare_dir(tmp_path):
    (tmp_path / ".bare").mkdir()

    assert RepositoryLock(tmp_path).lock_path == tmp_path / ".bare" / "barebones.lock"


def test_lock_file_without_bare_dir(tmp_path):
    assert RepositoryLock(tmp_path).lock_path == tmp_path / "barebones.lock"


def test_threads_exclude_each_other(tmp_path):
    (tmp_path / ".bare").mkdir()
    active = []
    overlaps = []
    guard = threading.Lock()

    def critical_section():
        with RepositoryLock(tmp_path):
            with guard:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
            time.sleep(0.05)
            with guard:
                active.pop()

    threads = [threading.Thread(target=critical_section) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlaps == []


def test_release_is_idempotent(tmp_path):
    lock = RepositoryLock(tmp_path)
    lock.acquire()
    lock.release()
    lock.release()

    with RepositoryLock(tmp_path):
        pass
