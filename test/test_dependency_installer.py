"""Tests for dependency installation."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from barebones.worktree.detect import PackageManager
from barebones.worktree.errors import InstallFailedError
from barebones.worktree.installer import DependencyInstaller


class TestDependencyInstaller:
    """Tests for DependencyInstaller."""

    @patch("barebones.worktree.process.subprocess.run")
    def test_install_with_explicit_manager(self, mock_run):
        mock_run.return_value = MagicMock(stdout="Done", returncode=0)

        DependencyInstaller().install(Path("/r/feat-a"), PackageManager.YARN)

        assert mock_run.call_args[0][0] == ["yarn", "install"]
        assert mock_run.call_args[1]["cwd"] == "/r/feat-a"

    @patch("barebones.worktree.process.subprocess.run")
    def test_install_detects_manager(self, mock_run, tmp_path):
        (tmp_path / "bun.lockb").write_text("")
        mock_run.return_value = MagicMock(stdout="", returncode=0)

        DependencyInstaller().install(tmp_path)

        assert mock_run.call_args[0][0] == ["bun", "install"]

    @patch("barebones.worktree.process.subprocess.run")
    def test_default_manager_without_lockfile(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(stdout="", returncode=0)

        DependencyInstaller(default_manager="npm").install(tmp_path)

        assert mock_run.call_args[0][0] == ["npm", "install"]

    @patch("barebones.worktree.process.subprocess.run")
    def test_failure_carries_exit_code_and_output(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ["pnpm", "install"], output="", stderr="ERR_PNPM_OUTDATED_LOCKFILE"
        )

        with pytest.raises(InstallFailedError) as exc_info:
            DependencyInstaller().install(Path("/r/__main__"), "pnpm")

        assert exc_info.value.exit_code == 1
        assert str(exc_info.value) == "ERR_PNPM_OUTDATED_LOCKFILE"

    @patch("barebones.worktree.process.subprocess.run")
    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "pnpm")

        with pytest.raises(InstallFailedError, match="Could not run 'pnpm'"):
            DependencyInstaller().install(Path("/r/__main__"), "pnpm")

    @patch("barebones.worktree.process.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["pnpm", "install"], 5)

        with pytest.raises(InstallFailedError, match="timed out after 5s"):
            DependencyInstaller(timeout=5).install(Path("/r/__main__"), "pnpm")
