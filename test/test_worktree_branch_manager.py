"""Tests for worktree branch manager."""
# pylint: disable=redefined-outer-name

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from barebones.worktree.branch_manager import BranchManager
from barebones.worktree.errors import ToolFailureError
from barebones.worktree.models import Remote

REPO = Path("/repos/acme/widgets")


@pytest.fixture
def branch_manager():
    """Create a branch manager for testing."""
    return BranchManager()


class TestListBranches:
    """Tests for BranchManager.list_branches."""

    @patch("barebones.worktree.process.subprocess.run")
    def test_local_and_remote_branches(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(
            stdout=(
                "refs/heads/main\n"
                "refs/heads/feature-x\n"
                "refs/remotes/origin/HEAD\n"
                "refs/remotes/origin/main\n"
                "refs/remotes/upstream/release/1.0\n"
            ),
            returncode=0,
        )

        branches = branch_manager.list_branches(REPO)

        assert branches == ["main", "feature-x", "origin/main", "upstream/release/1.0"]
        call_args = mock_run.call_args[0][0]
        assert call_args[:3] == ["git", "branch", "-a"]
        assert mock_run.call_args[1]["cwd"] == str(REPO)

    @patch("barebones.worktree.process.subprocess.run")
    def test_ignores_detached_head_entries(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="(HEAD detached at abc123)\nrefs/heads/main\n", returncode=0)

        assert branch_manager.list_branches(REPO) == ["main"]

    @patch("barebones.worktree.process.subprocess.run")
    def test_failure_raises_tool_failure(self, mock_run, branch_manager):
        mock_run.side_effect = subprocess.CalledProcessError(
            128, ["git", "branch"], stderr="fatal: not a git repository"
        )

        with pytest.raises(ToolFailureError, match="not a git repository"):
            branch_manager.list_branches(REPO)

    @patch("barebones.worktree.process.subprocess.run")
    def test_branch_exists_matches_remote_name(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="refs/remotes/origin/feature-x\n", returncode=0)

        assert branch_manager.branch_exists(REPO, "feature-x", "origin")
        assert not branch_manager.branch_exists(REPO, "feature-x", "upstream")


class TestBranchOperations:
    """Tests for branch and remote operations."""

    @patch("barebones.worktree.process.subprocess.run")
    def test_local_branch_exists(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(returncode=0)

        assert branch_manager.local_branch_exists(REPO, "main") is True
        call_args = mock_run.call_args[0][0]
        assert "show-ref" in call_args
        assert "refs/heads/main" in call_args

    @patch("barebones.worktree.process.subprocess.run")
    def test_local_branch_missing(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(returncode=1)

        assert branch_manager.local_branch_exists(REPO, "main") is False

    @patch("barebones.worktree.process.subprocess.run")
    def test_delete_branch_success(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="Deleted branch x", returncode=0)

        assert branch_manager.delete_branch(REPO, "x") is True
        assert mock_run.call_args[0][0] == ["git", "branch", "-D", "x"]

    @patch("barebones.worktree.process.subprocess.run")
    def test_delete_branch_failure_is_not_raised(self, mock_run, branch_manager):
        """Deleting a branch checked out elsewhere reports False instead of raising."""
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ["git", "branch", "-D", "x"], stderr="error: Cannot delete branch 'x' checked out at '/r/y'"
        )

        assert branch_manager.delete_branch(REPO, "x") is False

    @patch("barebones.worktree.process.subprocess.run")
    def test_get_remote_url(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="git@github.com:acme/widgets.git\n", returncode=0)

        assert branch_manager.get_remote_url(REPO) == "git@github.com:acme/widgets.git"

    @patch("barebones.worktree.process.subprocess.run")
    def test_get_remote_url_missing(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="", stderr="error: No such remote 'origin'", returncode=2)

        assert branch_manager.get_remote_url(REPO) is None

    @patch("barebones.worktree.process.subprocess.run")
    def test_list_remotes(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(
            stdout=(
                "origin\tgit@github.com:acme/widgets.git (fetch)\n"
                "origin\tgit@github.com:acme/widgets.git (push)\n"
                "upstream\thttps://github.com/widgets/widgets.git (fetch)\n"
                "upstream\thttps://github.com/widgets/widgets.git (push)\n"
            ),
            returncode=0,
        )

        assert branch_manager.list_remotes(REPO) == [
            Remote("origin", "git@github.com:acme/widgets.git"),
            Remote("upstream", "https://github.com/widgets/widgets.git"),
        ]

    @patch("barebones.worktree.process.subprocess.run")
    def test_add_remote_fetches(self, mock_run, branch_manager):
        mock_run.return_value = MagicMock(stdout="", returncode=0)

        branch_manager.add_remote(REPO, "upstream", "https://example.com/u/w.git")

        commands = [c[0][0] for c in mock_run.call_args_list]
        assert commands == [
            ["git", "remote", "add", "upstream", "https://example.com/u/w.git"],
            ["git", "fetch", "upstream"],
        ]

    @patch("barebones.worktree.process.subprocess.run")
    def test_timeout_is_passed_through(self, mock_run):
        mock_run.return_value = MagicMock(stdout="", returncode=0)

        BranchManager(timeout=15).list_branches(REPO)

        assert mock_run.call_args[1]["timeout"] == 15
