"""Tests for worktree repository cloner."""
# pylint: disable=redefined-outer-name

from unittest.mock import patch

import pytest

from barebones.worktree.errors import RepositoryExistsError, ToolFailureError
from barebones.worktree.repo_manager import RepositoryCloner, extract_owner


class TestExtractOwner:
    """Tests for owner extraction from remote URLs."""

    def test_ssh_url(self):
        assert extract_owner("git@github.com:acme/widgets.git") == "acme"

    def test_https_url(self):
        assert extract_owner("https://github.com/acme/widgets.git") == "acme"
        assert extract_owner("https://gitlab.example.com/acme/widgets") == "acme"

    def test_ssh_scheme_url(self):
        assert extract_owner("ssh://git@github.com/acme/widgets.git") == "acme"

    def test_url_with_credentials(self):
        assert extract_owner("https://token@github.com/acme/widgets.git") == "acme"

    def test_local_path_falls_back_to_user(self, monkeypatch):
        monkeypatch.setenv("USER", "alice")

        assert extract_owner("/srv/git/widgets.git") == "alice"

    def test_no_user_env(self, monkeypatch):
        monkeypatch.delenv("USER", raising=False)

        assert extract_owner("/srv/git/widgets.git") == "user"


@pytest.fixture
def cloner(tmp_path):
    return RepositoryCloner(tmp_path / "GitHub")


class TestRepositoryCloner:
    """Tests for RepositoryCloner without running git."""

    def test_get_repo_path(self, cloner, tmp_path):
        assert cloner.get_repo_path("acme", "widgets") == (tmp_path / "GitHub" / "acme" / "widgets").resolve()

    def test_existing_bare_repository_raises(self, cloner):
        repo_path = cloner.get_repo_path("acme", "widgets")
        (repo_path / ".bare").mkdir(parents=True)

        with pytest.raises(RepositoryExistsError) as exc_info:
            cloner.clone_repository("git@github.com:acme/widgets.git", "widgets")

        assert exc_info.value.path == repo_path

    @patch("barebones.worktree.repo_manager.stream_command")
    def test_failed_clone_removes_created_directory(self, mock_stream, cloner):
        mock_stream.side_effect = ToolFailureError(
            ["git", "clone"], 128, "fatal: repository 'x' does not exist"
        )

        with pytest.raises(ToolFailureError, match="does not exist"):
            cloner.clone_repository("git@github.com:acme/widgets.git", "widgets")

        assert not cloner.get_repo_path("acme", "widgets").exists()

    @patch("barebones.worktree.repo_manager.stream_command")
    def test_failed_clone_keeps_preexisting_directory(self, mock_stream, cloner):
        repo_path = cloner.get_repo_path("acme", "widgets")
        repo_path.mkdir(parents=True)
        (repo_path / "notes.txt").write_text("keep me")

        def partial_clone(args, cwd, on_line, timeout):
            (repo_path / ".bare").mkdir()
            raise ToolFailureError(args, 128, "fatal: early EOF")

        mock_stream.side_effect = partial_clone

        with pytest.raises(ToolFailureError):
            cloner.clone_repository("git@github.com:acme/widgets.git", "widgets")

        assert (repo_path / "notes.txt").exists()
        assert not (repo_path / ".bare").exists()

    @patch("barebones.worktree.repo_manager.stream_command")
    def test_clone_output_is_forwarded(self, mock_stream, cloner):
        def fake_clone(args, cwd, on_line, timeout):
            on_line("Cloning into bare repository '.bare'...")
            raise ToolFailureError(args, 1, "stop")

        mock_stream.side_effect = fake_clone
        lines = []

        with pytest.raises(ToolFailureError):
            cloner.clone_repository("git@github.com:acme/widgets.git", "widgets", on_progress=lines.append)

        assert lines == ["Cloning into bare repository '.bare'..."]
        assert mock_stream.call_args[0][0] == [
            "git", "clone", "--bare", "git@github.com:acme/widgets.git", ".bare",
        ]
