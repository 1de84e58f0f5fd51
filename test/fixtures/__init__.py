"""Test fixtures for barebones tests."""

# Note: Fixtures are imported directly from modules in conftest.py
# This __init__.py enables the fixtures package to be imported

__all__ = [
    "cloned_repo",
    "isolated_barebones_env",
    "local_git_repo",
    "local_master_repo",
    "real_managers",
]
