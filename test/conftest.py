"""Shared pytest configuration and fixtures for barebones tests.

This module provides:
- Test markers for unit and integration tests
- Shared fixtures imported from test/fixtures/
- pytest configuration hooks
"""

import sys
from pathlib import Path

import pytest

# Add test directory to path for imports
test_dir = Path(__file__).parent
if str(test_dir) not in sys.path:
    sys.path.insert(0, str(test_dir))

# Import fixtures from the fixtures package to make them available to all tests
# noqa: E402 - imports must come after sys.path modification
from fixtures.git_fixtures import (  # noqa: E402
    cloned_repo,
    isolated_barebones_env,
    local_git_repo,
    local_master_repo,
    real_managers,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: Pure logic tests with no external commands. Fast, runs everywhere.",
    )
    config.addinivalue_line(
        "markers",
        "integration: Real git commands against temporary repositories.",
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        test_path = str(item.fspath)

        if "/test/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# Re-export fixtures so they're available without explicit imports
__all__ = [
    "cloned_repo",
    "isolated_barebones_env",
    "local_git_repo",
    "local_master_repo",
    "real_managers",
]
