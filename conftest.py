"""Root conftest for pytest configuration and shared fixtures."""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables. Must be set before any pagesync module import.
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("PAGESYNC_ENVIRONMENT", "test")
os.environ.setdefault("PAGESYNC_LOG_LEVEL", "DEBUG")
os.environ.setdefault("PAGESYNC_REQUEST_TIMEOUT_SECONDS", "5")


# ---------------------------------------------------------------------------
# Shared fake fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_groups():
    """Five groups served by an offset listing with a "more" flag."""
    from pagesync.platform.sources.fake import FakeListing

    return FakeListing([{"id": f"group{i}", "name": f"Group {i}"} for i in range(1, 6)])


@pytest.fixture
def fake_team_members():
    """team1 and team2 with two members each."""
    from pagesync.platform.sources.fake import FakeNestedListing

    return FakeNestedListing(
        {
            "team1": [{"user": {"id": "u1"}}, {"user": {"id": "u2"}}],
            "team2": [{"user": {"id": "u3"}}, {"user": {"id": "u4"}}],
        }
    )
