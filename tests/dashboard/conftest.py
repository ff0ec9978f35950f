"""Fixtures and builders for dashboard tests."""
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from uuid6 import uuid7

from dashboard.models import Bookmark, UserProfile

USER_ID = "0192f0c4-0000-7000-8000-000000000001"
BASE_TIME = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)


def build_bookmark(
    title: str = "Example",
    url: str = "https://example.com",
    minutes: int = 0,
    user_id: str = USER_ID,
) -> Bookmark:
    """Build a canonical bookmark created ``minutes`` after a fixed base time."""
    return Bookmark(
        id=str(uuid7()),
        user_id=user_id,
        title=title,
        url=url,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def make_bookmark() -> Callable[..., Bookmark]:
    """Builder for canonical bookmarks owned by the test user."""
    return build_bookmark


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def user() -> UserProfile:
    return UserProfile(id=USER_ID, email="ada@example.com", name="Ada Lovelace")


@pytest.fixture
def bookmarks() -> list[Bookmark]:
    """Three bookmarks, newest first."""
    return [
        build_bookmark("Python docs", "https://docs.python.org", minutes=30),
        build_bookmark("SQLAlchemy", "https://www.sqlalchemy.org", minutes=20),
        build_bookmark("Hacker News", "https://news.ycombinator.com", minutes=10),
    ]
