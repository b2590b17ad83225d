"""Global test fixtures and utilities for dsa-tracker tests"""
import random
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from dsa_tracker.db.memory_store import InMemoryStore
from dsa_tracker.models.problem import Difficulty, Problem, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress
from dsa_tracker.models.user import UserProfile
from dsa_tracker.services.tracker_service import TrackerSession


# ============================================================================
# Clock & Notifier
# ============================================================================

class FakeClock:
    """Callable clock that tests can move forward"""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.current += timedelta(days=days, hours=hours)


class RecordingNotifier:
    """Notifier that keeps every message"""

    def __init__(self):
        self.successes = []
        self.errors = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def clock():
    """Clock fixed at 2024-03-15 12:00 UTC"""
    return FakeClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ============================================================================
# User & Data Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-1"


@pytest.fixture
def test_user_profile(test_user_id):
    """Standard test user profile"""
    return UserProfile(user_id=test_user_id, display_name="Test User", daily_goal=1, timezone="UTC")


@pytest.fixture
def make_problem():
    """Factory for catalog entries"""
    counter = {"n": 0}

    def _make(
        topic: str = "Arrays",
        difficulty: Difficulty = Difficulty.EASY,
        xp_reward: int = 10,
        created_by=None,
        **kwargs
    ) -> Problem:
        counter["n"] += 1
        kwargs.setdefault("title", f"Problem {counter['n']}")
        kwargs.setdefault("id", f"p{counter['n']}")
        return Problem(
            topic=topic,
            difficulty=difficulty,
            xp_reward=xp_reward,
            created_by=created_by,
            **kwargs
        )

    return _make


@pytest.fixture
def make_state(test_user_id):
    """Factory for per-user problem states joined with their problem"""

    def _make(problem: Problem, status: ProblemStatus = ProblemStatus.NOT_STARTED, **kwargs) -> UserProblemState:
        return UserProblemState(
            user_id=test_user_id,
            problem_id=problem.id,
            status=status,
            problem=problem,
            **kwargs
        )

    return _make


@pytest.fixture
def make_progress():
    """Factory for daily progress records"""

    def _make(day, achieved: bool = True, **kwargs) -> DailyProgress:
        return DailyProgress(date=day, achieved=achieved, **kwargs)

    return _make


# ============================================================================
# Store & Session Fixtures
# ============================================================================

@pytest.fixture
def memory_store(clock):
    """In-memory store on the fake clock"""
    return InMemoryStore(now=clock)


@pytest.fixture
def session(test_user_profile, memory_store, notifier, clock):
    """TrackerSession over the in-memory store with a seeded rng"""
    return TrackerSession(
        test_user_profile,
        memory_store,
        notifier,
        rng=random.Random(42),
        now=clock
    )


@pytest.fixture
def mock_store():
    """Mock DataStore where every method is an AsyncMock"""
    store = MagicMock()
    for name in (
        "count_user_problems", "get_problems", "create_problem", "update_problem",
        "soft_delete_problem", "get_user_problems", "update_user_problem_status",
        "mark_for_revision", "toggle_bookmark", "update_confidence_level",
        "get_daily_progress", "upsert_daily_progress", "get_user_badges", "unlock_badge",
        "count_code_snippets", "get_code_snippets", "save_code_snippet", "get_revision_sessions",
        "create_revision_session", "get_user_profile", "update_user_profile",
    ):
        setattr(store, name, AsyncMock())
    store.count_user_problems.return_value = 0
    store.get_problems.return_value = []
    store.get_user_problems.return_value = []
    store.get_daily_progress.return_value = []
    store.get_user_badges.return_value = []
    store.get_revision_sessions.return_value = []
    store.count_code_snippets.return_value = 0
    store.get_code_snippets.return_value = []
    store.get_user_profile.return_value = None
    return store


@pytest.fixture
def mock_session(test_user_profile, mock_store, notifier, clock):
    """TrackerSession over a mocked store"""
    return TrackerSession(
        test_user_profile,
        mock_store,
        notifier,
        rng=random.Random(42),
        now=clock
    )
