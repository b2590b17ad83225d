"""Unit tests for Pydantic models (dsa_tracker/models/)"""
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from dsa_tracker.models.badge import BadgeDefinition, UnlockedBadge
from dsa_tracker.models.problem import Difficulty, Problem, ProblemMetadata, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate, Streak
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.user import UserProfile


# ============================================================================
# Problem Models
# ============================================================================

class TestProblem:
    """Test catalog entries"""

    def test_defaults(self):
        """Test default id, reward and active flag"""
        problem = Problem(title="Two Sum", difficulty="Easy", topic="Arrays")

        assert problem.id
        assert problem.difficulty == Difficulty.EASY
        assert problem.xp_reward == 10
        assert problem.is_active is True
        assert problem.created_by is None

    def test_title_is_stripped(self):
        """Test surrounding whitespace is removed"""
        problem = Problem(title="  Two Sum ", difficulty="Easy", topic=" Arrays")

        assert problem.title == "Two Sum"
        assert problem.topic == "Arrays"

    def test_blank_title_rejected(self):
        """Test blank titles fail validation"""
        with pytest.raises(ValidationError):
            Problem(title="   ", difficulty="Easy", topic="Arrays")

    def test_negative_xp_rejected(self):
        """Test xp_reward must be non-negative"""
        with pytest.raises(ValidationError):
            Problem(title="Two Sum", difficulty="Easy", topic="Arrays", xp_reward=-5)

    def test_unknown_difficulty_rejected(self):
        """Test difficulty is a closed set"""
        with pytest.raises(ValidationError):
            Problem(title="Two Sum", difficulty="Impossible", topic="Arrays")

    def test_metadata_rejects_unknown_keys(self):
        """Test metadata is a bounded struct"""
        with pytest.raises(ValidationError):
            ProblemMetadata(anything_goes=True)

        meta = ProblemMetadata(leetcode_number=1, company_tags=["Google"])
        assert meta.company_tags == ["Google"]
        assert meta.hints == []


class TestUserProblemState:
    """Test per-user problem state"""

    def test_properties_read_joined_problem(self):
        """Test xp/difficulty/topic come from the joined problem"""
        problem = Problem(title="LRU Cache", difficulty="Medium", topic="Design", xp_reward=25)
        state = UserProblemState(user_id="u", problem_id=problem.id, status="Done", problem=problem)

        assert state.xp_reward == 25
        assert state.difficulty == Difficulty.MEDIUM
        assert state.topic == "Design"
        assert state.is_solved is True

    def test_properties_without_problem(self):
        """Test fallbacks when the catalog entry is missing"""
        state = UserProblemState(user_id="u", problem_id="p")

        assert state.status == ProblemStatus.NOT_STARTED
        assert state.xp_reward == 0
        assert state.difficulty is None
        assert state.topic is None

    @pytest.mark.parametrize("level", [0, 6])
    def test_confidence_out_of_range(self, level):
        """Test confidence must be 1-5"""
        with pytest.raises(ValidationError):
            UserProblemState(user_id="u", problem_id="p", confidence_level=level)

    def test_negative_revision_count_rejected(self):
        with pytest.raises(ValidationError):
            UserProblemState(user_id="u", problem_id="p", revision_count=-1)


# ============================================================================
# Progress Models
# ============================================================================

class TestDailyProgress:
    """Test daily progress records"""

    def test_merge_into_new_record(self):
        """Test merging into nothing creates a fresh record"""
        update = DailyProgressUpdate(
            date=date(2024, 3, 15), solved=1, revised=0, goal=1, revision_goal=0,
            achieved=True, revision_achieved=True, xp_earned=10
        )

        record = update.merge_into(None)

        assert isinstance(record, DailyProgress)
        assert record.solved == 1
        assert record.study_time == 0
        assert record.focus_areas == []

    def test_streak_non_negative(self):
        with pytest.raises(ValidationError):
            Streak(current=-1)


# ============================================================================
# Other Models
# ============================================================================

def test_badge_models_are_frozen():
    """Test badge definitions and unlocks are immutable"""
    badge = BadgeDefinition(type="t", name="n", description="d", icon="i")
    unlocked = UnlockedBadge(user_id="u", badge_type="t", unlocked_at=datetime.now(timezone.utc))

    with pytest.raises(ValidationError):
        badge.name = "other"
    with pytest.raises(ValidationError):
        unlocked.badge_type = "other"


def test_code_snippet_requires_code():
    """Test empty code is rejected"""
    with pytest.raises(ValidationError):
        CodeSnippet(user_id="u", problem_id="p", code="", created_at=datetime.now(timezone.utc))


def test_revision_session_confidence_bounds():
    """Test confidence_before must be 1-5"""
    assert RevisionSession(session_type="daily").confidence_before == 1
    with pytest.raises(ValidationError):
        RevisionSession(session_type="daily", confidence_before=9)


def test_user_profile_defaults():
    """Test profile goal and timezone defaults come from config"""
    profile = UserProfile(user_id="u")

    assert profile.daily_goal == 1
    assert profile.timezone == "UTC"

    with pytest.raises(ValidationError):
        UserProfile(user_id="u", daily_goal=-1)
