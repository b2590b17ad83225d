"""Unit tests for TrackerSession"""
from datetime import date, datetime, timezone

import pytest

from dsa_tracker.exceptions import AuthorizationError, ValidationError
from dsa_tracker.models.badge import UnlockedBadge
from dsa_tracker.models.problem import ProblemStatus
from dsa_tracker.models.progress import DailyProgress
from dsa_tracker.models.snippet import RevisionSession

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = date(2024, 3, 15)


# ============================================================================
# Loading Tests
# ============================================================================

@pytest.mark.asyncio
async def test_load_all_data_success(mock_session, mock_store, notifier, make_problem):
    """Test every slice loads and the flags settle"""
    mock_store.get_problems.return_value = [make_problem()]

    loaded = await mock_session.load_all_data()

    assert loaded is True
    assert mock_session.has_loaded_once is True
    assert mock_session.loading is False
    assert len(mock_session.problems) == 1
    assert len(mock_session.user_badges) == 15
    assert notifier.errors == []


@pytest.mark.asyncio
async def test_load_all_data_partial_failure(mock_session, mock_store, notifier, make_problem):
    """Test a failing slice is emptied and one notice is sent"""
    mock_store.get_problems.return_value = [make_problem()]
    mock_store.get_user_badges.side_effect = RuntimeError("badges table missing")
    mock_store.get_revision_sessions.side_effect = RuntimeError("sessions table missing")

    loaded = await mock_session.load_all_data()

    assert loaded is False
    assert notifier.errors == ["Failed to load data"]
    assert mock_session.user_badges == []
    assert mock_session.revision_sessions == []
    assert len(mock_session.problems) == 1
    assert mock_session.loading is False


@pytest.mark.asyncio
async def test_loading_flag_only_on_first_or_forced_load(mock_session, mock_store):
    """Test the loading flag is raised on first load and on force_refresh"""
    seen = []

    async def _record(*args, **kwargs):
        seen.append(mock_session.loading)
        return []

    mock_store.get_user_problems.side_effect = _record

    await mock_session.load_all_data()
    await mock_session.load_all_data()
    await mock_session.load_all_data(force_refresh=True)

    assert seen == [True, False, True]


@pytest.mark.asyncio
async def test_load_problems_prefers_own(mock_session, mock_store, make_problem, test_user_id):
    own = make_problem(created_by=test_user_id)
    mock_store.count_user_problems.return_value = 1
    mock_store.get_problems.return_value = [own]

    assert await mock_session.load_problems() is True

    mock_store.get_problems.assert_called_once_with(user_id=test_user_id)
    assert mock_session.problems == [own]


@pytest.mark.asyncio
async def test_load_problems_example_failure_is_empty(mock_session, mock_store):
    """Test a missing example catalog degrades to empty without failing"""
    mock_store.count_user_problems.side_effect = RuntimeError("count failed")
    mock_store.get_problems.side_effect = RuntimeError("no examples")

    assert await mock_session.load_problems() is True

    mock_store.get_problems.assert_called_once_with(only_examples=True)
    assert mock_session.problems == []


@pytest.mark.asyncio
async def test_load_daily_progress_window_and_streak(mock_session, mock_store, test_user_id):
    """Test the history window ends today and the streak is derived"""
    mock_store.get_daily_progress.return_value = [
        DailyProgress(date=date(2024, 3, 14), achieved=True),
        DailyProgress(date=TODAY, achieved=True),
    ]

    await mock_session.load_daily_progress()

    mock_store.get_daily_progress.assert_called_once_with(test_user_id, date(2023, 12, 16), TODAY)
    assert mock_session.streak.current == 2
    assert set(mock_session.daily_progress) == {date(2024, 3, 14), TODAY}


# ============================================================================
# Status Change Tests
# ============================================================================

@pytest.mark.asyncio
async def test_solving_updates_progress_and_badges(session, memory_store, notifier, make_problem):
    """Test marking Done recomputes today's progress and unlocks badges"""
    problem = await memory_store.create_problem(make_problem(xp_reward=10))
    await session.load_all_data()

    await session.update_problem_status(problem.id, ProblemStatus.DONE)

    today = session.get_today_progress()
    assert today.solved == 1
    assert today.achieved is True
    assert session.streak.current == 1
    assert "first_problem" in session.unlocked_badges
    assert "🎉 Badge unlocked: First Steps!" in notifier.successes
    assert notifier.successes[-1] == "Problem marked as done"


@pytest.mark.asyncio
async def test_in_progress_skips_recalculation(mock_session, mock_store, notifier):
    await mock_session.update_problem_status("p1", ProblemStatus.IN_PROGRESS)

    mock_store.upsert_daily_progress.assert_not_called()
    mock_store.unlock_badge.assert_not_called()
    assert notifier.successes == ["Problem marked as in progress"]


@pytest.mark.asyncio
async def test_status_accepts_plain_string(mock_session, mock_store, test_user_id):
    await mock_session.update_problem_status("p1", "In Progress")

    mock_store.update_user_problem_status.assert_called_once_with(
        test_user_id, "p1", ProblemStatus.IN_PROGRESS, None
    )


@pytest.mark.asyncio
async def test_unknown_status_rejected(mock_session, mock_store):
    with pytest.raises(ValidationError):
        await mock_session.update_problem_status("p1", "Abandoned")

    mock_store.update_user_problem_status.assert_not_called()


@pytest.mark.asyncio
async def test_status_store_failure_notifies(mock_session, mock_store, notifier):
    """Test a failed status write is reported and not raised"""
    mock_store.update_user_problem_status.side_effect = RuntimeError("db down")

    await mock_session.update_problem_status("p1", ProblemStatus.DONE)

    assert notifier.errors == ["Failed to update problem status"]
    mock_store.upsert_daily_progress.assert_not_called()


@pytest.mark.asyncio
async def test_confidence_out_of_range(mock_session, mock_store):
    for level in (0, 6):
        with pytest.raises(ValidationError):
            await mock_session.update_confidence_level("p1", level)

    mock_store.update_confidence_level.assert_not_called()


@pytest.mark.asyncio
async def test_mark_for_revision_recomputes_progress(session, memory_store, make_problem):
    problem = await memory_store.create_problem(make_problem())

    await session.mark_for_revision(problem.id, "redo with two pointers")

    assert session.get_today_progress().revised == 1
    assert session.user_problems[0].revision_count == 1


@pytest.mark.asyncio
async def test_toggle_bookmark_message(mock_session, notifier):
    await mock_session.toggle_bookmark("p1", True)
    await mock_session.toggle_bookmark("p1", False)

    assert notifier.successes == ["Problem bookmarked", "Bookmark removed"]


# ============================================================================
# Catalog Tests
# ============================================================================

@pytest.mark.asyncio
async def test_create_problem_sets_owner(session, test_user_id, make_problem, notifier):
    created = await session.create_problem(make_problem())

    assert created.created_by == test_user_id
    assert [p.id for p in session.problems] == [created.id]
    assert notifier.successes == ["Problem created"]


@pytest.mark.asyncio
async def test_create_problem_failure_reraises(mock_session, mock_store, notifier, make_problem):
    mock_store.create_problem.side_effect = RuntimeError("insert failed")

    with pytest.raises(RuntimeError):
        await mock_session.create_problem(make_problem())

    assert notifier.errors == ["Failed to create problem"]


@pytest.mark.asyncio
async def test_update_problem_failure_reraises(mock_session, mock_store, notifier):
    mock_store.update_problem.side_effect = ValidationError("bad", field="xp_reward")

    with pytest.raises(ValidationError):
        await mock_session.update_problem("p1", {"xp_reward": -1})

    assert notifier.errors == ["Failed to update problem"]


@pytest.mark.asyncio
async def test_delete_problem_not_owner(mock_session, mock_store, notifier):
    """Test archive failures are reported, not raised"""
    mock_store.soft_delete_problem.side_effect = AuthorizationError("not yours", resource="problem")

    await mock_session.delete_problem("p1")

    assert notifier.errors == ["Failed to archive problem"]
    mock_store.get_problems.assert_not_called()


@pytest.mark.asyncio
async def test_delete_problem_success(mock_session, mock_store, notifier):
    await mock_session.delete_problem("p1")

    assert notifier.successes == ["Problem archived successfully!"]
    mock_store.get_user_problems.assert_called_once()


# ============================================================================
# Daily Progress & Goal Tests
# ============================================================================

@pytest.mark.asyncio
async def test_update_today_progress_failure_is_silent(mock_session, mock_store, notifier):
    """Test background progress failures are only logged"""
    mock_store.upsert_daily_progress.side_effect = RuntimeError("db down")

    assert await mock_session.update_today_progress() is None

    assert notifier.errors == []
    assert notifier.successes == []


@pytest.mark.asyncio
async def test_update_daily_goal(session, memory_store, notifier, test_user_id):
    await session.update_daily_goal(3)

    assert session.daily_goal == 3
    assert (await memory_store.get_user_profile(test_user_id)).daily_goal == 3
    assert session.get_today_progress().goal == 3
    assert notifier.successes == ["Daily goal updated to 3 problems"]


@pytest.mark.asyncio
async def test_negative_daily_goal_rejected(mock_session, mock_store):
    with pytest.raises(ValidationError):
        await mock_session.update_daily_goal(-1)

    mock_store.update_user_profile.assert_not_called()


def test_set_revision_goal(mock_session):
    mock_session.set_revision_goal(2)
    assert mock_session.revision_goal == 2

    with pytest.raises(ValidationError):
        mock_session.set_revision_goal(-1)


# ============================================================================
# Badge Tests
# ============================================================================

@pytest.mark.asyncio
async def test_badge_unlock_failure_is_isolated(mock_session, mock_store, notifier, make_problem, make_state):
    """Test one failing unlock does not stop the others"""
    mock_session.user_problems = [
        make_state(make_problem(xp_reward=10, topic=f"T{i}"), ProblemStatus.DONE) for i in range(10)
    ]

    async def _unlock(user_id, badge):
        if badge.type == "first_problem":
            raise RuntimeError("insert failed")
        return UnlockedBadge(user_id=user_id, badge_type=badge.type, unlocked_at=NOW)

    mock_store.unlock_badge.side_effect = _unlock

    unlocked = await mock_session.check_badge_unlocks()

    assert [b.type for b in unlocked] == ["xp_100", "easy_10"]
    assert mock_store.unlock_badge.call_count == 3
    assert "first_problem" not in mock_session.unlocked_badges
    assert notifier.successes == ["🎉 Badge unlocked: 100 XP Club!", "🎉 Badge unlocked: Easy Explorer!"]
    unlocked_statuses = [s.type for s in mock_session.user_badges if s.unlocked]
    assert unlocked_statuses == ["xp_100", "easy_10"]


@pytest.mark.asyncio
async def test_no_unlocks_skips_reload(mock_session, mock_store):
    assert await mock_session.check_badge_unlocks() == []

    mock_store.get_user_badges.assert_not_called()


@pytest.mark.asyncio
async def test_badge_read_failure_keeps_known_unlocks(session, memory_store, notifier, make_problem):
    """Test a failing badge read after an unlock does not announce it again"""
    first = await memory_store.create_problem(make_problem(topic="Arrays"))
    second = await memory_store.create_problem(make_problem(topic="Graphs"))
    await session.load_all_data()

    get_user_badges = memory_store.get_user_badges

    async def _broken(user_id):
        raise RuntimeError("badges table locked")

    memory_store.get_user_badges = _broken
    await session.update_problem_status(first.id, ProblemStatus.DONE)
    memory_store.get_user_badges = get_user_badges

    await session.update_problem_status(second.id, ProblemStatus.DONE)

    assert notifier.successes.count("🎉 Badge unlocked: First Steps!") == 1
    assert "first_problem" in session.unlocked_badges
    assert notifier.errors == []


def test_badge_progress_excludes_unlocked(mock_session):
    mock_session.unlocked_badges = {
        "first_problem": UnlockedBadge(user_id="user-1", badge_type="first_problem", unlocked_at=NOW)
    }

    progress = mock_session.get_badge_progress()

    assert "first_problem" not in progress
    assert progress["streak_7"].required == 7
    assert len(progress) == 14


# ============================================================================
# Snippet & Revision Session Tests
# ============================================================================

@pytest.mark.asyncio
async def test_save_code_snippet(session, memory_store, make_problem, notifier):
    problem = await memory_store.create_problem(make_problem())

    snippet = await session.save_code_snippet(problem.id, "def solve(): pass")

    assert session.code_snippets[problem.id] == [snippet]
    assert session.snippet_count == 1
    assert "Code snippet saved!" in notifier.successes


@pytest.mark.asyncio
async def test_save_code_snippet_failure_reraises(mock_session, mock_store, notifier):
    mock_store.save_code_snippet.side_effect = RuntimeError("insert failed")

    with pytest.raises(RuntimeError):
        await mock_session.save_code_snippet("p1", "x = 1")

    assert notifier.errors == ["Failed to save code snippet"]
    assert mock_session.code_snippets == {}
    assert mock_session.snippet_count == 0


@pytest.mark.asyncio
async def test_load_snippet_count(mock_session, mock_store, test_user_id):
    mock_store.count_code_snippets.return_value = 12

    assert await mock_session.load_snippet_count() is True

    assert mock_session.snippet_count == 12
    mock_store.count_code_snippets.assert_called_once_with(test_user_id)


@pytest.mark.asyncio
async def test_load_snippet_count_failure_is_zero(mock_session, mock_store):
    mock_session.snippet_count = 5
    mock_store.count_code_snippets.side_effect = RuntimeError("db down")

    assert await mock_session.load_snippet_count() is False
    assert mock_session.snippet_count == 0


@pytest.mark.asyncio
async def test_load_code_snippets_failure_is_empty(mock_session, mock_store):
    mock_store.get_code_snippets.side_effect = RuntimeError("db down")

    assert await mock_session.load_code_snippets("p1") == []
    assert mock_session.code_snippets["p1"] == []


@pytest.mark.asyncio
async def test_create_revision_session(session, notifier):
    await session.create_revision_session(RevisionSession(session_type="daily", topics_covered=["Graphs"]))

    assert len(session.revision_sessions) == 1
    assert notifier.successes == ["Revision session started!"]


@pytest.mark.asyncio
async def test_create_revision_session_failure(mock_session, mock_store, notifier):
    mock_store.create_revision_session.side_effect = RuntimeError("db down")

    await mock_session.create_revision_session(RevisionSession(session_type="daily"))

    assert notifier.errors == ["Failed to start revision session"]


# ============================================================================
# Derived Views
# ============================================================================

def test_motivational_message_is_seeded(mock_session):
    """Test the injected rng makes the message reproducible"""
    assert mock_session.get_motivational_message().startswith("💪 Fresh start! ")


@pytest.mark.asyncio
async def test_reset_clears_state(session, memory_store, make_problem):
    await memory_store.create_problem(make_problem())
    await session.load_all_data()

    session.reset()

    assert session.problems == []
    assert session.user_badges == []
    assert session.has_loaded_once is False
    assert session.streak.current == 0
