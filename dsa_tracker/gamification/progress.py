"""
Daily Progress Aggregation

Recomputes today's counters from the user's problem states. Only today's
record is produced; earlier records are left exactly as stored.
"""

from datetime import date
from typing import Mapping, Sequence
from zoneinfo import ZoneInfo
import logging

from dsa_tracker.models.problem import UserProblemState
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate, TodayProgress
from dsa_tracker.utils.datetime_helpers import local_date

logger = logging.getLogger(__name__)


def aggregate_daily_progress(
    today: date,
    states: Sequence[UserProblemState],
    daily_goal: int,
    revision_goal: int,
    tz: ZoneInfo
) -> DailyProgressUpdate:
    """
    Build today's progress payload

    Args:
        today: Today's date in the user's timezone
        states: All of the user's problem states
        daily_goal: Problems to solve per day
        revision_goal: Problems to revise per day
        tz: User's timezone, used to bucket timestamps into days

    Returns:
        DailyProgressUpdate for today
    """
    solved_today = [
        s for s in states
        if s.is_solved and s.completed_at and local_date(s.completed_at, tz) == today
    ]
    revised_today = [
        s for s in states
        if s.last_revised_at and local_date(s.last_revised_at, tz) == today
    ]

    update = DailyProgressUpdate(
        date=today,
        solved=len(solved_today),
        revised=len(revised_today),
        goal=daily_goal,
        revision_goal=revision_goal,
        achieved=len(solved_today) >= daily_goal,
        revision_achieved=len(revised_today) >= revision_goal,
        xp_earned=sum(s.xp_reward for s in solved_today),
    )

    logger.debug(
        f"Progress for {today}: solved={update.solved}/{daily_goal}, "
        f"revised={update.revised}/{revision_goal}, xp={update.xp_earned}"
    )

    return update


def today_progress(
    progress: Mapping[date, DailyProgress],
    today: date,
    daily_goal: int,
    revision_goal: int
) -> TodayProgress:
    """
    Today's stored progress, with defaults when nothing is recorded yet

    The goal always reflects the user's current daily goal; the revision goal
    comes from the record when one exists.
    """
    record = progress.get(today)
    if record is None:
        return TodayProgress(date=today, goal=daily_goal, revision_goal=revision_goal)

    return TodayProgress(
        date=today,
        solved=record.solved,
        revised=record.revised,
        goal=daily_goal,
        revision_goal=record.revision_goal or revision_goal,
        achieved=record.achieved,
        revision_achieved=record.revision_achieved,
        xp_earned=record.xp_earned,
        study_time=record.study_time,
        focus_areas=list(record.focus_areas),
        notes=record.notes or "",
    )
