"""
Daily Goal Streak Calculation

A day counts toward a streak when its DailyProgress record has the daily
goal achieved. Streaks are never stored; they are recomputed from the
progress history every time it is loaded.

- Current streak: walks back from today. Today must have an achieved record,
  and every earlier day must follow with no calendar gap.
- Longest streak: the longest run of achieved records on consecutive
  calendar days anywhere in the history.
"""

from typing import Mapping
from datetime import date, timedelta
import logging

from dsa_tracker.models.progress import DailyProgress, Streak

logger = logging.getLogger(__name__)


def calculate_streak(progress: Mapping[date, DailyProgress], today: date) -> Streak:
    """
    Calculate current and longest streak from daily progress history

    Args:
        progress: Daily progress records keyed by user-local date
        today: Today's date in the user's timezone

    Returns:
        Streak with current and longest counts (longest >= current)
    """
    # Most recent first
    sorted_dates = sorted(progress.keys(), reverse=True)

    current = 0
    for rank, day in enumerate(sorted_dates):
        if not progress[day].achieved:
            break
        if (today - day).days != rank:
            break
        current += 1

    longest = 0
    run = 0
    previous = None
    for day in reversed(sorted_dates):
        if not progress[day].achieved:
            run = 0
        elif previous is not None and run > 0 and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    logger.debug(f"Streak over {len(sorted_dates)} days: current={current}, longest={longest}")

    return Streak(current=current, longest=longest)


def format_streak_display(streak: Streak) -> str:
    """
    Format streak for display

    Args:
        streak: Streak from calculate_streak()

    Returns:
        Formatted string for display
    """
    if streak.current == 0 and streak.longest == 0:
        return "No streak yet. Hit your daily goal to start one! 💪"

    line = f"🔥 Current streak: {streak.current} days"
    if streak.longest > streak.current:
        line += f" (best: {streak.longest})"
    return line
