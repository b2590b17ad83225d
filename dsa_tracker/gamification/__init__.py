"""
Gamification engine for the DSA tracker

Pure computations over loaded user data:
- Daily goal streaks
- XP and levels
- Badge evaluation
- Daily progress aggregation
- Stats, revision insights and motivational messages
"""

from dsa_tracker.gamification.streak_system import calculate_streak
from dsa_tracker.gamification.xp_system import calculate_level_from_xp, total_xp
from dsa_tracker.gamification.achievement_system import BADGE_DEFINITIONS, evaluate_badges, badge_statuses
from dsa_tracker.gamification.progress import aggregate_daily_progress, today_progress
from dsa_tracker.gamification.insights import calculate_stats, revision_insights
from dsa_tracker.gamification.motivation import get_motivational_message

__all__ = [
    "calculate_streak",
    "calculate_level_from_xp",
    "total_xp",
    "BADGE_DEFINITIONS",
    "evaluate_badges",
    "badge_statuses",
    "aggregate_daily_progress",
    "today_progress",
    "calculate_stats",
    "revision_insights",
    "get_motivational_message",
]
