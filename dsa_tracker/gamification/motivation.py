"""
Motivational Messages

Picks a headline from today's progress, the streak and the stats, then
appends a quote. Callers pass their own random.Random so tests can seed it.
"""

import random
from typing import Optional

from dsa_tracker.models.progress import Streak, TodayProgress
from dsa_tracker.models.stats import UserStats

MOTIVATIONAL_QUOTES = (
    "Every expert was once a beginner. Keep coding! 💪",
    "The only way to do great work is to love what you do. 🚀",
    "Success is not final, failure is not fatal: it is the courage to continue that counts. 🌟",
    "Don't watch the clock; do what it does. Keep going. ⏰",
    "The future belongs to those who believe in the beauty of their dreams. ✨",
    "Revision is the key to mastery. Keep reviewing! 📚",
    "Confidence comes from preparation. You've got this! 💼",
    "Every problem solved is a step closer to your dream job! 🎯",
)

# More interview-ready problems than this earns its own headline
INTERVIEW_READY_HEADLINE_THRESHOLD = 10


def get_motivational_message(
    today: TodayProgress,
    streak: Streak,
    stats: UserStats,
    rng: Optional[random.Random] = None
) -> str:
    """
    Build the motivational message for the dashboard

    Priority: both goals > daily goal > active streak > interview-ready > default
    """
    rng = rng or random.Random()
    quote = rng.choice(MOTIVATIONAL_QUOTES)

    if today.achieved and today.revision_achieved:
        return f"🎉 Both goals achieved! {quote}"
    elif today.achieved:
        return f"🎯 Daily goal achieved! {quote}"
    elif streak.current > 0:
        return f"🔥 {streak.current}-day streak! {quote}"
    elif stats.interview_ready_problems > INTERVIEW_READY_HEADLINE_THRESHOLD:
        return f"💼 {stats.interview_ready_problems} problems interview-ready! {quote}"
    else:
        return f"💪 Fresh start! {quote}"
