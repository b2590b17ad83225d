"""
Statistics & Revision Insights

Pure functions over the loaded catalog and per-user problem states.
"""

from collections import Counter
from datetime import datetime
from typing import Sequence
import logging

from dsa_tracker.gamification.xp_system import calculate_level_from_xp, total_xp
from dsa_tracker.models.problem import Problem, ProblemStatus, UserProblemState
from dsa_tracker.models.stats import RevisionInsights, UserStats
from dsa_tracker.utils.datetime_helpers import to_utc

logger = logging.getLogger(__name__)

RECENTLY_REVISED_LIMIT = 10
TOPIC_WEAKNESS_LIMIT = 5
# Confidence at or below this marks a problem for revision
LOW_CONFIDENCE_THRESHOLD = 3


def calculate_stats(catalog: Sequence[Problem], states: Sequence[UserProblemState]) -> UserStats:
    """
    Aggregate counts, XP, level and completion for a user

    Args:
        catalog: Loaded problem catalog
        states: User's per-problem states

    Returns:
        UserStats
    """
    solved = [s for s in states if s.is_solved]
    xp = total_xp(states)
    level_info = calculate_level_from_xp(xp)

    total = len(catalog)
    progress_percentage = round(len(solved) / total * 100) if total > 0 else 0

    if states:
        confidence_sum = sum(s.confidence_level or 1 for s in states)
        average_confidence = round(confidence_sum / len(states), 1)
    else:
        average_confidence = 0.0

    return UserStats(
        total_problems=total,
        solved_problems=len(solved),
        revised_problems=sum(1 for s in states if s.revision_count > 0),
        interview_ready_problems=sum(1 for s in states if s.is_interview_ready),
        bookmarked_problems=sum(1 for s in states if s.is_bookmarked),
        total_xp=xp,
        level=level_info["current_level"],
        xp_to_next_level=level_info["xp_to_next_level"],
        progress_percentage=progress_percentage,
        average_confidence=average_confidence,
    )


def needs_revision(state: UserProblemState) -> bool:
    """Flagged for revision, or confidence is low (unrated counts as low)"""
    if state.status == ProblemStatus.NEEDS_REVISION:
        return True
    return (state.confidence_level or 0) <= LOW_CONFIDENCE_THRESHOLD


def revision_insights(states: Sequence[UserProblemState]) -> RevisionInsights:
    """
    Summarize what needs revision

    Returns:
        RevisionInsights with the needs-revision count, the 10 most recently
        revised problems and the 5 weakest topics
    """
    flagged = [s for s in states if needs_revision(s)]

    recently_revised = sorted(
        (s for s in states if s.last_revised_at),
        key=lambda s: to_utc(s.last_revised_at),
        reverse=True,
    )[:RECENTLY_REVISED_LIMIT]

    # Problems without a joined catalog entry have no topic to blame
    weaknesses = Counter(s.topic for s in flagged if s.topic)

    return RevisionInsights(
        needs_revision=len(flagged),
        recently_revised=recently_revised,
        topic_weaknesses=weaknesses.most_common(TOPIC_WEAKNESS_LIMIT),
    )
