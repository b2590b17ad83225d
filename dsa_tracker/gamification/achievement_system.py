"""
Badge System

A fixed catalog of 15 badges, each unlocked once when its threshold is met:
- Milestones (first solve, XP totals)
- Consistency (daily goal streaks)
- Mastery (revision, confidence, interview readiness, difficulty counts)
- Collection (bookmarks, code snippets, completing a whole topic)

Evaluation is pure: it reports which badges newly qualify. Persisting the
unlock is the caller's job, one store call per badge.
"""

from dataclasses import dataclass, field
from typing import Callable, Collection, Dict, Iterable, List, Optional, Sequence
import logging

from dsa_tracker.gamification.xp_system import total_xp
from dsa_tracker.models.badge import BadgeDefinition, BadgeProgress, BadgeStatus, UnlockedBadge
from dsa_tracker.models.problem import Difficulty, Problem, UserProblemState
from dsa_tracker.models.progress import Streak

logger = logging.getLogger(__name__)


BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(type='first_problem', name='First Steps', description='Solved your first problem!', icon='🎯'),
    BadgeDefinition(type='streak_7', name='Week Warrior', description='7-day streak achieved!', icon='🔥'),
    BadgeDefinition(type='streak_30', name='Monthly Master', description='30-day streak achieved!', icon='🏆'),
    BadgeDefinition(type='revision_master', name='Revision Master', description='Revised 50 problems!', icon='📚'),
    BadgeDefinition(type='interview_ready', name='Interview Ready', description='20 problems marked interview-ready!', icon='💼'),
    BadgeDefinition(type='confidence_builder', name='Confidence Builder', description='High confidence on 30 problems!', icon='💪'),
    BadgeDefinition(type='xp_100', name='100 XP Club', description='Earned 100 XP!', icon='⭐'),
    BadgeDefinition(type='xp_500', name='500 XP Hero', description='Earned 500 XP!', icon='💎'),
    BadgeDefinition(type='xp_1000', name='1000 XP Legend', description='Earned 1000 XP!', icon='👑'),
    BadgeDefinition(type='easy_10', name='Easy Explorer', description='Solved 10 easy problems!', icon='🌱'),
    BadgeDefinition(type='medium_10', name='Medium Challenger', description='Solved 10 medium problems!', icon='⚡'),
    BadgeDefinition(type='hard_5', name='Hard Conqueror', description='Solved 5 hard problems!', icon='🗡️'),
    BadgeDefinition(type='topic_master', name='Topic Master', description='Completed all problems in a topic!', icon='🎓'),
    BadgeDefinition(type='bookworm', name='Bookworm', description='Bookmarked 25 problems!', icon='📖'),
    BadgeDefinition(type='code_collector', name='Code Collector', description='Saved 50 code snippets!', icon='💻'),
)

BADGES_BY_TYPE: Dict[str, BadgeDefinition] = {badge.type: badge for badge in BADGE_DEFINITIONS}

HIGH_CONFIDENCE_THRESHOLD = 4


@dataclass
class BadgeCounts:
    """Aggregated counts that badge thresholds are checked against"""
    solved: int = 0
    revised: int = 0
    interview_ready: int = 0
    high_confidence: int = 0
    bookmarked: int = 0
    total_xp: int = 0
    snippets: int = 0
    by_difficulty: Dict[Difficulty, int] = field(default_factory=dict)
    completed_topics: List[str] = field(default_factory=list)


def collect_badge_counts(
    states: Sequence[UserProblemState],
    catalog: Sequence[Problem],
    snippet_count: int
) -> BadgeCounts:
    """
    Aggregate the counts used by badge thresholds

    Args:
        states: User's per-problem states
        catalog: Loaded problem catalog
        snippet_count: Snippets saved across all problems

    Returns:
        BadgeCounts
    """
    solved = [s for s in states if s.is_solved]
    solved_ids = {s.problem_id for s in solved}

    by_difficulty: Dict[Difficulty, int] = {d: 0 for d in Difficulty}
    for state in solved:
        if state.difficulty is not None:
            by_difficulty[state.difficulty] += 1

    # A topic is complete when every catalog problem in it is solved
    topic_problems: Dict[str, List[str]] = {}
    for problem in catalog:
        topic_problems.setdefault(problem.topic, []).append(problem.id)
    completed_topics = [
        topic for topic, ids in topic_problems.items()
        if ids and all(pid in solved_ids for pid in ids)
    ]

    return BadgeCounts(
        solved=len(solved),
        revised=sum(1 for s in states if s.revision_count > 0),
        interview_ready=sum(1 for s in states if s.is_interview_ready),
        high_confidence=sum(1 for s in states if (s.confidence_level or 0) >= HIGH_CONFIDENCE_THRESHOLD),
        bookmarked=sum(1 for s in states if s.is_bookmarked),
        total_xp=total_xp(states),
        snippets=snippet_count,
        by_difficulty=by_difficulty,
        completed_topics=completed_topics,
    )


# badge type -> (current value getter, required value)
_THRESHOLDS: Dict[str, tuple[Callable[[BadgeCounts, Streak], int], int]] = {
    'first_problem': (lambda c, s: c.solved, 1),
    'streak_7': (lambda c, s: s.current, 7),
    'streak_30': (lambda c, s: s.current, 30),
    'revision_master': (lambda c, s: c.revised, 50),
    'interview_ready': (lambda c, s: c.interview_ready, 20),
    'confidence_builder': (lambda c, s: c.high_confidence, 30),
    'xp_100': (lambda c, s: c.total_xp, 100),
    'xp_500': (lambda c, s: c.total_xp, 500),
    'xp_1000': (lambda c, s: c.total_xp, 1000),
    'easy_10': (lambda c, s: c.by_difficulty.get(Difficulty.EASY, 0), 10),
    'medium_10': (lambda c, s: c.by_difficulty.get(Difficulty.MEDIUM, 0), 10),
    'hard_5': (lambda c, s: c.by_difficulty.get(Difficulty.HARD, 0), 5),
    'topic_master': (lambda c, s: len(c.completed_topics), 1),
    'bookworm': (lambda c, s: c.bookmarked, 25),
    'code_collector': (lambda c, s: c.snippets, 50),
}


def is_badge_earned(badge: BadgeDefinition, counts: BadgeCounts, streak: Streak) -> bool:
    """Check a single badge threshold"""
    getter, required = _THRESHOLDS[badge.type]
    return getter(counts, streak) >= required


def evaluate_badges(
    states: Sequence[UserProblemState],
    streak: Streak,
    unlocked: Collection[str],
    snippet_count: int,
    catalog: Sequence[Problem]
) -> List[BadgeDefinition]:
    """
    Find badges that newly qualify for unlocking

    Args:
        states: User's per-problem states
        streak: Current streak
        unlocked: Badge types the user already has
        snippet_count: Snippets saved across all problems
        catalog: Loaded problem catalog

    Returns:
        Badge definitions to unlock, in catalog order. Already unlocked
        badges are never returned.
    """
    counts = collect_badge_counts(states, catalog, snippet_count)

    to_unlock = [
        badge for badge in BADGE_DEFINITIONS
        if badge.type not in unlocked and is_badge_earned(badge, counts, streak)
    ]

    if to_unlock:
        logger.info(f"Badges ready to unlock: {', '.join(b.type for b in to_unlock)}")

    return to_unlock


def badge_statuses(unlocked: Iterable[UnlockedBadge]) -> List[BadgeStatus]:
    """Join the badge catalog with the user's unlock records"""
    unlock_map = {badge.badge_type: badge for badge in unlocked}

    statuses = []
    for definition in BADGE_DEFINITIONS:
        record: Optional[UnlockedBadge] = unlock_map.get(definition.type)
        statuses.append(BadgeStatus(
            type=definition.type,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            unlocked=record is not None,
            unlocked_at=record.unlocked_at if record else None,
        ))
    return statuses


def badge_progress(badge: BadgeDefinition, counts: BadgeCounts, streak: Streak) -> BadgeProgress:
    """
    Calculate progress toward a badge

    Returns:
        BadgeProgress with current/required and a capped percentage
    """
    getter, required = _THRESHOLDS[badge.type]
    current = getter(counts, streak)
    percentage = min(100, int(current / required * 100)) if required > 0 else 0

    return BadgeProgress(
        current=current,
        required=required,
        percentage=percentage,
        description=f"{min(current, required)}/{required}",
    )


def format_badge_unlock_message(badge: BadgeDefinition) -> str:
    """Notification text for a freshly unlocked badge"""
    return f"🎉 Badge unlocked: {badge.name}!"


def format_badge_display(statuses: Sequence[BadgeStatus]) -> str:
    """
    Format badges for display

    Args:
        statuses: Output from badge_statuses()

    Returns:
        Formatted string for display
    """
    unlocked = [s for s in statuses if s.unlocked]
    if not unlocked:
        return "🏆 No badges unlocked yet. Solve a problem to earn your first! 💪"

    lines = [f"🏆 YOUR BADGES ({len(unlocked)}/{len(statuses)})"]
    for status in unlocked:
        lines.append(f"{status.icon} {status.name}: {status.description}")
    return "\n".join(lines)
