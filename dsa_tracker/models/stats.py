"""Derived statistics models"""
from pydantic import BaseModel

from dsa_tracker.models.problem import UserProblemState


class UserStats(BaseModel):
    """Aggregate counts, XP and level"""
    total_problems: int = 0
    solved_problems: int = 0
    revised_problems: int = 0
    interview_ready_problems: int = 0
    bookmarked_problems: int = 0
    total_xp: int = 0
    level: int = 1
    xp_to_next_level: int = 100
    progress_percentage: int = 0
    average_confidence: float = 0.0


class RevisionInsights(BaseModel):
    """What needs revising and where the weak topics are"""
    needs_revision: int = 0
    recently_revised: list[UserProblemState] = []
    topic_weaknesses: list[tuple[str, int]] = []
