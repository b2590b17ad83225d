"""Pydantic models for the tracker"""
from dsa_tracker.models.badge import BadgeDefinition, BadgeProgress, BadgeStatus, UnlockedBadge
from dsa_tracker.models.problem import (
    Difficulty,
    Problem,
    ProblemMetadata,
    ProblemStatus,
    UserProblemState,
)
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate, Streak, TodayProgress
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.stats import RevisionInsights, UserStats
from dsa_tracker.models.user import UserProfile

__all__ = [
    "BadgeDefinition",
    "BadgeProgress",
    "BadgeStatus",
    "UnlockedBadge",
    "Difficulty",
    "Problem",
    "ProblemMetadata",
    "ProblemStatus",
    "UserProblemState",
    "DailyProgress",
    "DailyProgressUpdate",
    "Streak",
    "TodayProgress",
    "CodeSnippet",
    "RevisionSession",
    "RevisionInsights",
    "UserStats",
    "UserProfile",
]
