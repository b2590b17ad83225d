"""Data-access interface consumed by the tracker session"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from dsa_tracker.models.badge import BadgeDefinition, UnlockedBadge
from dsa_tracker.models.problem import Problem, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.user import UserProfile


class DataStore(ABC):
    """
    Abstract data store for one tracker deployment.

    Every method may raise a DatabaseError subclass. Reads are treated as
    degradable by callers; writes are reported to the user.
    """

    # Problem catalog

    @abstractmethod
    async def count_user_problems(self, user_id: str) -> int:
        """Count active problems created by the user"""

    @abstractmethod
    async def get_problems(self, user_id: Optional[str] = None, only_examples: bool = False) -> List[Problem]:
        """Active problems, optionally only the user's own or only examples"""

    @abstractmethod
    async def create_problem(self, problem: Problem) -> Problem:
        """Insert a catalog entry"""

    @abstractmethod
    async def update_problem(self, problem_id: str, updates: Dict[str, Any]) -> Problem:
        """Edit catalog fields"""

    @abstractmethod
    async def soft_delete_problem(self, user_id: str, problem_id: str) -> Problem:
        """Mark a problem inactive. Only its creator may do this."""

    # Per-user problem state

    @abstractmethod
    async def get_user_problems(self, user_id: str) -> List[UserProblemState]:
        """All states for the user, with the catalog entry joined"""

    @abstractmethod
    async def update_user_problem_status(
        self,
        user_id: str,
        problem_id: str,
        status: ProblemStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> UserProblemState:
        """Set status (creating the state on first change) plus any extra fields"""

    @abstractmethod
    async def mark_for_revision(self, user_id: str, problem_id: str, notes: str = "") -> UserProblemState:
        """Flag for revision and count a revision"""

    @abstractmethod
    async def toggle_bookmark(self, user_id: str, problem_id: str, is_bookmarked: bool) -> UserProblemState:
        """Set the bookmark flag"""

    @abstractmethod
    async def update_confidence_level(self, user_id: str, problem_id: str, confidence_level: int) -> UserProblemState:
        """Set the 1-5 confidence rating"""

    # Daily progress

    @abstractmethod
    async def get_daily_progress(self, user_id: str, start: date, end: date) -> List[DailyProgress]:
        """Records with start <= date <= end"""

    @abstractmethod
    async def upsert_daily_progress(self, user_id: str, update: DailyProgressUpdate) -> DailyProgress:
        """Merge recomputed counters into the day's record"""

    # Badges

    @abstractmethod
    async def get_user_badges(self, user_id: str) -> List[UnlockedBadge]:
        """Unlocked badges"""

    @abstractmethod
    async def unlock_badge(self, user_id: str, badge: BadgeDefinition) -> UnlockedBadge:
        """Record an unlock. Unlocking twice keeps the first record."""

    # Code snippets

    @abstractmethod
    async def count_code_snippets(self, user_id: str) -> int:
        """Count the user's snippets across all problems"""

    @abstractmethod
    async def get_code_snippets(self, user_id: str, problem_id: str) -> List[CodeSnippet]:
        """Snippets for one problem, oldest first"""

    @abstractmethod
    async def save_code_snippet(
        self,
        user_id: str,
        problem_id: str,
        code: str,
        language: str,
        is_solution: bool = False,
        notes: Optional[str] = None
    ) -> CodeSnippet:
        """Append a snippet"""

    # Revision sessions

    @abstractmethod
    async def get_revision_sessions(self, user_id: str) -> List[RevisionSession]:
        """Sessions, newest first"""

    @abstractmethod
    async def create_revision_session(self, user_id: str, session: RevisionSession) -> RevisionSession:
        """Record a revision session"""

    # Profile

    @abstractmethod
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        """Profile, or None if the user has none yet"""

    @abstractmethod
    async def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> UserProfile:
        """Edit profile fields, creating the profile if needed"""
