"""
In-memory data store

Dict-backed implementation of DataStore. Used by the test-suite and for
running the tracker without a database. Nothing is persisted.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

import pydantic

from dsa_tracker.db.store import DataStore
from dsa_tracker.exceptions import AuthorizationError, RecordNotFoundError, ValidationError
from dsa_tracker.models.badge import BadgeDefinition, UnlockedBadge
from dsa_tracker.models.problem import Problem, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.user import UserProfile
from dsa_tracker.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

# Fields callers may set alongside a status change
STATE_EXTRA_FIELDS = frozenset({
    "confidence_level",
    "is_bookmarked",
    "is_interview_ready",
    "personal_notes",
    "approach_notes",
    "key_insights",
})

PROBLEM_EDITABLE_FIELDS = frozenset({"title", "difficulty", "topic", "xp_reward", "metadata"})


def apply_status_change(
    state: UserProblemState,
    status: ProblemStatus,
    now: datetime
) -> Dict[str, Any]:
    """
    Field changes implied by a status transition

    - Entering Done stamps completed_at
    - Entering Needs Revision stamps last_revised_at and counts a revision
    """
    changes: Dict[str, Any] = {"status": status, "updated_at": now}
    if status != state.status:
        if status == ProblemStatus.DONE:
            changes["completed_at"] = now
        elif status == ProblemStatus.NEEDS_REVISION:
            changes["last_revised_at"] = now
            changes["revision_count"] = state.revision_count + 1
    return changes


def validate_state_extra(extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Reject fields that may not be set with a status change"""
    extra = extra or {}
    unknown = set(extra) - STATE_EXTRA_FIELDS
    if unknown:
        raise ValidationError(
            message=f"Unsupported fields: {', '.join(sorted(unknown))}",
            field="additional_data",
            value=sorted(unknown)
        )
    return extra


class InMemoryStore(DataStore):
    """DataStore backed by plain dicts"""

    def __init__(self, now: Callable[[], datetime] = now_utc):
        self._now = now
        self._problems: Dict[str, Problem] = {}
        self._states: Dict[Tuple[str, str], UserProblemState] = {}
        self._progress: Dict[Tuple[str, date], DailyProgress] = {}
        self._badges: Dict[str, Dict[str, UnlockedBadge]] = {}
        self._snippets: Dict[Tuple[str, str], List[CodeSnippet]] = {}
        self._sessions: Dict[str, List[RevisionSession]] = {}
        self._profiles: Dict[str, UserProfile] = {}

    # ==========================================
    # Problem catalog
    # ==========================================

    async def count_user_problems(self, user_id: str) -> int:
        return sum(1 for p in self._problems.values() if p.created_by == user_id and p.is_active)

    async def get_problems(self, user_id: Optional[str] = None, only_examples: bool = False) -> List[Problem]:
        problems = [p for p in self._problems.values() if p.is_active]
        if user_id is not None:
            problems = [p for p in problems if p.created_by == user_id]
        elif only_examples:
            problems = [p for p in problems if p.created_by is None]
        return problems

    async def create_problem(self, problem: Problem) -> Problem:
        stored = problem.model_copy(update={"created_at": problem.created_at or self._now()})
        self._problems[stored.id] = stored
        logger.info(f"Created problem {stored.id} ({stored.title})")
        return stored

    async def update_problem(self, problem_id: str, updates: Dict[str, Any]) -> Problem:
        problem = self._get_problem(problem_id)
        unknown = set(updates) - PROBLEM_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                message=f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                field="updates",
                value=sorted(unknown)
            )
        try:
            updated = Problem.model_validate({**problem.model_dump(), **updates})
        except pydantic.ValidationError as e:
            raise ValidationError(message=str(e), field="updates")
        self._problems[problem_id] = updated
        return updated

    async def soft_delete_problem(self, user_id: str, problem_id: str) -> Problem:
        problem = self._get_problem(problem_id)
        if problem.created_by != user_id:
            raise AuthorizationError(
                message=f"User {user_id} does not own problem {problem_id}",
                resource="problem",
                user_id=user_id
            )
        archived = problem.model_copy(update={"is_active": False})
        self._problems[problem_id] = archived
        logger.info(f"Archived problem {problem_id} for user {user_id}")
        return archived

    def _get_problem(self, problem_id: str) -> Problem:
        problem = self._problems.get(problem_id)
        if problem is None:
            raise RecordNotFoundError(
                message=f"Problem {problem_id} not found",
                record_type="Problem",
                record_id=problem_id
            )
        return problem

    # ==========================================
    # Per-user problem state
    # ==========================================

    async def get_user_problems(self, user_id: str) -> List[UserProblemState]:
        return [
            self._joined(state)
            for (uid, _), state in self._states.items()
            if uid == user_id
        ]

    async def update_user_problem_status(
        self,
        user_id: str,
        problem_id: str,
        status: ProblemStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> UserProblemState:
        extra = validate_state_extra(extra)
        state = self._get_or_create_state(user_id, problem_id)
        changes = apply_status_change(state, status, self._now())
        changes.update(extra)
        return self._save_state(state, changes)

    async def mark_for_revision(self, user_id: str, problem_id: str, notes: str = "") -> UserProblemState:
        state = self._get_or_create_state(user_id, problem_id)
        now = self._now()
        changes: Dict[str, Any] = {
            "status": ProblemStatus.NEEDS_REVISION,
            "last_revised_at": now,
            "revision_count": state.revision_count + 1,
            "updated_at": now,
        }
        if notes:
            changes["personal_notes"] = notes
        return self._save_state(state, changes)

    async def toggle_bookmark(self, user_id: str, problem_id: str, is_bookmarked: bool) -> UserProblemState:
        state = self._get_or_create_state(user_id, problem_id)
        return self._save_state(state, {"is_bookmarked": is_bookmarked, "updated_at": self._now()})

    async def update_confidence_level(self, user_id: str, problem_id: str, confidence_level: int) -> UserProblemState:
        state = self._get_or_create_state(user_id, problem_id)
        return self._save_state(state, {"confidence_level": confidence_level, "updated_at": self._now()})

    def _get_or_create_state(self, user_id: str, problem_id: str) -> UserProblemState:
        self._get_problem(problem_id)
        key = (user_id, problem_id)
        if key not in self._states:
            self._states[key] = UserProblemState(user_id=user_id, problem_id=problem_id)
            logger.debug(f"Created state for user {user_id}, problem {problem_id}")
        return self._states[key]

    def _save_state(self, state: UserProblemState, changes: Dict[str, Any]) -> UserProblemState:
        try:
            updated = UserProblemState.model_validate({**state.model_dump(exclude={"problem"}), **changes})
        except pydantic.ValidationError as e:
            raise ValidationError(message=str(e), field="user_problem")
        self._states[(state.user_id, state.problem_id)] = updated
        return self._joined(updated)

    def _joined(self, state: UserProblemState) -> UserProblemState:
        return state.model_copy(update={"problem": self._problems.get(state.problem_id)})

    # ==========================================
    # Daily progress
    # ==========================================

    async def get_daily_progress(self, user_id: str, start: date, end: date) -> List[DailyProgress]:
        return sorted(
            (p for (uid, day), p in self._progress.items() if uid == user_id and start <= day <= end),
            key=lambda p: p.date
        )

    async def upsert_daily_progress(self, user_id: str, update: DailyProgressUpdate) -> DailyProgress:
        key = (user_id, update.date)
        record = update.merge_into(self._progress.get(key))
        self._progress[key] = record
        return record

    def put_daily_progress(self, user_id: str, record: DailyProgress) -> None:
        """Seed a full record, including study time and focus areas"""
        self._progress[(user_id, record.date)] = record

    # ==========================================
    # Badges
    # ==========================================

    async def get_user_badges(self, user_id: str) -> List[UnlockedBadge]:
        return list(self._badges.get(user_id, {}).values())

    async def unlock_badge(self, user_id: str, badge: BadgeDefinition) -> UnlockedBadge:
        user_badges = self._badges.setdefault(user_id, {})
        if badge.type not in user_badges:
            user_badges[badge.type] = UnlockedBadge(
                user_id=user_id,
                badge_type=badge.type,
                unlocked_at=self._now()
            )
            logger.info(f"User {user_id} unlocked badge {badge.type}")
        return user_badges[badge.type]

    # ==========================================
    # Code snippets
    # ==========================================

    async def count_code_snippets(self, user_id: str) -> int:
        return sum(len(items) for (owner, _), items in self._snippets.items() if owner == user_id)

    async def get_code_snippets(self, user_id: str, problem_id: str) -> List[CodeSnippet]:
        return list(self._snippets.get((user_id, problem_id), []))

    async def save_code_snippet(
        self,
        user_id: str,
        problem_id: str,
        code: str,
        language: str,
        is_solution: bool = False,
        notes: Optional[str] = None
    ) -> CodeSnippet:
        self._get_problem(problem_id)
        try:
            snippet = CodeSnippet(
                user_id=user_id,
                problem_id=problem_id,
                code=code,
                language=language,
                created_at=self._now(),
                is_solution=is_solution,
                notes=notes
            )
        except pydantic.ValidationError as e:
            raise ValidationError(message=str(e), field="code_snippet")
        self._snippets.setdefault((user_id, problem_id), []).append(snippet)
        return snippet

    # ==========================================
    # Revision sessions
    # ==========================================

    async def get_revision_sessions(self, user_id: str) -> List[RevisionSession]:
        return sorted(self._sessions.get(user_id, []), key=lambda s: s.created_at, reverse=True)

    async def create_revision_session(self, user_id: str, session: RevisionSession) -> RevisionSession:
        stored = session.model_copy(update={
            "id": session.id or str(uuid4()),
            "user_id": user_id,
            "created_at": session.created_at or self._now(),
        })
        self._sessions.setdefault(user_id, []).append(stored)
        return stored

    # ==========================================
    # Profile
    # ==========================================

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)

    async def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> UserProfile:
        current = self._profiles.get(user_id) or UserProfile(user_id=user_id)
        try:
            profile = UserProfile.model_validate({**current.model_dump(), **updates, "user_id": user_id})
        except pydantic.ValidationError as e:
            raise ValidationError(message=str(e), field="profile")
        self._profiles[user_id] = profile
        return profile
