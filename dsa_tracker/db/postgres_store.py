"""PostgreSQL data store"""
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import psycopg

from dsa_tracker.db.connection import Database
from dsa_tracker.db.memory_store import PROBLEM_EDITABLE_FIELDS, validate_state_extra
from dsa_tracker.db.store import DataStore
from dsa_tracker.exceptions import (
    AuthorizationError,
    RecordNotFoundError,
    ValidationError,
    wrap_external_exception,
)
from dsa_tracker.models.badge import BadgeDefinition, UnlockedBadge
from dsa_tracker.models.problem import Problem, ProblemMetadata, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress, DailyProgressUpdate
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.user import UserProfile

logger = logging.getLogger(__name__)

PROBLEM_COLUMNS = """
    id, title, difficulty, topic, xp_reward, description, external_url, leetcode_number,
    company_tags, pattern_tags, hints, estimated_time_minutes, created_by, is_active, created_at
"""

USER_PROBLEM_SELECT = """
    SELECT up.user_id, up.problem_id, up.status, up.completed_at, up.last_revised_at,
           up.confidence_level, up.is_bookmarked, up.is_interview_ready, up.revision_count,
           up.personal_notes, up.approach_notes, up.key_insights, up.updated_at,
           p.id AS p_id, p.title AS p_title, p.difficulty AS p_difficulty, p.topic AS p_topic,
           p.xp_reward AS p_xp_reward, p.description AS p_description,
           p.external_url AS p_external_url, p.leetcode_number AS p_leetcode_number,
           p.company_tags AS p_company_tags, p.pattern_tags AS p_pattern_tags, p.hints AS p_hints,
           p.estimated_time_minutes AS p_estimated_time_minutes, p.created_by AS p_created_by,
           p.is_active AS p_is_active, p.created_at AS p_created_at
    FROM user_problems up
    LEFT JOIN problems p ON p.id = up.problem_id
"""

DAILY_PROGRESS_COLUMNS = """
    date, problems_solved, problems_revised, daily_goal, revision_goal, goal_achieved,
    revision_goal_achieved, xp_earned, study_time_minutes, focus_areas, notes
"""

SNIPPET_COLUMNS = "id, user_id, problem_id, code, language, is_solution, notes, created_at"

SESSION_COLUMNS = """
    id, user_id, session_type, problems_revised, confidence_before, topics_covered, notes, created_at
"""

METADATA_FIELDS = tuple(ProblemMetadata.model_fields)


# ==========================================
# Row mapping
# ==========================================

def _row_to_problem(row: dict, prefix: str = "") -> Problem:
    metadata = {name: row[f"{prefix}{name}"] for name in METADATA_FIELDS}
    # NULL arrays come back as None
    for name in ("company_tags", "pattern_tags", "hints"):
        metadata[name] = metadata[name] or []
    return Problem(
        id=str(row[f"{prefix}id"]),
        title=row[f"{prefix}title"],
        difficulty=row[f"{prefix}difficulty"],
        topic=row[f"{prefix}topic"],
        xp_reward=row[f"{prefix}xp_reward"] or 0,
        metadata=ProblemMetadata(**metadata),
        created_by=row[f"{prefix}created_by"],
        is_active=row[f"{prefix}is_active"],
        created_at=row[f"{prefix}created_at"],
    )


def _row_to_state(row: dict) -> UserProblemState:
    problem = _row_to_problem(row, prefix="p_") if row.get("p_id") is not None else None
    return UserProblemState(
        user_id=row["user_id"],
        problem_id=str(row["problem_id"]),
        status=row["status"],
        completed_at=row["completed_at"],
        last_revised_at=row["last_revised_at"],
        confidence_level=row["confidence_level"],
        is_bookmarked=row["is_bookmarked"],
        is_interview_ready=row["is_interview_ready"],
        revision_count=row["revision_count"] or 0,
        personal_notes=row["personal_notes"],
        approach_notes=row["approach_notes"],
        key_insights=row["key_insights"],
        updated_at=row["updated_at"],
        problem=problem,
    )


def _row_to_progress(row: dict) -> DailyProgress:
    return DailyProgress(
        date=row["date"],
        solved=row["problems_solved"] or 0,
        revised=row["problems_revised"] or 0,
        goal=row["daily_goal"] or 0,
        revision_goal=row["revision_goal"] or 0,
        achieved=bool(row["goal_achieved"]),
        revision_achieved=bool(row["revision_goal_achieved"]),
        xp_earned=row["xp_earned"] or 0,
        study_time=row["study_time_minutes"] or 0,
        focus_areas=row["focus_areas"] or [],
        notes=row["notes"],
    )


def _row_to_snippet(row: dict) -> CodeSnippet:
    return CodeSnippet(
        id=str(row["id"]),
        user_id=row["user_id"],
        problem_id=str(row["problem_id"]),
        code=row["code"],
        language=row["language"],
        is_solution=bool(row["is_solution"]),
        notes=row["notes"],
        created_at=row["created_at"],
    )


def _row_to_session(row: dict) -> RevisionSession:
    return RevisionSession(
        id=str(row["id"]),
        user_id=row["user_id"],
        session_type=row["session_type"],
        problems_revised=[str(pid) for pid in row["problems_revised"] or []],
        confidence_before=row["confidence_before"],
        topics_covered=row["topics_covered"] or [],
        notes=row["notes"],
        created_at=row["created_at"],
    )


def _problem_params(problem: Problem) -> Tuple:
    meta = problem.metadata
    return (
        problem.id, problem.title, problem.difficulty.value, problem.topic, problem.xp_reward,
        meta.description, meta.external_url, meta.leetcode_number,
        meta.company_tags, meta.pattern_tags, meta.hints, meta.estimated_time_minutes,
        problem.created_by, problem.is_active,
    )


class PostgresStore(DataStore):
    """DataStore over PostgreSQL"""

    def __init__(self, db: Database):
        self.db = db

    @asynccontextmanager
    async def _cursor(
        self,
        operation: str,
        user_id: Optional[str] = None
    ) -> AsyncGenerator[Tuple[psycopg.AsyncConnection, psycopg.AsyncCursor], None]:
        """Connection and cursor with driver errors mapped to DatabaseError"""
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    yield conn, cur
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation=operation, user_id=user_id) from e

    # ==========================================
    # Problem catalog
    # ==========================================

    async def count_user_problems(self, user_id: str) -> int:
        async with self._cursor("count_user_problems", user_id) as (conn, cur):
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM problems
                WHERE created_by = %s AND is_active = true
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    async def get_problems(self, user_id: Optional[str] = None, only_examples: bool = False) -> List[Problem]:
        query = f"SELECT {PROBLEM_COLUMNS} FROM problems WHERE is_active = true"
        params: Tuple = ()
        if user_id is not None:
            query += " AND created_by = %s"
            params = (user_id,)
        elif only_examples:
            query += " AND created_by IS NULL"
        query += " ORDER BY created_at, title"

        async with self._cursor("get_problems", user_id) as (conn, cur):
            await cur.execute(query, params)
            rows = await cur.fetchall()
            return [_row_to_problem(row) for row in rows]

    async def create_problem(self, problem: Problem) -> Problem:
        async with self._cursor("create_problem", problem.created_by) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO problems (
                    id, title, difficulty, topic, xp_reward, description, external_url, leetcode_number,
                    company_tags, pattern_tags, hints, estimated_time_minutes, created_by, is_active
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {PROBLEM_COLUMNS}
                """,
                _problem_params(problem)
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"Created problem {problem.id} ({problem.title})")
            return _row_to_problem(row)

    async def update_problem(self, problem_id: str, updates: Dict[str, Any]) -> Problem:
        unknown = set(updates) - PROBLEM_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                message=f"Fields cannot be edited: {', '.join(sorted(unknown))}",
                field="updates",
                value=sorted(unknown)
            )

        async with self._cursor("update_problem") as (conn, cur):
            await cur.execute(f"SELECT {PROBLEM_COLUMNS} FROM problems WHERE id = %s", (problem_id,))
            row = await cur.fetchone()
            if not row:
                raise RecordNotFoundError(
                    message=f"Problem {problem_id} not found",
                    record_type="Problem",
                    record_id=problem_id
                )
            current = _row_to_problem(row)
            try:
                updated = Problem.model_validate({**current.model_dump(), **updates})
            except ValueError as e:
                raise ValidationError(message=str(e), field="updates")

            params = _problem_params(updated)
            await cur.execute(
                f"""
                UPDATE problems
                SET title = %s, difficulty = %s, topic = %s, xp_reward = %s, description = %s,
                    external_url = %s, leetcode_number = %s, company_tags = %s, pattern_tags = %s,
                    hints = %s, estimated_time_minutes = %s
                WHERE id = %s
                RETURNING {PROBLEM_COLUMNS}
                """,
                params[1:12] + (problem_id,)
            )
            row = await cur.fetchone()
            await conn.commit()
            return _row_to_problem(row)

    async def soft_delete_problem(self, user_id: str, problem_id: str) -> Problem:
        async with self._cursor("soft_delete_problem", user_id) as (conn, cur):
            await cur.execute("SELECT created_by FROM problems WHERE id = %s", (problem_id,))
            row = await cur.fetchone()
            if not row:
                raise RecordNotFoundError(
                    message=f"Problem {problem_id} not found",
                    record_type="Problem",
                    record_id=problem_id
                )
            if row["created_by"] != user_id:
                raise AuthorizationError(
                    message=f"User {user_id} does not own problem {problem_id}",
                    resource="problem",
                    user_id=user_id
                )

            await cur.execute(
                f"""
                UPDATE problems
                SET is_active = false
                WHERE id = %s AND created_by = %s
                RETURNING {PROBLEM_COLUMNS}
                """,
                (problem_id, user_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"Archived problem {problem_id} for user {user_id}")
            return _row_to_problem(row)

    # ==========================================
    # Per-user problem state
    # ==========================================

    async def get_user_problems(self, user_id: str) -> List[UserProblemState]:
        async with self._cursor("get_user_problems", user_id) as (conn, cur):
            await cur.execute(
                USER_PROBLEM_SELECT + " WHERE up.user_id = %s ORDER BY up.updated_at DESC NULLS LAST",
                (user_id,)
            )
            rows = await cur.fetchall()
            return [_row_to_state(row) for row in rows]

    async def _fetch_state(self, cur: psycopg.AsyncCursor, user_id: str, problem_id: str) -> UserProblemState:
        await cur.execute(
            USER_PROBLEM_SELECT + " WHERE up.user_id = %s AND up.problem_id = %s",
            (user_id, problem_id)
        )
        return _row_to_state(await cur.fetchone())

    async def update_user_problem_status(
        self,
        user_id: str,
        problem_id: str,
        status: ProblemStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> UserProblemState:
        extra = validate_state_extra(extra)

        # Stamp completion/revision only when the status actually changes
        assignments = [
            "status = EXCLUDED.status",
            "updated_at = CURRENT_TIMESTAMP",
            "completed_at = CASE WHEN EXCLUDED.status = 'Done' AND user_problems.status <> 'Done' "
            "THEN CURRENT_TIMESTAMP ELSE user_problems.completed_at END",
            "last_revised_at = CASE WHEN EXCLUDED.status = 'Needs Revision' "
            "AND user_problems.status <> 'Needs Revision' "
            "THEN CURRENT_TIMESTAMP ELSE user_problems.last_revised_at END",
            "revision_count = user_problems.revision_count + CASE WHEN EXCLUDED.status = 'Needs Revision' "
            "AND user_problems.status <> 'Needs Revision' THEN 1 ELSE 0 END",
        ]
        columns = ["user_id", "problem_id", "status", "completed_at", "last_revised_at", "revision_count"]
        values = [
            "%s",
            "%s",
            "%s",
            "CASE WHEN %s = 'Done' THEN CURRENT_TIMESTAMP END",
            "CASE WHEN %s = 'Needs Revision' THEN CURRENT_TIMESTAMP END",
            "CASE WHEN %s = 'Needs Revision' THEN 1 ELSE 0 END",
        ]
        params = (user_id, problem_id) + (status.value,) * 4
        for name in sorted(extra):
            columns.append(name)
            values.append("%s")
            assignments.append(f"{name} = EXCLUDED.{name}")
        params += tuple(extra[name] for name in sorted(extra))

        async with self._cursor("update_user_problem_status", user_id) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO user_problems ({', '.join(columns)})
                VALUES ({', '.join(values)})
                ON CONFLICT (user_id, problem_id) DO UPDATE
                SET {', '.join(assignments)}
                """,
                params
            )
            await conn.commit()
            return await self._fetch_state(cur, user_id, problem_id)

    async def mark_for_revision(self, user_id: str, problem_id: str, notes: str = "") -> UserProblemState:
        async with self._cursor("mark_for_revision", user_id) as (conn, cur):
            await cur.execute(
                """
                INSERT INTO user_problems (user_id, problem_id, status, last_revised_at, revision_count, personal_notes)
                VALUES (%s, %s, 'Needs Revision', CURRENT_TIMESTAMP, 1, NULLIF(%s, ''))
                ON CONFLICT (user_id, problem_id) DO UPDATE
                SET status = 'Needs Revision',
                    last_revised_at = CURRENT_TIMESTAMP,
                    revision_count = user_problems.revision_count + 1,
                    personal_notes = COALESCE(NULLIF(%s, ''), user_problems.personal_notes),
                    updated_at = CURRENT_TIMESTAMP
                """,
                (user_id, problem_id, notes, notes)
            )
            await conn.commit()
            return await self._fetch_state(cur, user_id, problem_id)

    async def _set_state_field(self, user_id: str, problem_id: str, column: str, value: Any) -> UserProblemState:
        async with self._cursor(f"update_{column}", user_id) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO user_problems (user_id, problem_id, {column})
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id, problem_id) DO UPDATE
                SET {column} = EXCLUDED.{column},
                    updated_at = CURRENT_TIMESTAMP
                """,
                (user_id, problem_id, value)
            )
            await conn.commit()
            return await self._fetch_state(cur, user_id, problem_id)

    async def toggle_bookmark(self, user_id: str, problem_id: str, is_bookmarked: bool) -> UserProblemState:
        return await self._set_state_field(user_id, problem_id, "is_bookmarked", is_bookmarked)

    async def update_confidence_level(self, user_id: str, problem_id: str, confidence_level: int) -> UserProblemState:
        return await self._set_state_field(user_id, problem_id, "confidence_level", confidence_level)

    # ==========================================
    # Daily progress
    # ==========================================

    async def get_daily_progress(self, user_id: str, start: date, end: date) -> List[DailyProgress]:
        async with self._cursor("get_daily_progress", user_id) as (conn, cur):
            await cur.execute(
                f"""
                SELECT {DAILY_PROGRESS_COLUMNS}
                FROM daily_progress
                WHERE user_id = %s AND date >= %s AND date <= %s
                ORDER BY date
                """,
                (user_id, start, end)
            )
            rows = await cur.fetchall()
            return [_row_to_progress(row) for row in rows]

    async def upsert_daily_progress(self, user_id: str, update: DailyProgressUpdate) -> DailyProgress:
        async with self._cursor("upsert_daily_progress", user_id) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO daily_progress (
                    user_id, date, problems_solved, problems_revised, daily_goal, revision_goal,
                    goal_achieved, revision_goal_achieved, xp_earned
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (user_id, date) DO UPDATE
                SET problems_solved = EXCLUDED.problems_solved,
                    problems_revised = EXCLUDED.problems_revised,
                    daily_goal = EXCLUDED.daily_goal,
                    revision_goal = EXCLUDED.revision_goal,
                    goal_achieved = EXCLUDED.goal_achieved,
                    revision_goal_achieved = EXCLUDED.revision_goal_achieved,
                    xp_earned = EXCLUDED.xp_earned
                RETURNING {DAILY_PROGRESS_COLUMNS}
                """,
                (
                    user_id, update.date, update.solved, update.revised, update.goal,
                    update.revision_goal, update.achieved, update.revision_achieved, update.xp_earned
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"Upserted daily progress for user {user_id} on {update.date}")
            return _row_to_progress(row)

    # ==========================================
    # Badges
    # ==========================================

    async def get_user_badges(self, user_id: str) -> List[UnlockedBadge]:
        async with self._cursor("get_user_badges", user_id) as (conn, cur):
            await cur.execute(
                """
                SELECT user_id, badge_type, unlocked_at
                FROM user_badges
                WHERE user_id = %s
                ORDER BY unlocked_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [UnlockedBadge(**row) for row in rows]

    async def unlock_badge(self, user_id: str, badge: BadgeDefinition) -> UnlockedBadge:
        async with self._cursor("unlock_badge", user_id) as (conn, cur):
            # Unlocking twice keeps the original timestamp
            await cur.execute(
                """
                INSERT INTO user_badges (user_id, badge_type, badge_name, badge_description, badge_icon)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (user_id, badge_type) DO NOTHING
                """,
                (user_id, badge.type, badge.name, badge.description, badge.icon)
            )
            await cur.execute(
                """
                SELECT user_id, badge_type, unlocked_at
                FROM user_badges
                WHERE user_id = %s AND badge_type = %s
                """,
                (user_id, badge.type)
            )
            row = await cur.fetchone()
            await conn.commit()
            logger.info(f"User {user_id} unlocked badge {badge.type}")
            return UnlockedBadge(**row)

    # ==========================================
    # Code snippets
    # ==========================================

    async def count_code_snippets(self, user_id: str) -> int:
        async with self._cursor("count_code_snippets", user_id) as (conn, cur):
            await cur.execute(
                "SELECT COUNT(*) AS count FROM code_snippets WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    async def get_code_snippets(self, user_id: str, problem_id: str) -> List[CodeSnippet]:
        async with self._cursor("get_code_snippets", user_id) as (conn, cur):
            await cur.execute(
                f"""
                SELECT {SNIPPET_COLUMNS}
                FROM code_snippets
                WHERE user_id = %s AND problem_id = %s
                ORDER BY created_at
                """,
                (user_id, problem_id)
            )
            rows = await cur.fetchall()
            return [_row_to_snippet(row) for row in rows]

    async def save_code_snippet(
        self,
        user_id: str,
        problem_id: str,
        code: str,
        language: str,
        is_solution: bool = False,
        notes: Optional[str] = None
    ) -> CodeSnippet:
        if not code:
            raise ValidationError(message="Code must not be empty", field="code", user_id=user_id)

        async with self._cursor("save_code_snippet", user_id) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO code_snippets (user_id, problem_id, code, language, is_solution, notes)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {SNIPPET_COLUMNS}
                """,
                (user_id, problem_id, code, language, is_solution, notes)
            )
            row = await cur.fetchone()
            await conn.commit()
            return _row_to_snippet(row)

    # ==========================================
    # Revision sessions
    # ==========================================

    async def get_revision_sessions(self, user_id: str) -> List[RevisionSession]:
        async with self._cursor("get_revision_sessions", user_id) as (conn, cur):
            await cur.execute(
                f"""
                SELECT {SESSION_COLUMNS}
                FROM revision_sessions
                WHERE user_id = %s
                ORDER BY created_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [_row_to_session(row) for row in rows]

    async def create_revision_session(self, user_id: str, session: RevisionSession) -> RevisionSession:
        async with self._cursor("create_revision_session", user_id) as (conn, cur):
            await cur.execute(
                f"""
                INSERT INTO revision_sessions (
                    user_id, session_type, problems_revised, confidence_before, topics_covered, notes
                )
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {SESSION_COLUMNS}
                """,
                (
                    user_id, session.session_type, session.problems_revised,
                    session.confidence_before, session.topics_covered, session.notes
                )
            )
            row = await cur.fetchone()
            await conn.commit()
            return _row_to_session(row)

    # ==========================================
    # Profile
    # ==========================================

    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        async with self._cursor("get_user_profile", user_id) as (conn, cur):
            await cur.execute(
                """
                SELECT user_id, display_name, daily_goal, timezone
                FROM user_profiles
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return UserProfile(**row) if row else None

    async def update_user_profile(self, user_id: str, updates: Dict[str, Any]) -> UserProfile:
        current = await self.get_user_profile(user_id) or UserProfile(user_id=user_id)
        try:
            profile = UserProfile.model_validate({**current.model_dump(), **updates, "user_id": user_id})
        except ValueError as e:
            raise ValidationError(message=str(e), field="profile", user_id=user_id)

        async with self._cursor("update_user_profile", user_id) as (conn, cur):
            await cur.execute(
                """
                INSERT INTO user_profiles (user_id, display_name, daily_goal, timezone)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id) DO UPDATE
                SET display_name = EXCLUDED.display_name,
                    daily_goal = EXCLUDED.daily_goal,
                    timezone = EXCLUDED.timezone
                """,
                (profile.user_id, profile.display_name, profile.daily_goal, profile.timezone)
            )
            await conn.commit()
            return profile
