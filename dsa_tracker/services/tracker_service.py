"""
TrackerSession - Per-user practice tracking state

Owns everything loaded for one signed-in user and every action the user can
take. Derived values (streak, stats, badges to unlock) are recomputed from
the loaded records and never stored as state of their own.

Failure handling:
- Loads: logged, the slice falls back to empty
- create/update problem and snippet saves: notified, then re-raised
- Other user actions: notified, not raised
- Background recomputation (today's progress, badge unlocks): logged only
"""

import asyncio
import logging
import random
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from dsa_tracker import config
from dsa_tracker.db.store import DataStore
from dsa_tracker.exceptions import ValidationError
from dsa_tracker.gamification.achievement_system import (
    BADGES_BY_TYPE,
    badge_progress,
    badge_statuses,
    collect_badge_counts,
    evaluate_badges,
    format_badge_unlock_message,
)
from dsa_tracker.gamification.insights import calculate_stats, revision_insights
from dsa_tracker.gamification.motivation import get_motivational_message
from dsa_tracker.gamification.progress import aggregate_daily_progress, today_progress
from dsa_tracker.gamification.streak_system import calculate_streak
from dsa_tracker.models.badge import BadgeDefinition, BadgeProgress, BadgeStatus, UnlockedBadge
from dsa_tracker.models.problem import Problem, ProblemStatus, UserProblemState
from dsa_tracker.models.progress import DailyProgress, Streak, TodayProgress
from dsa_tracker.models.snippet import CodeSnippet, RevisionSession
from dsa_tracker.models.stats import RevisionInsights, UserStats
from dsa_tracker.models.user import UserProfile
from dsa_tracker.services.notifications import Notifier
from dsa_tracker.utils.datetime_helpers import get_timezone, local_date, now_utc

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5


class TrackerSession:
    """
    State and actions for one signed-in user.

    Responsibilities:
    - Concurrent loading of problems, states, progress, badges and sessions
    - Problem catalog and per-problem status changes
    - Recomputing today's progress and unlocking badges
    - Stats, revision insights and motivational messages
    """

    def __init__(
        self,
        profile: UserProfile,
        store: DataStore,
        notifier: Notifier,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = now_utc
    ):
        """
        Initialize TrackerSession.

        Args:
            profile: Signed-in user's profile (daily goal, timezone)
            store: Data store
            notifier: Receives outcome messages for user actions
            rng: Random source for quote selection
            now: Clock returning the current timezone-aware datetime
        """
        self.profile = profile
        self.store = store
        self.notifier = notifier
        self.rng = rng or random.Random()
        self._now = now
        self.revision_goal = config.DEFAULT_REVISION_GOAL
        self._clear()
        logger.debug(f"TrackerSession initialized for user {profile.user_id}")

    def _clear(self) -> None:
        self.problems: List[Problem] = []
        self.user_problems: List[UserProblemState] = []
        self.daily_progress: Dict[date, DailyProgress] = {}
        self.unlocked_badges: Dict[str, UnlockedBadge] = {}
        self.user_badges: List[BadgeStatus] = []
        self.code_snippets: Dict[str, List[CodeSnippet]] = {}
        self.snippet_count = 0
        self.revision_sessions: List[RevisionSession] = []
        self.streak = Streak()
        self.loading = False
        self.has_loaded_once = False

    @property
    def user_id(self) -> str:
        return self.profile.user_id

    @property
    def daily_goal(self) -> int:
        return self.profile.daily_goal

    def today(self) -> date:
        """Today's date in the user's timezone"""
        return local_date(self._now(), get_timezone(self.profile.timezone))

    def reset(self) -> None:
        """Drop all loaded data"""
        self._clear()
        logger.info(f"Reset tracker data for user {self.user_id}")

    # ==========================================
    # Loading
    # ==========================================

    async def load_all_data(self, force_refresh: bool = False) -> bool:
        """
        Load every slice concurrently.

        A failing slice falls back to empty without affecting the others.

        Returns:
            True if every slice loaded
        """
        if not self.has_loaded_once or force_refresh:
            self.loading = True

        try:
            results = await asyncio.gather(
                self.load_problems(),
                self.load_user_problems(),
                self.load_daily_progress(),
                self.load_user_badges(),
                self.load_revision_sessions(),
                self.load_snippet_count(),
            )
            self.has_loaded_once = True

            if not all(results):
                self.notifier.error("Failed to load data")
                return False
            return True

        finally:
            self.loading = False

    async def load_problems(self) -> bool:
        """Load the user's own problems, or the example catalog if they have none"""
        try:
            try:
                own_count = await self.store.count_user_problems(self.user_id)
            except Exception as e:
                logger.warning(f"Could not count problems for user {self.user_id}: {e}")
                own_count = 0

            if own_count > 0:
                self.problems = await self.store.get_problems(user_id=self.user_id)
            else:
                try:
                    self.problems = await self.store.get_problems(only_examples=True)
                except Exception as e:
                    logger.warning(f"No example problems available: {e}")
                    self.problems = []

            logger.debug(f"Loaded {len(self.problems)} problems for user {self.user_id}")
            return True

        except Exception as e:
            logger.error(f"Error loading problems for user {self.user_id}: {e}", exc_info=True)
            self.problems = []
            return False

    async def load_user_problems(self) -> bool:
        try:
            self.user_problems = await self.store.get_user_problems(self.user_id)
            return True
        except Exception as e:
            logger.error(f"Error loading user problems for user {self.user_id}: {e}", exc_info=True)
            self.user_problems = []
            return False

    async def load_daily_progress(self) -> bool:
        """Load recent daily progress and recompute the streak"""
        today = self.today()
        start = today - timedelta(days=config.PROGRESS_HISTORY_DAYS)

        try:
            records = await self.store.get_daily_progress(self.user_id, start, today)
            self.daily_progress = {record.date: record for record in records}
            self.streak = calculate_streak(self.daily_progress, today)
            return True
        except Exception as e:
            logger.error(f"Error loading daily progress for user {self.user_id}: {e}", exc_info=True)
            self.daily_progress = {}
            self.streak = Streak()
            return False

    async def load_user_badges(self) -> bool:
        try:
            unlocked = await self.store.get_user_badges(self.user_id)
            self.unlocked_badges = {badge.badge_type: badge for badge in unlocked}
            self.user_badges = badge_statuses(unlocked)
            return True
        except Exception as e:
            logger.error(f"Error loading badges for user {self.user_id}: {e}", exc_info=True)
            self.unlocked_badges = {}
            self.user_badges = []
            return False

    async def load_revision_sessions(self) -> bool:
        try:
            self.revision_sessions = await self.store.get_revision_sessions(self.user_id)
            return True
        except Exception as e:
            logger.error(f"Error loading revision sessions for user {self.user_id}: {e}", exc_info=True)
            self.revision_sessions = []
            return False

    async def load_snippet_count(self) -> bool:
        try:
            self.snippet_count = await self.store.count_code_snippets(self.user_id)
            return True
        except Exception as e:
            logger.error(f"Error counting code snippets for user {self.user_id}: {e}", exc_info=True)
            self.snippet_count = 0
            return False

    async def load_code_snippets(self, problem_id: str) -> List[CodeSnippet]:
        try:
            snippets = await self.store.get_code_snippets(self.user_id, problem_id)
        except Exception as e:
            logger.error(f"Error loading code snippets for problem {problem_id}: {e}", exc_info=True)
            snippets = []
        self.code_snippets[problem_id] = snippets
        return snippets

    # ==========================================
    # Problem catalog
    # ==========================================

    async def create_problem(self, problem: Problem) -> Problem:
        """Create a problem owned by the user. Raises on failure."""
        try:
            created = await self.store.create_problem(
                problem.model_copy(update={"created_by": self.user_id})
            )
        except Exception as e:
            logger.error(f"Error creating problem for user {self.user_id}: {e}", exc_info=True)
            self.notifier.error("Failed to create problem")
            raise

        await self.load_problems()
        self.notifier.success("Problem created")
        return created

    async def update_problem(self, problem_id: str, updates: Dict[str, Any]) -> Problem:
        """Edit a problem. Raises on failure."""
        try:
            updated = await self.store.update_problem(problem_id, updates)
        except Exception as e:
            logger.error(f"Error updating problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to update problem")
            raise

        await self.load_problems()
        self.notifier.success("Problem updated")
        return updated

    async def delete_problem(self, problem_id: str) -> None:
        """Archive one of the user's own problems"""
        try:
            await self.store.soft_delete_problem(self.user_id, problem_id)
        except Exception as e:
            logger.error(f"Error archiving problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to archive problem")
            return

        await self.load_problems()
        await self.load_user_problems()
        self.notifier.success("Problem archived successfully!")

    # ==========================================
    # Per-problem progress
    # ==========================================

    async def update_problem_status(
        self,
        problem_id: str,
        status: ProblemStatus,
        additional_data: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Change a problem's status.

        Solving or flagging for revision also recomputes today's progress
        and checks for badge unlocks.
        """
        try:
            status = ProblemStatus(status)
        except ValueError:
            raise ValidationError(
                message=f"Unknown status '{status}'",
                field="status",
                value=status,
                user_id=self.user_id
            )

        try:
            await self.store.update_user_problem_status(self.user_id, problem_id, status, additional_data)
        except Exception as e:
            logger.error(f"Error updating status of problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to update problem status")
            return

        await self.load_user_problems()

        if status in (ProblemStatus.DONE, ProblemStatus.NEEDS_REVISION):
            await self.update_today_progress()
            await self.check_badge_unlocks()

        self.notifier.success(f"Problem marked as {status.value.lower()}")

    async def mark_for_revision(self, problem_id: str, revision_notes: str = "") -> None:
        try:
            await self.store.mark_for_revision(self.user_id, problem_id, revision_notes)
        except Exception as e:
            logger.error(f"Error marking problem {problem_id} for revision: {e}", exc_info=True)
            self.notifier.error("Failed to mark for revision")
            return

        await self.load_user_problems()
        await self.update_today_progress()
        self.notifier.success("Problem marked for revision")

    async def toggle_bookmark(self, problem_id: str, is_bookmarked: bool) -> None:
        try:
            await self.store.toggle_bookmark(self.user_id, problem_id, is_bookmarked)
        except Exception as e:
            logger.error(f"Error toggling bookmark on problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to update bookmark")
            return

        await self.load_user_problems()
        self.notifier.success("Problem bookmarked" if is_bookmarked else "Bookmark removed")

    async def update_confidence_level(self, problem_id: str, confidence_level: int) -> None:
        if not MIN_CONFIDENCE <= confidence_level <= MAX_CONFIDENCE:
            raise ValidationError(
                message=f"Confidence level must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}",
                field="confidence_level",
                value=confidence_level,
                user_id=self.user_id
            )

        try:
            await self.store.update_confidence_level(self.user_id, problem_id, confidence_level)
        except Exception as e:
            logger.error(f"Error updating confidence on problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to update confidence level")
            return

        await self.load_user_problems()
        self.notifier.success("Confidence level updated")

    # ==========================================
    # Goals and daily progress
    # ==========================================

    def set_revision_goal(self, goal: int) -> None:
        if goal < 0:
            raise ValidationError(message="Revision goal must not be negative", field="revision_goal", value=goal)
        self.revision_goal = goal

    async def update_daily_goal(self, new_goal: int) -> None:
        if new_goal < 0:
            raise ValidationError(message="Daily goal must not be negative", field="daily_goal", value=new_goal)

        try:
            self.profile = await self.store.update_user_profile(self.user_id, {"daily_goal": new_goal})
        except Exception as e:
            logger.error(f"Error updating daily goal for user {self.user_id}: {e}", exc_info=True)
            self.notifier.error("Failed to update daily goal")
            return

        await self.update_today_progress()
        self.notifier.success(f"Daily goal updated to {new_goal} problems")

    async def update_today_progress(self) -> Optional[DailyProgress]:
        """
        Recompute and store today's progress, then reload the history.

        Failures are logged and otherwise ignored.
        """
        today = self.today()
        update = aggregate_daily_progress(
            today,
            self.user_problems,
            self.daily_goal,
            self.revision_goal,
            get_timezone(self.profile.timezone),
        )

        try:
            record = await self.store.upsert_daily_progress(self.user_id, update)
        except Exception as e:
            logger.error(f"Error updating daily progress for user {self.user_id}: {e}", exc_info=True)
            return None

        await self.load_daily_progress()
        return record

    # ==========================================
    # Badges
    # ==========================================

    async def check_badge_unlocks(self) -> List[BadgeDefinition]:
        """
        Unlock every badge whose threshold is now met.

        Each unlock is independent: a failure is logged and the badge is
        picked up again on the next check.

        Returns:
            Badges unlocked by this call
        """
        candidates = evaluate_badges(
            self.user_problems,
            self.streak,
            self.unlocked_badges.keys(),
            self.snippet_count,
            self.problems,
        )

        unlocked: List[BadgeDefinition] = []
        for badge in candidates:
            try:
                record = await self.store.unlock_badge(self.user_id, badge)
            except Exception as e:
                logger.error(f"Error unlocking badge {badge.type} for user {self.user_id}: {e}", exc_info=True)
                continue

            self.unlocked_badges[badge.type] = record
            unlocked.append(badge)
            self.notifier.success(format_badge_unlock_message(badge))

        if unlocked:
            self.user_badges = badge_statuses(self.unlocked_badges.values())

        return unlocked

    def get_badge_progress(self) -> Dict[str, BadgeProgress]:
        """Progress toward each badge not yet unlocked"""
        counts = collect_badge_counts(self.user_problems, self.problems, self.snippet_count)
        return {
            badge_type: badge_progress(badge, counts, self.streak)
            for badge_type, badge in BADGES_BY_TYPE.items()
            if badge_type not in self.unlocked_badges
        }

    # ==========================================
    # Code snippets and revision sessions
    # ==========================================

    async def save_code_snippet(
        self,
        problem_id: str,
        code: str,
        language: str = "python",
        is_solution: bool = False,
        notes: Optional[str] = None
    ) -> CodeSnippet:
        """Save a snippet, then check badges. Raises on failure."""
        try:
            snippet = await self.store.save_code_snippet(
                self.user_id, problem_id, code, language, is_solution, notes
            )
        except Exception as e:
            logger.error(f"Error saving code snippet for problem {problem_id}: {e}", exc_info=True)
            self.notifier.error("Failed to save code snippet")
            raise

        self.code_snippets.setdefault(problem_id, []).append(snippet)
        self.snippet_count += 1
        self.notifier.success("Code snippet saved!")
        await self.check_badge_unlocks()
        return snippet

    async def create_revision_session(self, session: RevisionSession) -> None:
        try:
            await self.store.create_revision_session(self.user_id, session)
        except Exception as e:
            logger.error(f"Error creating revision session for user {self.user_id}: {e}", exc_info=True)
            self.notifier.error("Failed to start revision session")
            return

        await self.load_revision_sessions()
        self.notifier.success("Revision session started!")

    # ==========================================
    # Derived views
    # ==========================================

    def get_today_progress(self) -> TodayProgress:
        return today_progress(self.daily_progress, self.today(), self.daily_goal, self.revision_goal)

    def get_stats(self) -> UserStats:
        return calculate_stats(self.problems, self.user_problems)

    def get_revision_insights(self) -> RevisionInsights:
        return revision_insights(self.user_problems)

    def get_motivational_message(self) -> str:
        return get_motivational_message(self.get_today_progress(), self.streak, self.get_stats(), self.rng)
