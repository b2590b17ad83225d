"""
Service Container - Dependency Injection Container

Holds the shared infrastructure (store, notifier, random source, clock) and
the tracker session of the signed-in user. A session exists only between
sign_in() and sign_out().
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional
import logging
import random

from dsa_tracker.db.store import DataStore
from dsa_tracker.exceptions import NotSignedInError
from dsa_tracker.models.user import UserProfile
from dsa_tracker.services.notifications import LoggingNotifier, Notifier
from dsa_tracker.utils.datetime_helpers import now_utc

if TYPE_CHECKING:
    from dsa_tracker.services.tracker_service import TrackerSession

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Dependency injection container for the tracker.

    Infrastructure dependencies are injected. The session is created on
    sign-in and dropped on sign-out.
    """

    store: DataStore
    notifier: Notifier = field(default_factory=LoggingNotifier)
    rng: random.Random = field(default_factory=random.Random)
    now: Callable[[], datetime] = now_utc

    _session: Optional["TrackerSession"] = field(default=None, init=False, repr=False)

    @property
    def is_signed_in(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> "TrackerSession":
        """Get the signed-in user's TrackerSession"""
        if self._session is None:
            raise NotSignedInError(operation="session")
        return self._session

    async def sign_in(self, user_id: str, load: bool = True) -> "TrackerSession":
        """
        Start a session for the user.

        Uses the stored profile, or a default one if the user has none.
        Any previous session is discarded first.
        """
        from dsa_tracker.services.tracker_service import TrackerSession

        if self._session is not None:
            self.sign_out()

        try:
            profile = await self.store.get_user_profile(user_id)
        except Exception as e:
            logger.warning(f"Could not load profile for user {user_id}, using defaults: {e}")
            profile = None

        self._session = TrackerSession(
            profile or UserProfile(user_id=user_id),
            self.store,
            self.notifier,
            rng=self.rng,
            now=self.now
        )
        logger.info(f"User {user_id} signed in")

        if load:
            await self._session.load_all_data()
        return self._session

    def sign_out(self) -> None:
        """Drop the current session and all of its loaded data"""
        if self._session is None:
            return
        user_id = self._session.user_id
        self._session.reset()
        self._session = None
        logger.info(f"User {user_id} signed out")

    async def update_profile(self, updates: Dict[str, Any]) -> UserProfile:
        """Persist profile changes for the signed-in user"""
        session = self.session
        session.profile = await self.store.update_user_profile(session.user_id, updates)
        return session.profile
