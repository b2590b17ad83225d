"""
Service layer

- tracker_service.py: per-user session state and actions
- container.py: sign-in/sign-out lifecycle
- notifications.py: outcome messages for user actions
"""

from dsa_tracker.services.container import ServiceContainer
from dsa_tracker.services.notifications import LoggingNotifier, Notifier
from dsa_tracker.services.tracker_service import TrackerSession

__all__ = ["ServiceContainer", "LoggingNotifier", "Notifier", "TrackerSession"]
