"""Services for authentication, checking, scheduling, and alerting."""
from .auth import Authenticator, TokenCache
from .checker import CheckerService
from .scheduler import SchedulerService
from .incident_manager import IncidentManager
from .alerter import AlerterService
from .notifier import NotificationDispatcher

__all__ = [
    "Authenticator",
    "TokenCache",
    "CheckerService",
    "SchedulerService",
    "IncidentManager",
    "AlerterService",
    "NotificationDispatcher",
]
