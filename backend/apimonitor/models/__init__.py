"""Database models."""
from .auth_profile import AuthProfile
from .monitor import Monitor
from .health_check import HealthCheck
from .incident import Incident, IncidentUpdate
from .notification_channel import NotificationChannel
from .alert_rule import AlertRule
from .alert_log import AlertLog

__all__ = [
    "AuthProfile",
    "Monitor",
    "HealthCheck",
    "Incident",
    "IncidentUpdate",
    "NotificationChannel",
    "AlertRule",
    "AlertLog",
]
