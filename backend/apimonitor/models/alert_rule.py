"""AlertRule model - binds a monitor to a channel with a firing threshold."""
from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class AlertRule(Base):
    """Notify a channel after N consecutive failures, optionally on recovery."""

    __tablename__ = "alert_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    channel_id = Column(Integer, ForeignKey("notification_channels.id", ondelete="CASCADE"), nullable=False)
    trigger_after_failures = Column(Integer, default=1)
    notify_on_recovery = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    monitor = relationship("Monitor", back_populates="alert_rules")
    channel = relationship("NotificationChannel", back_populates="alert_rules")
