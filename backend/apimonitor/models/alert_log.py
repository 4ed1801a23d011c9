"""AlertLog model - log of dispatched alerts."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class AlertLog(Base):
    """Record of an alert sent (or attempted) through a notification channel."""

    __tablename__ = "alert_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    channel_id = Column(Integer, ForeignKey("notification_channels.id", ondelete="SET NULL"), nullable=True)
    status = Column(String, nullable=False)  # sent, failed
    message = Column(String, nullable=False)  # Includes failure detail when delivery failed
    sent_at = Column(DateTime, default=utcnow)

    # Relationship
    monitor = relationship("Monitor", back_populates="alert_logs")
