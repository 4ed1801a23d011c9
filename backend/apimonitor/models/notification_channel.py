"""NotificationChannel model - alert destinations."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class NotificationChannel(Base):
    """A Slack/Discord webhook or an email address to notify."""

    __tablename__ = "notification_channels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # slack, discord, email
    config = Column(JSON, default=dict)  # {"webhook_url": ...} or {"email": ...}
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    alert_rules = relationship("AlertRule", back_populates="channel", cascade="all, delete-orphan")
