"""Monitor model - HTTP(S) endpoints being checked."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class Monitor(Base):
    """A monitored HTTP(S) endpoint, optionally behind a login-based auth profile."""

    __tablename__ = "monitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String, nullable=True)  # Owning user, managed outside the core
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    method = Column(String, default="GET")  # GET, POST, HEAD
    interval_seconds = Column(Integer, default=300)
    current_status = Column(String, default="unknown")  # up, down, unknown
    last_checked_at = Column(DateTime, nullable=True)
    auth_profile_id = Column(Integer, ForeignKey("auth_profiles.id", ondelete="SET NULL"), nullable=True)
    skip_ssl_verify = Column(Boolean, default=False)
    is_public = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    auth_profile = relationship("AuthProfile", back_populates="monitors")
    health_checks = relationship("HealthCheck", back_populates="monitor", cascade="all, delete-orphan")
    incidents = relationship("Incident", back_populates="monitor")
    alert_rules = relationship("AlertRule", back_populates="monitor", cascade="all, delete-orphan")
    alert_logs = relationship("AlertLog", back_populates="monitor", cascade="all, delete-orphan")
