"""HealthCheck model - append-only log of probe results."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class HealthCheck(Base):
    """One probe attempt against a monitor."""

    __tablename__ = "health_checks"
    __table_args__ = (
        Index("ix_health_checks_monitor_checked", "monitor_id", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False)  # up, down
    response_time_ms = Column(Integer, nullable=True)
    status_code = Column(Integer, nullable=True)
    error_message = Column(String, nullable=True)
    checked_at = Column(DateTime, default=utcnow)

    # Relationship
    monitor = relationship("Monitor", back_populates="health_checks")
