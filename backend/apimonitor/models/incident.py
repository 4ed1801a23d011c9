"""Incident models - outage lifecycle and its narrative updates."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow

INCIDENT_STATUSES = ("investigating", "identified", "monitoring", "resolved")
INCIDENT_SEVERITIES = ("minor", "major", "critical")


class Incident(Base):
    """A tracked outage. At most one unresolved incident exists per monitor."""

    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="SET NULL"), nullable=True)
    owner_id = Column(String, nullable=True)
    title = Column(String, nullable=False)
    status = Column(String, default="investigating")
    severity = Column(String, default="minor")
    started_at = Column(DateTime, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    monitor = relationship("Monitor", back_populates="incidents")
    updates = relationship(
        "IncidentUpdate",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentUpdate.created_at",
    )


class IncidentUpdate(Base):
    """Append-only narrative entry carrying the incident status at that point."""

    __tablename__ = "incident_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    incident_id = Column(Integer, ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False)
    message = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    incident = relationship("Incident", back_populates="updates")
