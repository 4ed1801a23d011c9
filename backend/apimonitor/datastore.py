"""Datastore boundary used by the check cycle.

The scheduler and incident manager only talk to the abstract Datastore, so
the core can run against any storage. SqlAlchemyDatastore is the
implementation backed by the application database.
"""
import abc
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .database import async_session
from .models import (
    AlertLog,
    AlertRule,
    AuthProfile,
    HealthCheck,
    Incident,
    IncidentUpdate,
    Monitor,
    NotificationChannel,
)
from .utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


class Datastore(abc.ABC):
    """Reads and writes needed by one check cycle."""

    @abc.abstractmethod
    async def list_monitors(self) -> List[Monitor]:
        """All monitors, with their auth profile loaded."""

    @abc.abstractmethod
    async def get_auth_profile(self, profile_id: int) -> Optional[AuthProfile]:
        ...

    @abc.abstractmethod
    async def get_auth_profiles(self, profile_ids: Iterable[int]) -> List[AuthProfile]:
        ...

    @abc.abstractmethod
    async def get_notification_channel(self, channel_id: int) -> Optional[NotificationChannel]:
        ...

    @abc.abstractmethod
    async def add_health_check(
        self,
        monitor_id: int,
        status: str,
        response_time_ms: Optional[int],
        status_code: Optional[int],
        error_message: Optional[str],
        checked_at: datetime,
    ) -> HealthCheck:
        ...

    @abc.abstractmethod
    async def update_monitor_status(self, monitor: Monitor, status: str, checked_at: datetime):
        """Persist current_status and last_checked_at, and mirror them on the instance."""

    @abc.abstractmethod
    async def get_recent_statuses(self, monitor_id: int, limit: int) -> List[str]:
        """Statuses of the most recent health checks, newest first."""

    @abc.abstractmethod
    async def get_open_incident(self, monitor_id: int) -> Optional[Incident]:
        ...

    @abc.abstractmethod
    async def create_incident(
        self,
        monitor: Monitor,
        title: str,
        severity: str,
        started_at: datetime,
        message: str,
    ) -> Incident:
        """Insert an investigating incident together with its first update."""

    @abc.abstractmethod
    async def resolve_incident(self, incident: Incident, resolved_at: datetime, message: str) -> Incident:
        """Mark resolved and append the resolution update."""

    @abc.abstractmethod
    async def get_alert_rules(self, monitor_id: int, recovery_only: bool = False) -> List[AlertRule]:
        """Rules for a monitor with their channel loaded."""

    @abc.abstractmethod
    async def add_alert_log(
        self,
        monitor_id: int,
        channel_id: Optional[int],
        status: str,
        message: str,
    ) -> AlertLog:
        ...


class SqlAlchemyDatastore(Datastore):
    """Datastore over an AsyncSession. Every write commits on its own."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self):
        await retry_on_lock(self.session.commit)

    async def list_monitors(self):
        result = await self.session.execute(
            select(Monitor)
            .options(selectinload(Monitor.auth_profile))
            .order_by(Monitor.id)
        )
        return list(result.scalars().all())

    async def get_auth_profile(self, profile_id):
        result = await self.session.execute(
            select(AuthProfile).where(AuthProfile.id == profile_id)
        )
        return result.scalar_one_or_none()

    async def get_auth_profiles(self, profile_ids):
        ids = list(profile_ids)
        if not ids:
            return []
        result = await self.session.execute(
            select(AuthProfile).where(AuthProfile.id.in_(ids))
        )
        return list(result.scalars().all())

    async def get_notification_channel(self, channel_id):
        result = await self.session.execute(
            select(NotificationChannel).where(NotificationChannel.id == channel_id)
        )
        return result.scalar_one_or_none()

    async def add_health_check(self, monitor_id, status, response_time_ms, status_code, error_message, checked_at):
        health_check = HealthCheck(
            monitor_id=monitor_id,
            status=status,
            response_time_ms=response_time_ms,
            status_code=status_code,
            error_message=error_message,
            checked_at=checked_at,
        )
        self.session.add(health_check)
        await self._commit()
        return health_check

    async def update_monitor_status(self, monitor, status, checked_at):
        await self.session.execute(
            update(Monitor)
            .where(Monitor.id == monitor.id)
            .values(current_status=status, last_checked_at=checked_at)
        )
        await self._commit()
        monitor.current_status = status
        monitor.last_checked_at = checked_at

    async def get_recent_statuses(self, monitor_id, limit):
        result = await self.session.execute(
            select(HealthCheck.status)
            .where(HealthCheck.monitor_id == monitor_id)
            .order_by(HealthCheck.checked_at.desc(), HealthCheck.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_open_incident(self, monitor_id):
        result = await self.session.execute(
            select(Incident)
            .where(
                Incident.monitor_id == monitor_id,
                Incident.status != "resolved",
            )
            .order_by(Incident.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_incident(self, monitor, title, severity, started_at, message):
        incident = Incident(
            monitor_id=monitor.id,
            owner_id=monitor.owner_id,
            title=title,
            status="investigating",
            severity=severity,
            started_at=started_at,
        )
        self.session.add(incident)
        await self.session.flush()  # Get incident.id

        self.session.add(IncidentUpdate(
            incident_id=incident.id,
            status=incident.status,
            message=message,
            created_at=started_at,
        ))
        await self._commit()
        return incident

    async def resolve_incident(self, incident, resolved_at, message):
        incident.status = "resolved"
        incident.resolved_at = resolved_at
        self.session.add(incident)
        self.session.add(IncidentUpdate(
            incident_id=incident.id,
            status="resolved",
            message=message,
            created_at=resolved_at,
        ))
        await self._commit()
        return incident

    async def get_alert_rules(self, monitor_id, recovery_only=False):
        query = (
            select(AlertRule)
            .options(selectinload(AlertRule.channel))
            .where(AlertRule.monitor_id == monitor_id)
            .order_by(AlertRule.id)
        )
        if recovery_only:
            query = query.where(AlertRule.notify_on_recovery.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def add_alert_log(self, monitor_id, channel_id, status, message):
        alert_log = AlertLog(
            monitor_id=monitor_id,
            channel_id=channel_id,
            status=status,
            message=message,
        )
        self.session.add(alert_log)
        await self._commit()
        return alert_log


@asynccontextmanager
async def sqlalchemy_datastore() -> AsyncIterator[SqlAlchemyDatastore]:
    """Open a session on the application database and wrap it as a Datastore."""
    async with async_session() as session:
        yield SqlAlchemyDatastore(session)
