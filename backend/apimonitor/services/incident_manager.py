"""Incident manager - applies a probe result to a monitor's stored state.

For every completed probe, in this order:

1. insert the health check record,
2. store the new current_status / last_checked_at,
3. fire alerts and open or resolve the monitor's incident.

Persisting before the side effects keeps the stored state consistent if a
later step fails; the caller abandons the monitor for this cycle in that case.
"""
import logging
from typing import Optional, Tuple

from ..datastore import Datastore
from ..models import Monitor
from ..utils.db_utils import utcnow
from .alerter import AlerterService, alerter_service
from .checker import CheckResult

logger = logging.getLogger(__name__)

AUTO_INCIDENT_SEVERITY = "major"
DEFAULT_DOWN_MESSAGE = "Monitor is not responding"
RESOLUTION_MESSAGE = "Monitor recovered and is responding normally"


class IncidentManager:
    """Detects status transitions and drives alerts and the incident lifecycle."""

    def __init__(self, alerter: Optional[AlerterService] = None):
        self.alerter = alerter or alerter_service

    async def handle_result(
        self,
        datastore: Datastore,
        monitor: Monitor,
        result: CheckResult,
        now=None,
    ) -> Tuple[str, str]:
        """Record a probe result and apply its side effects.

        Returns the (previous, new) status pair.
        """
        now = now or utcnow()
        previous_status = monitor.current_status or "unknown"

        await datastore.add_health_check(
            monitor.id,
            result.status,
            result.response_time_ms,
            result.status_code,
            result.error_message,
            now,
        )
        await datastore.update_monitor_status(monitor, result.status, now)

        if result.status == "down":
            # Threshold rules can fire on a later consecutive failure too
            await self.alerter.send_down_alerts(datastore, monitor, result)
            if previous_status != "down":
                logger.info(f"Monitor {monitor.name} went down ({previous_status} -> down)")
                await self._open_incident(datastore, monitor, result, now)
        elif result.status == "up" and previous_status == "down":
            logger.info(f"Monitor {monitor.name} recovered")
            await self.alerter.send_recovery_alerts(datastore, monitor)
            await self._resolve_incident(datastore, monitor, now)

        return previous_status, result.status

    async def _open_incident(self, datastore: Datastore, monitor: Monitor, result: CheckResult, now):
        existing = await datastore.get_open_incident(monitor.id)
        if existing:
            logger.debug(f"Incident {existing.id} already open for {monitor.name}")
            return existing

        incident = await datastore.create_incident(
            monitor,
            title=f"{monitor.name} is down",
            severity=AUTO_INCIDENT_SEVERITY,
            started_at=now,
            message=result.error_message or DEFAULT_DOWN_MESSAGE,
        )
        logger.info(f"Opened incident {incident.id} for {monitor.name}")
        return incident

    async def _resolve_incident(self, datastore: Datastore, monitor: Monitor, now):
        incident = await datastore.get_open_incident(monitor.id)
        if not incident:
            return None

        await datastore.resolve_incident(incident, now, RESOLUTION_MESSAGE)
        logger.info(f"Resolved incident {incident.id} for {monitor.name}")
        return incident


# Global instance
incident_manager = IncidentManager()
