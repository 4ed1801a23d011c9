"""Scheduler service - runs check cycles over all due monitors.

A cycle is normally started by an external cron hitting the trigger
endpoint. Setting SCHEDULER_ENABLED runs the same cycle from an in-process
APScheduler interval job instead.

Cycle outline:
- clear the token cache
- pick the monitors that are due
- resolve one token per distinct auth profile, concurrently, before probing
- probe every due monitor concurrently, bounded by MAX_CONCURRENT_CHECKS
- hand each result to the incident manager in the monitor's own session
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from ..datastore import sqlalchemy_datastore
from ..models import AuthProfile, Monitor
from ..schemas.cycle import CycleSummary
from ..utils.db_utils import utcnow
from .auth import Authenticator, TokenCache, TokenResult
from .checker import CheckerService, CheckResult, checker_service
from .incident_manager import IncidentManager, incident_manager

logger = logging.getLogger(__name__)

# A monitor is due once this fraction of its interval has elapsed, so a
# cron firing on the same cadence as the interval never skips a cycle
DUE_TOLERANCE = 0.9


def is_monitor_due(monitor: Monitor, now: datetime, force: bool = False) -> bool:
    """Determine if a monitor is due for checking.

    Args:
        monitor: Monitor with interval_seconds and last_checked_at
        now: Current time (naive UTC)
        force: Bypass eligibility entirely ("run now")

    Returns:
        True if monitor should be checked now
    """
    if force:
        return True

    # Never checked - check immediately
    if monitor.last_checked_at is None:
        return True

    elapsed = (now - monitor.last_checked_at).total_seconds()
    return elapsed >= monitor.interval_seconds * DUE_TOLERANCE


class SchedulerService:
    """Service for running check cycles, on demand or on an interval."""

    def __init__(
        self,
        checker: Optional[CheckerService] = None,
        manager: Optional[IncidentManager] = None,
        datastore_factory: Callable = sqlalchemy_datastore,
        token_cache: Optional[TokenCache] = None,
        max_concurrent_checks: Optional[int] = None,
    ):
        self.checker = checker or checker_service
        self.manager = manager or incident_manager
        self.datastore_factory = datastore_factory
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self.authenticator = Authenticator(self.token_cache)
        self.max_concurrent_checks = max_concurrent_checks or settings.max_concurrent_checks
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the in-process interval trigger."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._scheduled_cycle,
            trigger=IntervalTrigger(seconds=settings.cycle_interval_seconds),
            id="run_cycle",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=settings.cycle_interval_seconds,
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (interval={settings.cycle_interval_seconds}s, "
            f"max_concurrent={self.max_concurrent_checks})"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _scheduled_cycle(self):
        try:
            summary = await self.run_cycle()
            logger.info(f"Scheduled cycle: {summary.message} ({summary.checked} checked, {summary.failed} failed)")
        except Exception as e:
            logger.error(f"Error running scheduled cycle: {e}")

    async def run_cycle(self, force: bool = False) -> CycleSummary:
        """Check every due monitor once.

        Raises only when the monitor listing itself fails; per-monitor
        failures are counted in the summary.
        """
        now = utcnow()
        self.token_cache.clear()

        async with self.datastore_factory() as datastore:
            monitors = await datastore.list_monitors()

        if not monitors:
            return CycleSummary(message="No monitors to check", checked=0)

        due_monitors = [m for m in monitors if is_monitor_due(m, now, force)]
        if not due_monitors:
            return CycleSummary(message="No monitors due for check", checked=0)

        logger.debug(f"Checking {len(due_monitors)} due monitors out of {len(monitors)} total")

        tokens = await self._resolve_tokens(due_monitors)

        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        async def check_with_limit(monitor: Monitor) -> bool:
            async with semaphore:
                try:
                    result = await self._probe(monitor, tokens)
                except Exception as e:
                    logger.error(f"Unexpected error probing monitor {monitor.id}: {e}")
                    result = CheckResult(status="down", error_message=str(e) or type(e).__name__)
            return await self._record(monitor, result, now)

        outcomes = await asyncio.gather(*[check_with_limit(m) for m in due_monitors])

        successful = sum(1 for ok in outcomes if ok)
        return CycleSummary(
            message="Health check completed",
            checked=len(due_monitors),
            successful=successful,
            failed=len(outcomes) - successful,
        )

    async def _resolve_tokens(self, monitors: List[Monitor]) -> Dict[int, TokenResult]:
        """Fetch one token per distinct auth profile used by the due monitors."""
        profiles: Dict[int, AuthProfile] = {}
        for monitor in monitors:
            if monitor.auth_profile is not None:
                profiles[monitor.auth_profile.id] = monitor.auth_profile

        if not profiles:
            return {}

        results = await asyncio.gather(
            *[self.authenticator.get_token(profile) for profile in profiles.values()]
        )
        tokens = dict(zip(profiles.keys(), results))

        for profile_id, result in tokens.items():
            if not result.success:
                logger.warning(f"Token fetch failed for auth profile {profile_id}: {result.error}")
        return tokens

    async def _probe(self, monitor: Monitor, tokens: Dict[int, TokenResult]) -> CheckResult:
        if monitor.auth_profile_id is None:
            return await self.checker.check(monitor)

        token_result = tokens.get(monitor.auth_profile_id)
        if monitor.auth_profile is None or token_result is None:
            return CheckResult(status="down", error_message="Auth failed: Auth profile not found")
        if not token_result.success:
            return CheckResult(
                status="down",
                error_message=f"Auth failed: {token_result.error or 'Unknown error'}",
            )

        return await self.checker.check(
            monitor,
            auth_token=token_result.token,
            auth_profile=monitor.auth_profile,
        )

    async def _record(self, monitor: Monitor, result: CheckResult, now: datetime) -> bool:
        """Apply the result in the monitor's own session. False when persistence failed."""
        try:
            async with self.datastore_factory() as datastore:
                await self.manager.handle_result(datastore, monitor, result, now)
        except Exception as e:
            logger.error(f"Error recording check for monitor {monitor.id}: {e}")
            return False

        logger.debug(f"Monitor {monitor.name}: {result.status}")
        return True


# Global instance
scheduler_service = SchedulerService()
