"""Alerter service - evaluates alert rules and records every dispatch attempt."""
import logging
from typing import List, Optional

from ..datastore import Datastore
from ..models import AlertRule, Monitor
from .checker import CheckResult
from .notifier import NotificationDispatcher, SendResult, notification_dispatcher

logger = logging.getLogger(__name__)


def should_fire(recent_statuses: List[str], threshold: int) -> bool:
    """Decide whether a down alert fires for a rule.

    recent_statuses holds the newest health checks first. The rule fires when
    the newest `threshold` checks are all down and the one before them is not,
    i.e. exactly when the outage reaches the threshold, once per outage.
    """
    threshold = max(threshold or 1, 1)
    window = recent_statuses[:threshold]
    if len(window) < threshold or any(status != "down" for status in window):
        return False
    if len(recent_statuses) > threshold and recent_statuses[threshold] == "down":
        return False  # Already fired when the outage crossed the threshold
    return True


def build_down_message(monitor: Monitor, error_message: Optional[str]) -> str:
    return f'Monitor "{monitor.name}" is DOWN: {error_message or "Unknown error"}'


def build_recovery_message(monitor: Monitor) -> str:
    return f'Monitor "{monitor.name}" is now UP and running'


class AlerterService:
    """Sends down/recovery alerts for a monitor's rules.

    Each rule is dispatched on its own: a failing channel is logged as a
    failed AlertLog and never stops the remaining rules.
    """

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher or notification_dispatcher

    async def send_down_alerts(
        self,
        datastore: Datastore,
        monitor: Monitor,
        result: CheckResult,
    ) -> int:
        """Fire rules whose failure threshold was just reached. Returns the number dispatched."""
        rules = await datastore.get_alert_rules(monitor.id)
        if not rules:
            return 0

        # One bounded read covers every rule's window plus the record before it
        window = max(max(rule.trigger_after_failures or 1, 1) for rule in rules) + 1
        recent_statuses = await datastore.get_recent_statuses(monitor.id, window)

        message = build_down_message(monitor, result.error_message)
        dispatched = 0
        for rule in rules:
            if not should_fire(recent_statuses, rule.trigger_after_failures):
                logger.debug(
                    f"Alert suppressed for {monitor.name} on rule {rule.id}: "
                    f"threshold {rule.trigger_after_failures} not reached"
                )
                continue
            await self._dispatch(datastore, rule, monitor, "down", message)
            dispatched += 1
        return dispatched

    async def send_recovery_alerts(self, datastore: Datastore, monitor: Monitor) -> int:
        """Notify every rule that opted into recovery notifications."""
        rules = await datastore.get_alert_rules(monitor.id, recovery_only=True)
        message = build_recovery_message(monitor)
        for rule in rules:
            await self._dispatch(datastore, rule, monitor, "up", message)
        return len(rules)

    async def _dispatch(
        self,
        datastore: Datastore,
        rule: AlertRule,
        monitor: Monitor,
        status: str,
        message: str,
    ):
        try:
            outcome = await self.dispatcher.send(rule.channel, monitor, status, message)
        except Exception as e:
            logger.exception(f"Channel {rule.channel_id} raised while alerting for {monitor.name}")
            outcome = SendResult(success=False, error=str(e) or type(e).__name__)

        if outcome.success:
            await datastore.add_alert_log(monitor.id, rule.channel_id, "sent", message)
        else:
            logger.warning(f"Alert for {monitor.name} via channel {rule.channel_id} failed: {outcome.error}")
            await datastore.add_alert_log(
                monitor.id,
                rule.channel_id,
                "failed",
                f"{message} (delivery failed: {outcome.error})",
            )


# Global instance
alerter_service = AlerterService()
