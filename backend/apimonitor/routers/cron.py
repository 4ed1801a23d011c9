"""Cron trigger endpoint - runs one check cycle per authorized call."""
import hmac
import logging

from fastapi import APIRouter, Header, HTTPException, Query

from ..config import settings
from ..schemas.cycle import CycleSummary
from ..services.scheduler import scheduler_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


def verify_cron_secret(authorization: str | None):
    """Reject the call unless it carries "Bearer <CRON_SECRET>".

    With no secret configured every call is rejected.
    """
    if not settings.cron_secret:
        logger.warning("Cron trigger rejected - CRON_SECRET not configured")
        raise HTTPException(status_code=401, detail="Unauthorized")

    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Cron trigger rejected - invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


async def _run_health_check(authorization: str | None, force: bool) -> CycleSummary:
    verify_cron_secret(authorization)

    try:
        summary = await scheduler_service.run_cycle(force=force)
    except Exception as e:
        logger.error(f"Health check cycle failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch monitors")

    logger.info(
        f"Health check cycle: {summary.message} "
        f"(checked={summary.checked}, successful={summary.successful}, failed={summary.failed})"
    )
    return summary


@router.get("/health-check", response_model=CycleSummary)
async def trigger_health_check(
    force: bool = Query(False, description="Check every monitor regardless of interval"),
    authorization: str | None = Header(None),
):
    """Run a check cycle over all due monitors."""
    return await _run_health_check(authorization, force)


@router.post("/health-check", response_model=CycleSummary)
async def trigger_health_check_post(
    force: bool = Query(False, description="Check every monitor regardless of interval"),
    authorization: str | None = Header(None),
):
    """Same as GET, for cron services that only send POST."""
    return await _run_health_check(authorization, force)
