"""Notification channel API endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..datastore import SqlAlchemyDatastore
from ..models import Monitor
from ..schemas.notification import ChannelTestResponse
from ..services.notifier import notification_dispatcher
from ..utils.db_utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

TEST_MESSAGE = (
    "This is a test notification from API Monitor. "
    "If you see this, your notification channel is configured correctly!"
)


def _test_monitor() -> Monitor:
    # Transient, never added to a session
    return Monitor(
        name="Test Monitor",
        url="https://example.com",
        method="GET",
        interval_seconds=300,
        current_status="up",
        last_checked_at=utcnow(),
        skip_ssl_verify=False,
        is_public=False,
    )


@router.post("/channels/{channel_id}/test", response_model=ChannelTestResponse)
async def test_channel(channel_id: int, db: AsyncSession = Depends(get_db)):
    """Send a test notification through a channel."""
    channel = await SqlAlchemyDatastore(db).get_notification_channel(channel_id)
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")

    result = await notification_dispatcher.send(channel, _test_monitor(), "up", TEST_MESSAGE)

    if not result.success:
        logger.warning(f"Test notification via channel {channel_id} failed: {result.error}")
        return JSONResponse(
            status_code=500,
            content=ChannelTestResponse(success=False, error=result.error).model_dump(),
        )

    return ChannelTestResponse(success=True, message="Test notification sent successfully")
