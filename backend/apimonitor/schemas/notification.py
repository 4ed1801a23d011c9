"""Notification channel schemas for API."""
from typing import Optional
from pydantic import BaseModel


class ChannelTestResponse(BaseModel):
    """Result of sending a test notification."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
