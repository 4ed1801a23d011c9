"""Pydantic schemas for API request/response models."""
from .cycle import CycleSummary
from .monitor import (
    UrlTestRequest,
    UrlTestResponse,
    SslInfoResponse,
    SuggestedSettings,
    MatchingAuthProfile,
    SmartDefaultsResponse,
)
from .auth_profile import TokenTestResponse
from .notification import ChannelTestResponse

__all__ = [
    "CycleSummary",
    "UrlTestRequest",
    "UrlTestResponse",
    "SslInfoResponse",
    "SuggestedSettings",
    "MatchingAuthProfile",
    "SmartDefaultsResponse",
    "TokenTestResponse",
    "ChannelTestResponse",
]
