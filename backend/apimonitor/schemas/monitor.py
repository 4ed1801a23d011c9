"""Monitor schemas for API."""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class UrlTestRequest(BaseModel):
    """Schema for testing a URL before creating a monitor."""
    url: str = Field(..., min_length=1, pattern="^https?://")
    method: Literal["GET", "POST", "HEAD"] = "GET"
    skip_ssl_verify: bool = False
    auth_profile_id: Optional[int] = None


class SslInfoResponse(BaseModel):
    """Certificate details for an HTTPS URL."""
    valid: bool
    error: Optional[str] = None
    expires_at: Optional[str] = None
    days_until_expiry: Optional[int] = None
    issuer: Optional[str] = None
    subject: Optional[str] = None


class SuggestedSettings(BaseModel):
    """Monitor settings worth changing, based on the test outcome."""
    skip_ssl_verify: Optional[bool] = None


class UrlTestResponse(BaseModel):
    """Result of an ad-hoc URL test. Nothing is persisted."""
    success: bool
    status_code: Optional[int] = None
    response_time_ms: int = 0
    ssl_info: Optional[SslInfoResponse] = None
    ssl_warning: Optional[str] = None
    error_message: Optional[str] = None
    suggested_settings: SuggestedSettings = Field(default_factory=SuggestedSettings)


class MatchingAuthProfile(BaseModel):
    """An auth profile whose login URL shares the monitor's host or domain."""
    id: int
    name: str
    match_reason: str


class SmartDefaultsResponse(BaseModel):
    """Suggested monitor settings for a URL."""
    suggested_name: str
    suggested_method: str
    matching_auth_profiles: List[MatchingAuthProfile] = []
