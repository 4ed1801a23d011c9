"""Auth profile schemas for API."""
from typing import Optional
from pydantic import BaseModel


class TokenTestResponse(BaseModel):
    """Result of a login attempt with an auth profile."""
    success: bool
    message: Optional[str] = None
    token_preview: Optional[str] = None  # First 20 characters only
    error: Optional[str] = None
