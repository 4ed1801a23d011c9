"""Auth profile API endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..datastore import SqlAlchemyDatastore
from ..schemas.auth_profile import TokenTestResponse
from ..services.auth import Authenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth-profiles", tags=["auth-profiles"])

TOKEN_PREVIEW_LENGTH = 20


@router.post("/{profile_id}/test", response_model=TokenTestResponse)
async def test_auth_profile(profile_id: int, db: AsyncSession = Depends(get_db)):
    """Log in with an auth profile and return a preview of the token.

    Always performs a real login; the check cycle's token cache is not used.
    """
    profile = await SqlAlchemyDatastore(db).get_auth_profile(profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Auth profile not found")

    result = await Authenticator().fetch_token(profile)

    if not result.success:
        logger.info(f"Auth profile {profile_id} test failed: {result.error}")
        return JSONResponse(
            status_code=400,
            content=TokenTestResponse(success=False, error=result.error).model_dump(),
        )

    return TokenTestResponse(
        success=True,
        message="Token fetched successfully",
        token_preview=f"{result.token[:TOKEN_PREVIEW_LENGTH]}...",
    )
