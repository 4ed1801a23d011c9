"""Monitor helper API endpoints: ad-hoc URL test and smart defaults."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..datastore import SqlAlchemyDatastore
from ..models import AuthProfile
from ..schemas.monitor import SmartDefaultsResponse, UrlTestRequest, UrlTestResponse
from ..services.smart_defaults import generate_smart_defaults
from ..services.url_tester import run_url_test

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitors", tags=["monitors"])


@router.post("/test-url", response_model=UrlTestResponse)
async def test_url(data: UrlTestRequest, db: AsyncSession = Depends(get_db)):
    """Test a URL before creating a monitor. Nothing is stored."""
    auth_profile = None
    if data.auth_profile_id is not None:
        auth_profile = await SqlAlchemyDatastore(db).get_auth_profile(data.auth_profile_id)
        if not auth_profile:
            raise HTTPException(status_code=404, detail="Auth profile not found")

    return await run_url_test(
        data.url,
        method=data.method,
        skip_ssl_verify=data.skip_ssl_verify,
        auth_profile=auth_profile,
    )


@router.get("/smart-defaults", response_model=SmartDefaultsResponse)
async def get_smart_defaults(
    url: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Suggest a name, method and matching auth profiles for a URL."""
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    result = await db.execute(select(AuthProfile).order_by(AuthProfile.id))
    profiles = result.scalars().all()

    return generate_smart_defaults(url, profiles)
