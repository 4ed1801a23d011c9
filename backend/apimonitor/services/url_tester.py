"""URL tester - one-off probe of a URL before it becomes a monitor.

Uses the same authenticator, probe and SSL inspection as the check cycle,
but persists nothing.
"""
import logging
from typing import Optional
from urllib.parse import urlsplit

from ..models import AuthProfile, Monitor
from ..schemas.monitor import SslInfoResponse, SuggestedSettings, UrlTestResponse
from .auth import Authenticator
from .checker import CheckerService, checker_service
from .ssl_inspector import check_certificate, get_ssl_expiry_warning, is_ssl_error

logger = logging.getLogger(__name__)


def _transient_monitor(url: str, method: str, skip_ssl_verify: bool, auth_profile_id: Optional[int]) -> Monitor:
    # Never added to a session
    return Monitor(
        name="Test",
        url=url,
        method=method,
        interval_seconds=1800,
        current_status="unknown",
        auth_profile_id=auth_profile_id,
        skip_ssl_verify=skip_ssl_verify,
        is_public=False,
    )


async def run_url_test(
    url: str,
    method: str = "GET",
    skip_ssl_verify: bool = False,
    auth_profile: Optional[AuthProfile] = None,
    checker: Optional[CheckerService] = None,
    authenticator: Optional[Authenticator] = None,
) -> UrlTestResponse:
    """Probe a URL once and report status, timing, certificate and suggestions."""
    checker = checker or checker_service

    auth_token = None
    if auth_profile is not None:
        # A fresh authenticator per test, so the cycle's cache is never touched
        authenticator = authenticator or Authenticator()
        token_result = await authenticator.get_token(auth_profile)
        if not token_result.success or not token_result.token:
            return UrlTestResponse(
                success=False,
                response_time_ms=0,
                error_message=f"Auth failed: {token_result.error or 'Unknown error'}",
            )
        auth_token = token_result.token

    monitor = _transient_monitor(
        url,
        method,
        skip_ssl_verify,
        auth_profile.id if auth_profile is not None else None,
    )
    result = await checker.check(monitor, auth_token=auth_token, auth_profile=auth_profile)

    ssl_info = None
    ssl_warning = None
    if urlsplit(url).scheme == "https":
        info = await check_certificate(url)
        ssl_info = SslInfoResponse(**info.to_dict())
        if info.valid and info.days_until_expiry is not None:
            ssl_warning = get_ssl_expiry_warning(info.days_until_expiry)

    suggested = SuggestedSettings()
    if not skip_ssl_verify and is_ssl_error(result.error_message):
        suggested.skip_ssl_verify = True

    logger.info(f"URL test {method} {url}: {result.status}")

    return UrlTestResponse(
        success=result.status == "up",
        status_code=result.status_code,
        response_time_ms=result.response_time_ms or 0,
        ssl_info=ssl_info,
        ssl_warning=ssl_warning,
        error_message=result.error_message,
        suggested_settings=suggested,
    )
