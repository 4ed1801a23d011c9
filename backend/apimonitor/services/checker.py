"""Checker service - performs the HTTP(S) probe for a monitor."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Dict

import httpx

from ..models import Monitor, AuthProfile
from .auth import build_auth_header

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 30

USER_AGENT = "API-Monitor/1.0"


@dataclass
class CheckResult:
    """Result of a monitoring check."""
    status: str  # up, down
    response_time_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None


class CheckerService:
    """Service for probing monitored endpoints."""

    def __init__(
        self,
        timeout: float = PROBE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def check(
        self,
        monitor: Monitor,
        auth_token: Optional[str] = None,
        auth_profile: Optional[AuthProfile] = None,
    ) -> CheckResult:
        """Probe a monitor's URL, adding the auth header when a token is supplied."""
        headers = {"User-Agent": USER_AGENT}

        if auth_token and auth_profile:
            auth_header = build_auth_header(auth_profile, auth_token)
            headers[auth_header.name] = auth_header.value

        return await self._check_http(
            monitor.url,
            monitor.method or "GET",
            headers,
            verify=not monitor.skip_ssl_verify,
        )

    async def _check_http(
        self,
        url: str,
        method: str,
        headers: Dict[str, str],
        verify: bool,
    ) -> CheckResult:
        """Perform the request.

        Status 200-399 is up, anything else is down. Transport failures and
        timeouts are down with no status code but a measured response time.
        """
        start = time.monotonic()

        try:
            # The per-phase httpx timeout does not bound the whole exchange,
            # so the request as a whole is wrapped as well
            status_code, reason = await asyncio.wait_for(
                self._request(url, method, headers, verify),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._failure(start, f"Request timeout after {int(self.timeout * 1000)}ms")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return self._failure(start, str(e) or type(e).__name__)
        except ValueError as e:
            # Header values or hostnames that cannot be encoded
            return self._failure(start, str(e) or type(e).__name__)

        response_time = self._elapsed_ms(start)

        if 200 <= status_code < 400:
            return CheckResult(
                status="up",
                response_time_ms=response_time,
                status_code=status_code,
            )

        return CheckResult(
            status="down",
            response_time_ms=response_time,
            status_code=status_code,
            error_message=f"HTTP {status_code}: {reason}",
        )

    async def _request(self, url: str, method: str, headers: Dict[str, str], verify: bool):
        """Send the request and drain the body without buffering it."""
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            verify=verify,
            transport=self._transport,
        ) as client:
            async with client.stream(method, url, headers=headers) as response:
                async for _ in response.aiter_raw():
                    pass
                return response.status_code, response.reason_phrase

    def _failure(self, start: float, message: str) -> CheckResult:
        return CheckResult(
            status="down",
            response_time_ms=self._elapsed_ms(start),
            status_code=None,
            error_message=message,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)


# Global instance
checker_service = CheckerService()
