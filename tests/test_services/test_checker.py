"""Tests for the HTTP probe: status classification, request headers and timeouts."""

from __future__ import annotations

import asyncio

import httpx

from apimonitor.services.checker import USER_AGENT, CheckerService
from fakes import make_monitor, make_profile


# ── Helpers ─────────────────────────────────────────────────────


def _checker(handler, timeout: float = 30) -> CheckerService:
    return CheckerService(timeout=timeout, transport=httpx.MockTransport(handler))


def _status(code: int):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, text="body")

    return handler


# ── Status classification ───────────────────────────────────────


class TestStatusClassification:
    async def test_200_is_up(self) -> None:
        result = await _checker(_status(200)).check(make_monitor())
        assert result.status == "up"
        assert result.status_code == 200
        assert result.error_message is None
        assert result.response_time_ms is not None

    async def test_399_is_up(self) -> None:
        result = await _checker(_status(399)).check(make_monitor())
        assert result.status == "up"

    async def test_404_is_down_with_reason(self) -> None:
        result = await _checker(_status(404)).check(make_monitor())
        assert result.status == "down"
        assert result.status_code == 404
        assert result.error_message == "HTTP 404: Not Found"

    async def test_503_is_down(self) -> None:
        result = await _checker(_status(503)).check(make_monitor())
        assert result.error_message == "HTTP 503: Service Unavailable"

    async def test_redirect_is_followed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://api.example.com/new"})
            return httpx.Response(200)

        result = await _checker(handler).check(make_monitor(url="https://api.example.com/old"))
        assert result.status == "up"
        assert result.status_code == 200


# ── Request shape ───────────────────────────────────────────────


class TestRequest:
    async def test_method_and_user_agent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        await _checker(handler).check(make_monitor(method="HEAD"))
        assert seen[0].method == "HEAD"
        assert seen[0].headers["user-agent"] == USER_AGENT

    async def test_auth_header_added(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        profile = make_profile(token_type="API-Key", header_name="X-API-Key")
        await _checker(handler).check(make_monitor(), auth_token="k-1", auth_profile=profile)
        assert seen[0].headers["x-api-key"] == "k-1"

    async def test_no_auth_header_without_profile(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        await _checker(handler).check(make_monitor(), auth_token="orphan")
        assert "authorization" not in seen[0].headers


# ── Failures ────────────────────────────────────────────────────


class TestFailures:
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        result = await _checker(handler).check(make_monitor())
        assert result.status == "down"
        assert result.status_code is None
        assert result.error_message == "Name or service not known"
        assert result.response_time_ms is not None

    async def test_httpx_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = await _checker(handler).check(make_monitor())
        assert result.error_message == "Request timeout after 30000ms"

    async def test_overall_timeout(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200)

        result = await _checker(handler, timeout=0.05).check(make_monitor())
        assert result.status == "down"
        assert result.status_code is None
        assert result.error_message == "Request timeout after 50ms"

    async def test_ssl_error_text_is_kept(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(
                "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed: self signed certificate",
                request=request,
            )

        result = await _checker(handler).check(make_monitor())
        assert "CERTIFICATE_VERIFY_FAILED" in result.error_message

    async def test_unencodable_header_is_down(self) -> None:
        result = await _checker(_status(200)).check(
            make_monitor(),
            auth_token="töken",
            auth_profile=make_profile(),
        )
        assert result.status == "down"
        assert result.status_code is None
        assert "codec can't encode" in result.error_message
        assert result.response_time_ms is not None
