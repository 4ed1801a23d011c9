"""Tests for the token cache, token path lookup and Authenticator login flow."""

from __future__ import annotations

import json

import httpx
import pytest

from apimonitor.services.auth import (
    Authenticator,
    TokenCache,
    TokenPathError,
    build_auth_header,
    extract_token,
    get_value_by_path,
)
from fakes import make_profile


# ── Helpers ─────────────────────────────────────────────────────


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _login_transport(responses: list[httpx.Response], seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses[min(len(seen), len(responses)) - 1]

    return httpx.MockTransport(handler)


def _authenticator(*responses: httpx.Response, cache: TokenCache | None = None):
    seen: list[httpx.Request] = []
    auth = Authenticator(cache=cache, transport=_login_transport(list(responses), seen))
    return auth, seen


# ── TokenCache ──────────────────────────────────────────────────


class TestTokenCache:
    def test_returns_fresh_token(self) -> None:
        clock = FakeClock()
        cache = TokenCache(clock=clock)
        cache.set(1, "abc", 3600)
        assert cache.get(1) == "abc"

    def test_token_inside_refresh_margin_is_a_miss(self) -> None:
        clock = FakeClock()
        cache = TokenCache(clock=clock)
        cache.set(1, "abc", 3600)
        clock.now += 3600 - 60
        assert cache.get(1) is None

    def test_token_just_outside_margin_is_a_hit(self) -> None:
        clock = FakeClock()
        cache = TokenCache(clock=clock)
        cache.set(1, "abc", 3600)
        clock.now += 3600 - 61
        assert cache.get(1) == "abc"

    def test_short_lifetime_is_never_served(self) -> None:
        cache = TokenCache(clock=FakeClock())
        cache.set(1, "abc", 30)
        assert cache.get(1) is None

    def test_clear(self) -> None:
        cache = TokenCache(clock=FakeClock())
        cache.set(1, "a", 3600)
        cache.set(2, "b", 3600)
        assert len(cache) == 2
        cache.clear()
        assert len(cache) == 0
        assert cache.get(1) is None


# ── Token path lookup ───────────────────────────────────────────


class TestTokenPath:
    def test_nested_path(self) -> None:
        assert get_value_by_path({"data": {"accessToken": "xyz"}}, "data.accessToken") == "xyz"

    def test_top_level_path(self) -> None:
        assert get_value_by_path({"token": "t"}, "token") == "t"

    def test_missing_intermediate(self) -> None:
        with pytest.raises(TokenPathError):
            get_value_by_path({"data": {}}, "data.accessToken")

    def test_non_object_intermediate(self) -> None:
        with pytest.raises(TokenPathError):
            get_value_by_path({"data": "flat"}, "data.accessToken")

    def test_non_string_value(self) -> None:
        with pytest.raises(TokenPathError):
            get_value_by_path({"token": 123}, "token")

    def test_empty_string_value(self) -> None:
        with pytest.raises(TokenPathError):
            get_value_by_path({"token": ""}, "token")

    def test_extract_token_lists_top_level_keys(self) -> None:
        with pytest.raises(TokenPathError) as exc_info:
            extract_token({"access_token": "x", "expires_in": 3600}, "data.token")
        assert str(exc_info.value) == 'Token not found at path "data.token". Response keys: access_token, expires_in'
        assert exc_info.value.available_keys == ["access_token", "expires_in"]


# ── Auth header ─────────────────────────────────────────────────


class TestBuildAuthHeader:
    def test_bearer(self) -> None:
        header = build_auth_header(make_profile(token_type="Bearer"), "tok")
        assert header == ("Authorization", "Bearer tok")

    def test_basic(self) -> None:
        header = build_auth_header(make_profile(token_type="Basic"), "dXNlcjpw")
        assert header.value == "Basic dXNlcjpw"

    def test_api_key_uses_raw_token_and_custom_header(self) -> None:
        header = build_auth_header(make_profile(token_type="API-Key", header_name="X-API-Key"), "k-123")
        assert header.name == "X-API-Key"
        assert header.value == "k-123"


# ── Authenticator ───────────────────────────────────────────────


class TestFetchToken:
    async def test_success_posts_json_body(self) -> None:
        auth, seen = _authenticator(httpx.Response(200, json={"access_token": "tok-1"}))
        result = await auth.fetch_token(make_profile())
        assert result.success is True
        assert result.token == "tok-1"
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"username": "monitor", "password": "secret"}

    async def test_get_login_sends_no_body(self) -> None:
        auth, seen = _authenticator(httpx.Response(200, json={"access_token": "tok"}))
        await auth.fetch_token(make_profile(login_method="GET"))
        assert seen[0].method == "GET"
        assert seen[0].content == b""

    async def test_empty_body_is_not_sent(self) -> None:
        auth, seen = _authenticator(httpx.Response(200, json={"access_token": "tok"}))
        await auth.fetch_token(make_profile(login_body={}))
        assert seen[0].content == b""

    async def test_rejected_login(self) -> None:
        auth, _ = _authenticator(httpx.Response(401, text="bad credentials" * 50))
        result = await auth.fetch_token(make_profile())
        assert result.success is False
        assert result.error.startswith("Login failed with status 401: bad credentials")
        assert len(result.error) == len("Login failed with status 401: ") + 200

    async def test_invalid_json(self) -> None:
        auth, _ = _authenticator(httpx.Response(200, text="<html>login</html>"))
        result = await auth.fetch_token(make_profile())
        assert result.success is False
        assert result.error.startswith("Invalid JSON in login response")

    async def test_missing_token_path(self) -> None:
        auth, _ = _authenticator(httpx.Response(200, json={"jwt": "x"}))
        result = await auth.fetch_token(make_profile(token_path="data.token"))
        assert result.success is False
        assert result.error == 'Token not found at path "data.token". Response keys: jwt'

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        auth = Authenticator(transport=httpx.MockTransport(handler))
        result = await auth.fetch_token(make_profile())
        assert result.success is False
        assert "connection refused" in result.error

    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        auth = Authenticator(transport=httpx.MockTransport(handler))
        result = await auth.fetch_token(make_profile())
        assert result.success is False
        assert result.error == "Request timeout after 30000ms"


class TestGetToken:
    async def test_second_call_uses_cache(self) -> None:
        auth, seen = _authenticator(httpx.Response(200, json={"access_token": "tok"}))
        profile = make_profile()
        first = await auth.get_token(profile)
        second = await auth.get_token(profile)
        assert first.token == second.token == "tok"
        assert len(seen) == 1

    async def test_default_lifetime_when_unset(self) -> None:
        clock = FakeClock()
        cache = TokenCache(clock=clock)
        auth, _ = _authenticator(httpx.Response(200, json={"access_token": "tok"}), cache=cache)
        await auth.get_token(make_profile(expires_in_seconds=None))
        clock.now += 3600 - 61
        assert cache.get(1) == "tok"
        clock.now += 1
        assert cache.get(1) is None

    async def test_failure_is_not_cached(self) -> None:
        auth, seen = _authenticator(
            httpx.Response(500, text="down"),
            httpx.Response(200, json={"access_token": "tok"}),
        )
        profile = make_profile()
        assert (await auth.get_token(profile)).success is False
        assert (await auth.get_token(profile)).token == "tok"
        assert len(seen) == 2

    async def test_clear_cache_forces_refetch(self) -> None:
        auth, seen = _authenticator(httpx.Response(200, json={"access_token": "tok"}))
        profile = make_profile()
        await auth.get_token(profile)
        auth.clear_cache()
        await auth.get_token(profile)
        assert len(seen) == 2
