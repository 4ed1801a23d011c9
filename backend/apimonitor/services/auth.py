"""Auth service - fetches and caches login tokens for protected monitors."""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import httpx

from ..models import AuthProfile

logger = logging.getLogger(__name__)

# Login requests share the probe timeout
LOGIN_TIMEOUT_SECONDS = 30

# Tokens are used for at most this long when the profile has no lifetime
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

# Refetch tokens this close to expiry
REFRESH_MARGIN_SECONDS = 60


class TokenPathError(Exception):
    """The token path does not lead to a string in the login response."""

    def __init__(self, path: str, available_keys: Optional[List[str]] = None):
        self.path = path
        self.available_keys = available_keys or []
        super().__init__(
            f'Token not found at path "{path}". '
            f"Response keys: {', '.join(self.available_keys)}"
        )


@dataclass
class TokenResult:
    """Outcome of a token lookup. Failures are values, never raised."""
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None


class AuthHeader(NamedTuple):
    name: str
    value: str


@dataclass
class CachedToken:
    token: str
    expires_at: float


class TokenCache:
    """Tokens keyed by auth profile id.

    One instance is owned by the scheduler and cleared at the start of every
    cycle, so rotated credentials are picked up and stale entries never pile up.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[int, CachedToken] = {}
        self._clock = clock

    def get(self, profile_id: int) -> Optional[str]:
        """Return the cached token unless it expires within the refresh margin."""
        entry = self._entries.get(profile_id)
        if entry and entry.expires_at > self._clock() + REFRESH_MARGIN_SECONDS:
            return entry.token
        return None

    def set(self, profile_id: int, token: str, expires_in_seconds: int):
        self._entries[profile_id] = CachedToken(
            token=token,
            expires_at=self._clock() + expires_in_seconds,
        )

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def get_value_by_path(data: Any, path: str) -> str:
    """Walk a decoded JSON document along a dot-separated path.

    e.g. "data.accessToken" on {"data": {"accessToken": "xxx"}} -> "xxx"

    Raises TokenPathError at the first missing key or non-object
    intermediate, or when the value found is not a non-empty string.
    """
    return _descend(data, path.split("."), path)


def _descend(node: Any, parts: List[str], path: str) -> str:
    if not parts:
        if isinstance(node, str) and node:
            return node
        raise TokenPathError(path)

    head, rest = parts[0], parts[1:]
    if not isinstance(node, dict) or head not in node:
        raise TokenPathError(path)
    return _descend(node[head], rest, path)


def extract_token(data: Any, path: str) -> str:
    """Like get_value_by_path, but the error lists the response's top-level keys."""
    try:
        return get_value_by_path(data, path)
    except TokenPathError:
        keys = list(data.keys()) if isinstance(data, dict) else []
        raise TokenPathError(path, keys) from None


def build_auth_header(profile: AuthProfile, token: str) -> AuthHeader:
    """Build the header carrying the token, based on the profile's token type."""
    if profile.token_type == "Bearer":
        value = f"Bearer {token}"
    elif profile.token_type == "Basic":
        value = f"Basic {token}"
    else:
        # API-Key (and anything unrecognised) sends the raw token
        value = token
    return AuthHeader(name=profile.header_name, value=value)


class Authenticator:
    """Logs in with an auth profile and caches the resulting token."""

    def __init__(
        self,
        cache: Optional[TokenCache] = None,
        timeout: float = LOGIN_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else TokenCache()
        self.timeout = timeout
        self._transport = transport

    async def get_token(self, profile: AuthProfile) -> TokenResult:
        """Get token from cache or fetch a new one."""
        cached = self.cache.get(profile.id)
        if cached:
            return TokenResult(success=True, token=cached)

        result = await self.fetch_token(profile)

        if result.success and result.token:
            expires_in = profile.expires_in_seconds
            if expires_in is None:
                expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS
            self.cache.set(profile.id, result.token, expires_in)

        return result

    def clear_cache(self):
        self.cache.clear()

    async def fetch_token(self, profile: AuthProfile) -> TokenResult:
        """Perform the login request described by the profile."""
        headers = {"Content-Type": "application/json"}

        content = None
        if profile.login_method == "POST" and profile.login_body:
            content = json.dumps(profile.login_body)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=not profile.skip_ssl_verify,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    profile.login_method or "POST",
                    profile.login_url,
                    headers=headers,
                    content=content,
                )
        except httpx.TimeoutException:
            logger.warning(f"Login timed out for auth profile {profile.id}")
            return TokenResult(
                success=False,
                error=f"Request timeout after {int(self.timeout * 1000)}ms",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Login request failed for auth profile {profile.id}: {e}")
            return TokenResult(success=False, error=str(e) or type(e).__name__)

        if not (200 <= response.status_code < 400):
            return TokenResult(
                success=False,
                error=f"Login failed with status {response.status_code}: {response.text[:200]}",
            )

        try:
            data = json.loads(response.text)
        except ValueError as e:
            return TokenResult(success=False, error=f"Invalid JSON in login response: {e}")

        try:
            token = extract_token(data, profile.token_path)
        except TokenPathError as e:
            return TokenResult(success=False, error=str(e))

        logger.debug(f"Fetched token for auth profile {profile.id}")
        return TokenResult(success=True, token=token)
