"""Smart defaults - suggested monitor settings derived from a URL."""
from typing import Iterable, List
from urllib.parse import urlsplit

from ..models import AuthProfile
from ..schemas.monitor import MatchingAuthProfile, SmartDefaultsResponse


def _hostname(url: str) -> str:
    """Lowercased hostname of an http(s) URL, or "" when there is none."""
    try:
        parsed = urlsplit(url)
    except ValueError:
        return ""
    if parsed.scheme not in ("http", "https"):
        return ""
    return parsed.hostname or ""


def extract_name_from_url(url: str) -> str:
    """e.g. "https://api.example.com/health/" -> "api.example.com/health" """
    hostname = _hostname(url)
    if not hostname:
        return ""

    path = urlsplit(url).path.strip("/")
    if path:
        return f"{hostname}/{path}"
    return hostname


def infer_method(url: str) -> str:
    """Suggest the probe method for a URL.

    Health endpoints are probed with GET, and GET is the safe default for
    any other path too.
    """
    return "GET"


def get_base_domain(hostname: str) -> str:
    """Last two labels of a hostname, e.g. "api.example.com" -> "example.com"."""
    parts = hostname.split(".")
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return hostname


def find_matching_auth_profiles(url: str, profiles: Iterable[AuthProfile]) -> List[MatchingAuthProfile]:
    """Auth profiles whose login URL shares the monitor's hostname or base domain."""
    hostname = _hostname(url)
    if not hostname:
        return []
    base_domain = get_base_domain(hostname)

    matches = []
    for profile in profiles:
        login_hostname = _hostname(profile.login_url or "")
        if not login_hostname:
            continue

        if login_hostname == hostname:
            reason = "Same hostname"
        elif get_base_domain(login_hostname) == base_domain:
            reason = "Same domain"
        else:
            continue
        matches.append(MatchingAuthProfile(id=profile.id, name=profile.name, match_reason=reason))
    return matches


def generate_smart_defaults(url: str, profiles: Iterable[AuthProfile]) -> SmartDefaultsResponse:
    return SmartDefaultsResponse(
        suggested_name=extract_name_from_url(url),
        suggested_method=infer_method(url),
        matching_auth_profiles=find_matching_auth_profiles(url, profiles),
    )
