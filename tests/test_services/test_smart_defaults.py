"""Tests for URL-derived monitor suggestions."""

from __future__ import annotations

from apimonitor.services.smart_defaults import (
    extract_name_from_url,
    find_matching_auth_profiles,
    generate_smart_defaults,
    get_base_domain,
    infer_method,
)
from fakes import make_profile


class TestExtractName:
    def test_host_and_path(self) -> None:
        assert extract_name_from_url("https://api.example.com/health/") == "api.example.com/health"

    def test_host_only(self) -> None:
        assert extract_name_from_url("https://api.example.com") == "api.example.com"

    def test_invalid(self) -> None:
        assert extract_name_from_url("not a url") == ""


class TestInferMethod:
    def test_always_get(self) -> None:
        assert infer_method("https://api.example.com/healthz") == "GET"
        assert infer_method("https://api.example.com/orders") == "GET"


class TestBaseDomain:
    def test_subdomain(self) -> None:
        assert get_base_domain("api.eu.example.com") == "example.com"

    def test_single_label(self) -> None:
        assert get_base_domain("localhost") == "localhost"


class TestMatchingProfiles:
    def test_same_hostname_and_domain(self) -> None:
        profiles = [
            make_profile(id=1, name="Same host", login_url="https://api.example.com/login"),
            make_profile(id=2, name="Same domain", login_url="https://auth.example.com/token"),
            make_profile(id=3, name="Other", login_url="https://auth.other.io/token"),
            make_profile(id=4, name="Broken", login_url="::"),
        ]
        matches = find_matching_auth_profiles("https://api.example.com/health", profiles)
        assert [(m.id, m.match_reason) for m in matches] == [(1, "Same hostname"), (2, "Same domain")]

    def test_invalid_monitor_url(self) -> None:
        assert find_matching_auth_profiles("nope", [make_profile()]) == []


class TestGenerate:
    def test_combined(self) -> None:
        defaults = generate_smart_defaults(
            "https://api.example.com/v1/status",
            [make_profile(login_url="https://auth.example.com/login")],
        )
        assert defaults.suggested_name == "api.example.com/v1/status"
        assert defaults.suggested_method == "GET"
        assert defaults.matching_auth_profiles[0].match_reason == "Same domain"
