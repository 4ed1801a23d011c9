"""Tests for retrying transient datastore errors."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from apimonitor.utils import db_utils
from apimonitor.utils.db_utils import is_transient_error, retry_on_lock


# ── Helpers ─────────────────────────────────────────────────────


def _operational(message: str) -> OperationalError:
    return OperationalError("COMMIT", {}, Exception(message))


class FlakyCommit:
    """Fails with the given errors in order, then succeeds."""

    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.attempts = 0

    async def __call__(self) -> str:
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return "committed"


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch) -> list[float]:
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(db_utils.asyncio, "sleep", fake_sleep)
    return delays


# ── Classification ──────────────────────────────────────────────


class TestIsTransientError:
    def test_sqlite_lock(self) -> None:
        assert is_transient_error(_operational("database is locked"))

    def test_connection_reset(self) -> None:
        assert is_transient_error(_operational("Connection reset by peer"))

    def test_schema_error(self) -> None:
        assert not is_transient_error(_operational("no such table: monitors"))


# ── Retry ───────────────────────────────────────────────────────


class TestRetryOnLock:
    async def test_lock_then_success(self, no_sleep) -> None:
        commit = FlakyCommit(_operational("database is locked"), _operational("database is locked"))
        assert await retry_on_lock(commit) == "committed"
        assert commit.attempts == 3
        assert no_sleep == [0.1, 0.2]

    async def test_gives_up_after_max_retries(self, no_sleep) -> None:
        commit = FlakyCommit(*[_operational("database is locked") for _ in range(5)])
        with pytest.raises(OperationalError):
            await retry_on_lock(commit, max_retries=3)
        assert commit.attempts == 3
        assert len(no_sleep) == 2

    async def test_non_transient_error_is_not_retried(self, no_sleep) -> None:
        commit = FlakyCommit(_operational("no such table: monitors"))
        with pytest.raises(OperationalError):
            await retry_on_lock(commit)
        assert commit.attempts == 1
        assert no_sleep == []

    async def test_integrity_error_propagates(self, no_sleep) -> None:
        commit = FlakyCommit(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
        with pytest.raises(IntegrityError):
            await retry_on_lock(commit)
        assert commit.attempts == 1
