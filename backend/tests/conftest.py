"""
Shared fixtures for the Quizboard test suite.

Fakes stand in for the external collaborators: the ranked-data provider,
the observability sink and the refresh timer.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from quizboard.leaderboard import (
    FetchError,
    ManualTimerBackend,
    RankingQueryAdapter,
    RefreshScheduler,
    Scope,
    SnapshotDisplay,
)


def make_row(rank: int, email: str, correct: int = 5, total: int = 10, time: int = 100, **extra: Any) -> dict[str, Any]:
    row = {
        "rank": rank,
        "user_name": email.split("@")[0].title(),
        "email": email,
        "college_name": None,
        "correct_answers": correct,
        "total_questions": total,
        "score_percentage": round(100 * correct / total, 2) if total else 0,
        "time_taken_seconds": time,
    }
    row.update(extra)
    return row


SCENARIO_ROWS = [
    make_row(1, "a@x.com", correct=9, total=10, time=120, course_id="CS101", week="3"),
    make_row(2, "b@x.com", correct=8, total=10, time=150, course_id="CS101", week="3"),
]


class FakeProvider:
    """In-memory ranked-data provider.

    With ``hold`` set, every call parks on a future in ``pending`` until the
    test resolves it, which lets tests control completion order.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self.rows = list(rows or [])
        self.calls: list[dict[str, Any]] = []
        self.failures: list[Exception] = []
        self.hold = False
        self.pending: list[asyncio.Future] = []

    async def get_leaderboard(self, course_id: str | None, week: str | None, limit: int) -> Any:
        self.calls.append({"course_id": course_id, "week": week, "limit": limit})
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        if self.failures:
            raise self.failures.pop(0)
        return [dict(row) for row in self.rows[:limit]]


class RecordingSink:
    def __init__(self) -> None:
        self.reports: list[tuple[FetchError, Scope, bool]] = []

    def report_fetch_error(self, error: FetchError, scope: Scope, background: bool) -> None:
        self.reports.append((error, scope, background))


async def wait_for_pending(provider: FakeProvider, count: int) -> None:
    for _ in range(50):
        if len(provider.pending) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} pending provider calls, got {len(provider.pending)}")


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(SCENARIO_ROWS)


@pytest.fixture
def adapter(provider: FakeProvider) -> RankingQueryAdapter:
    return RankingQueryAdapter(provider)


@pytest.fixture
def display() -> SnapshotDisplay:
    return SnapshotDisplay(keep_history=True)


@pytest.fixture
def timers() -> ManualTimerBackend:
    return ManualTimerBackend()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scheduler(
    adapter: RankingQueryAdapter,
    display: SnapshotDisplay,
    timers: ManualTimerBackend,
    sink: RecordingSink,
) -> RefreshScheduler:
    return RefreshScheduler(adapter, display, timers, error_sink=sink)
