"""Leaderboard ranking and live refresh.

This package provides:
- Entry and view models with per-viewer flags
- The ranking query adapter (validated, rank-ordered snapshots)
- The refresh scheduler (loading fetch, silent periodic refresh)
- Timer backends and display surfaces
"""

from .adapter import DEFAULT_LIMIT, RankedDataProvider, RankingQueryAdapter
from .display import ConsoleDisplay, SnapshotDisplay, render_table
from .exceptions import (
    FetchError,
    MalformedResponseError,
    StaleActivationError,
    TransientFetchError,
)
from .models import (
    LeaderboardEntry,
    LeaderboardRow,
    LeaderboardView,
    Scope,
    build_rows,
    format_time,
)
from .scheduler import (
    DisplaySurface,
    ErrorSink,
    RefreshScheduler,
    SchedulerState,
)
from .timers import APSchedulerTimerBackend, ManualTimerBackend, TimerBackend

__all__ = [
    # Models
    "LeaderboardEntry",
    "LeaderboardRow",
    "LeaderboardView",
    "Scope",
    "build_rows",
    "format_time",
    # Adapter
    "DEFAULT_LIMIT",
    "RankedDataProvider",
    "RankingQueryAdapter",
    # Errors
    "FetchError",
    "TransientFetchError",
    "MalformedResponseError",
    "StaleActivationError",
    # Scheduler
    "DisplaySurface",
    "ErrorSink",
    "RefreshScheduler",
    "SchedulerState",
    # Timers and displays
    "APSchedulerTimerBackend",
    "ManualTimerBackend",
    "TimerBackend",
    "ConsoleDisplay",
    "SnapshotDisplay",
    "render_table",
]
