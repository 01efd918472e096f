"""Refresh scheduler: keeps a leaderboard view live by periodic re-fetch.

State machine::

    IDLE --activate--> LOADING --first fetch completes--> LIVE
    LIVE --tick--> LIVE (silent fetch, no loading indicator)
    LOADING/LIVE --change_scope--> LOADING (timer cancelled)
    LOADING/LIVE --deactivate--> IDLE (timer cancelled, late results dropped)

Every activation gets a new token. A fetch carries the token it was started
under and its result is applied only if that token is still current, so
results arriving after ``deactivate`` or ``change_scope`` are discarded.
Overlapping fetches of the same activation apply in completion order.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Coroutine, Protocol

from quizboard.observability import LoggingErrorSink

from .adapter import RankingQueryAdapter
from .exceptions import FetchError, StaleActivationError
from .models import LeaderboardEntry, LeaderboardView, Scope, build_rows, utcnow
from .timers import TimerBackend, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_SECONDS = 5.0


class SchedulerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LIVE = "live"


class DisplaySurface(Protocol):
    def render(self, view: LeaderboardView) -> None: ...


class ErrorSink(Protocol):
    def report_fetch_error(self, error: FetchError, scope: Scope, background: bool) -> None: ...


class RefreshScheduler:
    """Drives repeated adapter fetches while a leaderboard view is active."""

    def __init__(
        self,
        adapter: RankingQueryAdapter,
        display: DisplaySurface,
        timer_backend: TimerBackend,
        error_sink: ErrorSink | None = None,
        viewer_email: str | None = None,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        limit: int | None = None,
    ):
        if refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        if limit is not None and limit < 1:
            raise ValueError("limit must be at least 1")

        self.adapter = adapter
        self.display = display
        self.timer_backend = timer_backend
        self.error_sink = error_sink or LoggingErrorSink()
        self.refresh_interval_seconds = refresh_interval_seconds
        self.limit = limit

        self._viewer_email = viewer_email
        self._state = SchedulerState.IDLE
        self._scope = Scope.all()
        self._token = 0
        self._timer: TimerHandle | None = None
        self._entries: list[LeaderboardEntry] = []
        self._loading = False
        self._refreshed_at: datetime | None = None
        self._last_error: FetchError | None = None
        self._tasks: set[asyncio.Task] = set()

    # -- read-only state -------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def entries(self) -> list[LeaderboardEntry]:
        return list(self._entries)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> FetchError | None:
        return self._last_error

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and self._timer.active

    @property
    def view(self) -> LeaderboardView:
        return LeaderboardView(
            scope=self._scope,
            rows=build_rows(self._entries, self._viewer_email),
            loading=self._loading,
            refreshed_at=self._refreshed_at,
            error=str(self._last_error) if self._last_error else None,
        )

    # -- lifecycle -------------------------------------------------------

    def activate(self, scope: Scope | None = None) -> asyncio.Task:
        """Start an activation for ``scope`` and issue the loading fetch."""
        if self._state is not SchedulerState.IDLE:
            return self.change_scope(scope)
        logger.info(f"Activating leaderboard ({scope or Scope.all()})")
        return self._start_activation(scope or Scope.all())

    def change_scope(self, scope: Scope | None = None) -> asyncio.Task:
        """Switch filters; behaves like a fresh activation."""
        if self._state is SchedulerState.IDLE:
            return self.activate(scope)
        logger.info(f"Changing leaderboard scope {self._scope} -> {scope or Scope.all()}")
        return self._start_activation(scope or Scope.all())

    def refresh(self) -> asyncio.Task:
        """User-initiated refresh of the current scope, with loading indicator."""
        if self._state is SchedulerState.IDLE:
            raise RuntimeError("Cannot refresh an inactive leaderboard")
        return self._spawn_fetch(self._token, self._scope, show_loading=True)

    def deactivate(self) -> None:
        """Stop refreshing. Results of in-flight fetches will be discarded."""
        if self._state is SchedulerState.IDLE:
            return
        self._cancel_timer()
        self._token += 1
        self._state = SchedulerState.IDLE
        self._loading = False
        logger.info("Deactivated leaderboard")

    def set_viewer(self, email: str | None) -> None:
        self._viewer_email = email
        self._publish()

    async def drain(self) -> None:
        """Wait until every in-flight fetch, loading or timer-driven, has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self.deactivate()
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    async def __aenter__(self) -> RefreshScheduler:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.aclose()

    # -- internals -------------------------------------------------------

    def _start_activation(self, scope: Scope) -> asyncio.Task:
        self._cancel_timer()
        self._token += 1
        self._scope = scope
        self._state = SchedulerState.LOADING
        return self._spawn_fetch(self._token, scope, show_loading=True)

    def _spawn_fetch(self, token: int, scope: Scope, show_loading: bool) -> asyncio.Task:
        if show_loading:
            self._loading = True
            self._publish()
        return self._track(self._fetch(token, scope, show_loading))

    def _track(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fetch(self, token: int, scope: Scope, show_loading: bool) -> None:
        error: FetchError | None = None
        entries: list[LeaderboardEntry] | None = None
        try:
            entries = await self.adapter.fetch(scope.course_id, scope.week, self.limit)
        except FetchError as e:
            error = e

        try:
            self._check_token(token)
        except StaleActivationError as e:
            logger.debug(f"Discarding leaderboard result: {e}")
            return

        if error is not None:
            self._last_error = error
        else:
            self._entries = entries
            self._last_error = None
            self._refreshed_at = utcnow()

        if show_loading:
            self._loading = False
        if self._state is SchedulerState.LOADING:
            self._state = SchedulerState.LIVE
            self._arm_timer(token)

        if error is not None:
            try:
                self.error_sink.report_fetch_error(error, scope, background=not show_loading)
            except Exception:
                logger.exception("Error sink failed while reporting a fetch error")
        self._publish()

    async def _on_tick(self, token: int) -> None:
        if token != self._token or self._state is SchedulerState.IDLE:
            return
        task = self._track(self._fetch(token, self._scope, show_loading=False))
        # asyncio.wait does not raise if aclose() cancelled the fetch.
        await asyncio.wait({task})

    def _check_token(self, token: int) -> None:
        if token != self._token or self._state is SchedulerState.IDLE:
            raise StaleActivationError(token, self._token)

    def _arm_timer(self, token: int) -> None:
        self._cancel_timer()

        async def tick() -> None:
            await self._on_tick(token)

        self._timer = self.timer_backend.schedule(self.refresh_interval_seconds, tick)
        logger.debug(f"Live refresh armed every {self.refresh_interval_seconds}s")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _publish(self) -> None:
        try:
            self.display.render(self.view)
        except Exception:
            logger.exception("Display surface failed to render leaderboard view")
