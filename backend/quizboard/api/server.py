"""FastAPI read API for the Quizboard leaderboard."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from quizboard import __version__
from quizboard.config import Settings, get_settings
from quizboard.leaderboard import (
    APSchedulerTimerBackend,
    FetchError,
    LeaderboardView,
    RankedDataProvider,
    RankingQueryAdapter,
    RefreshScheduler,
    Scope,
    SnapshotDisplay,
    TimerBackend,
    build_rows,
)
from quizboard.leaderboard.adapter import normalize_filter
from quizboard.services.supabase import SupabaseConfig, create_supabase_client

logger = logging.getLogger(__name__)


def _serialize_view(view: LeaderboardView) -> dict[str, Any]:
    return {
        "scope": view.scope.model_dump(),
        "label": view.scope.label,
        "loading": view.loading,
        "participants": view.participant_count,
        "refreshed_at": view.refreshed_at.isoformat() if view.refreshed_at else None,
        "error": view.error,
        "rows": [
            {
                **row.entry.model_dump(),
                "formatted_time": row.entry.formatted_time,
                "is_current_user": row.is_current_user,
                "badge_tier": row.badge_tier,
            }
            for row in view.rows
        ],
    }


def create_app(
    settings: Settings | None = None,
    provider: RankedDataProvider | None = None,
    timer_backend: TimerBackend | None = None,
) -> FastAPI:
    """Build the API app. The lifespan owns the provider and the live scheduler."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        supabase = None
        data_provider = provider
        if data_provider is None:
            supabase = create_supabase_client(
                config=SupabaseConfig(
                    url=settings.supabase_url,
                    api_key=settings.supabase_key,
                    leaderboard_function=settings.provider.rpc_function,
                    timeout_seconds=settings.provider.timeout_seconds,
                    max_retries=settings.provider.max_retries,
                )
            )
            await supabase.open()
            data_provider = supabase

        timers = timer_backend or APSchedulerTimerBackend()
        adapter = RankingQueryAdapter(
            data_provider, default_limit=settings.leaderboard.default_limit
        )
        display = SnapshotDisplay()
        scheduler = RefreshScheduler(
            adapter,
            display,
            timers,
            viewer_email=settings.leaderboard.viewer_email,
            refresh_interval_seconds=settings.leaderboard.refresh_interval_seconds,
        )

        app.state.adapter = adapter
        app.state.display = display
        app.state.scheduler = scheduler

        await scheduler.activate(
            Scope(
                course_id=settings.leaderboard.default_course_id,
                week=settings.leaderboard.default_week,
            )
        )
        logger.info("✓ Live leaderboard started")

        try:
            yield
        finally:
            await scheduler.aclose()
            if timer_backend is None:
                timers.shutdown()
            if supabase is not None:
                await supabase.close()
            logger.info("✓ Live leaderboard stopped")

    app = FastAPI(title="Quizboard Leaderboard API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/leaderboard")
    async def get_leaderboard(
        request: Request,
        course_id: str | None = None,
        week: str | None = None,
        limit: int | None = Query(default=None, ge=1),
        viewer_email: str | None = None,
    ):
        """One-shot ranked fetch for any scope."""
        adapter: RankingQueryAdapter = request.app.state.adapter
        try:
            entries = await adapter.fetch(course_id, week, limit)
        except FetchError as e:
            logger.warning(f"Leaderboard request failed: {e}")
            raise HTTPException(status_code=502, detail=str(e))

        view = LeaderboardView(
            scope=Scope(course_id=normalize_filter(course_id), week=normalize_filter(week)),
            rows=build_rows(entries, viewer_email),
        )
        return _serialize_view(view)

    @app.get("/api/leaderboard/live")
    async def get_live_leaderboard(request: Request):
        """Latest view published by the live scheduler."""
        display: SnapshotDisplay = request.app.state.display
        scheduler: RefreshScheduler = request.app.state.scheduler
        view = display.latest or scheduler.view
        return {"state": scheduler.state.value, **_serialize_view(view)}

    @app.post("/api/leaderboard/live/refresh", status_code=202)
    async def refresh_live_leaderboard(request: Request):
        """Trigger a user refresh of the live scope."""
        scheduler: RefreshScheduler = request.app.state.scheduler
        try:
            scheduler.refresh()
        except RuntimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"status": "refreshing", "scope": scheduler.scope.model_dump()}

    return app
