"""Supabase RPC request models."""

from pydantic import BaseModel, Field


class LeaderboardRpcParams(BaseModel):
    """Arguments of the ranked leaderboard RPC."""

    p_course_id: str | None = None
    p_week: str | None = None
    p_limit: int = Field(default=1000, ge=1)
