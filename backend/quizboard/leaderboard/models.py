"""Leaderboard data models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Providers round the percentage; anything further off is a bad row.
PERCENTAGE_TOLERANCE = 0.5


def format_time(seconds: int) -> str:
    """Render elapsed seconds as ``m:ss``."""
    mins, secs = divmod(seconds, 60)
    return f"{mins}:{secs:02d}"


class LeaderboardEntry(BaseModel):
    """One ranked participant as returned by the provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    rank: int = Field(ge=1)
    user_name: str
    email: str = Field(min_length=1)
    college_name: str | None = None
    correct_answers: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    score_percentage: float | None = Field(default=None, ge=0, le=100)
    time_taken_seconds: int = Field(ge=0)
    course_id: str | None = None
    week: str | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_percentage(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("score_percentage") is not None:
            return data
        correct = data.get("correct_answers")
        total = data.get("total_questions")
        if isinstance(correct, int) and isinstance(total, int):
            pct = round(100 * correct / total, 2) if total else 0.0
            data = {**data, "score_percentage": pct}
        return data

    @model_validator(mode="after")
    def check_counts(self) -> "LeaderboardEntry":
        if self.correct_answers > self.total_questions:
            raise ValueError(
                f"correct_answers ({self.correct_answers}) exceeds "
                f"total_questions ({self.total_questions})"
            )
        if self.score_percentage is not None:
            expected = (
                100 * self.correct_answers / self.total_questions if self.total_questions else 0.0
            )
            if abs(self.score_percentage - expected) > PERCENTAGE_TOLERANCE:
                raise ValueError(
                    f"score_percentage ({self.score_percentage}) does not match "
                    f"{self.correct_answers}/{self.total_questions} ({expected:.2f})"
                )
        return self

    @property
    def badge_tier(self) -> int | None:
        """Podium tier (1, 2 or 3) or None for everyone else."""
        return self.rank if self.rank <= 3 else None

    @property
    def initial(self) -> str:
        name = self.user_name.strip()
        return name[0].upper() if name else "?"

    @property
    def formatted_time(self) -> str:
        return format_time(self.time_taken_seconds)


class Scope(BaseModel):
    """The (course, week) filter pair identifying a leaderboard population."""

    model_config = ConfigDict(frozen=True)

    course_id: str | None = None
    week: str | None = None

    @classmethod
    def all(cls) -> "Scope":
        return cls()

    @property
    def label(self) -> str:
        if self.course_id and self.week:
            return f"Course {self.course_id} • Week {self.week}"
        return "All Courses"

    def __str__(self) -> str:
        return f"course={self.course_id or '*'} week={self.week or '*'}"


class LeaderboardRow(BaseModel):
    """Entry decorated with per-viewer presentation flags."""

    model_config = ConfigDict(frozen=True)

    entry: LeaderboardEntry
    is_current_user: bool = False
    badge_tier: int | None = None


class LeaderboardView(BaseModel):
    """Snapshot pushed to a display surface."""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    rows: tuple[LeaderboardRow, ...] = ()
    loading: bool = False
    refreshed_at: datetime | None = None
    error: str | None = None

    @property
    def participant_count(self) -> int:
        return len(self.rows)

    @property
    def entries(self) -> list[LeaderboardEntry]:
        return [row.entry for row in self.rows]


def build_rows(
    entries: list[LeaderboardEntry],
    viewer_email: str | None,
) -> tuple[LeaderboardRow, ...]:
    """Attach viewer and badge flags to an ordered result set."""
    return tuple(
        LeaderboardRow(
            entry=entry,
            is_current_user=viewer_email is not None and entry.email == viewer_email,
            badge_tier=entry.badge_tier,
        )
        for entry in entries
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
