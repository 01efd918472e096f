"""Display surfaces that receive published leaderboard views."""

from __future__ import annotations

import sys
from typing import TextIO

from .models import LeaderboardView

BADGES = {1: "🥇", 2: "🥈", 3: "🥉"}
EMPTY_MESSAGE = "No leaderboard data available for this selection."


class SnapshotDisplay:
    """Keeps the latest published view in memory."""

    def __init__(self, keep_history: bool = False):
        self.latest: LeaderboardView | None = None
        self.keep_history = keep_history
        self.history: list[LeaderboardView] = []

    def render(self, view: LeaderboardView) -> None:
        self.latest = view
        if self.keep_history:
            self.history.append(view)


def render_table(view: LeaderboardView) -> str:
    """Format a view as a plain-text table."""
    lines = [f"=== Leaderboard: {view.scope.label} ==="]

    if view.loading and not view.rows:
        lines.append("Loading...")
        return "\n".join(lines)

    if not view.rows:
        lines.append(EMPTY_MESSAGE)
    else:
        lines.append(
            f"  {'Rank':<6}{'Name':<28}{'College':<24}{'Score':>8}{'%':>8}{'Time':>8}"
        )
        for row in view.rows:
            entry = row.entry
            marker = "*" if row.is_current_user else " "
            badge = BADGES.get(row.badge_tier) or str(entry.rank)
            name = f"[{entry.initial}] {entry.user_name}"
            lines.append(
                f"{marker} {badge:<6}{name[:27]:<28}{(entry.college_name or '-')[:23]:<24}"
                f"{f'{entry.correct_answers}/{entry.total_questions}':>8}"
                f"{entry.score_percentage or 0:>7g}%"
                f"{entry.formatted_time:>8}"
            )

    lines.append(f"{view.participant_count} participants")
    if view.error:
        lines.append(f"(showing last known results: {view.error})")
    return "\n".join(lines)


class ConsoleDisplay:
    """Prints the table, skipping redraws when nothing visible changed."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self._last_rendered: str | None = None
        self.redraws = 0

    def render(self, view: LeaderboardView) -> None:
        text = render_table(view)
        if text == self._last_rendered:
            return
        self._last_rendered = text
        self.redraws += 1
        print(text + "\n", file=self.stream, flush=True)
