"""Ranking query adapter.

Translates a (course, week, limit) request into a provider call and returns a
validated, rank-ordered result set. A result set is either accepted whole or
rejected whole: any row that breaks the entry contract fails the fetch.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from .exceptions import MalformedResponseError, TransientFetchError
from .models import LeaderboardEntry, Scope

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000


class RankedDataProvider(Protocol):
    async def get_leaderboard(
        self,
        course_id: str | None,
        week: str | None,
        limit: int,
    ) -> list[dict[str, Any]]: ...


def normalize_filter(value: str | None) -> str | None:
    """Map empty and whitespace-only filters to "no filter"."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def tie_break_key(entry: LeaderboardEntry) -> tuple:
    return (entry.rank, -entry.correct_answers, entry.time_taken_seconds, entry.email)


class RankingQueryAdapter:
    """Fetches ranked leaderboard snapshots from a provider."""

    def __init__(self, provider: RankedDataProvider, default_limit: int = DEFAULT_LIMIT):
        if default_limit < 1:
            raise ValueError("default_limit must be at least 1")
        self.provider = provider
        self.default_limit = default_limit

    async def fetch(
        self,
        course_filter: str | None = None,
        week_filter: str | None = None,
        limit: int | None = None,
    ) -> list[LeaderboardEntry]:
        """Return entries ordered by rank ascending.

        Raises:
            TransientFetchError: provider or network failure.
            MalformedResponseError: payload violates the entry contract.
        """
        if limit is None:
            limit = self.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

        scope = Scope(
            course_id=normalize_filter(course_filter),
            week=normalize_filter(week_filter),
        )

        try:
            payload = await self.provider.get_leaderboard(
                scope.course_id, scope.week, limit
            )
        except Exception as e:
            raise TransientFetchError(
                f"Leaderboard fetch failed for {scope}: {e}", scope=scope
            ) from e

        entries = self._validate(payload, limit, scope)
        logger.debug(f"Fetched {len(entries)} leaderboard entries for {scope}")
        return entries

    def _validate(
        self,
        payload: Any,
        limit: int,
        scope: Scope,
    ) -> list[LeaderboardEntry]:
        if payload is None:
            payload = []
        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"Expected a list of rows, got {type(payload).__name__}", scope=scope
            )
        if len(payload) > limit:
            raise MalformedResponseError(
                f"Provider returned {len(payload)} rows for limit {limit}", scope=scope
            )

        entries: list[LeaderboardEntry] = []
        seen: set[str] = set()
        for index, row in enumerate(payload):
            try:
                entry = LeaderboardEntry.model_validate(row)
            except ValidationError as e:
                raise MalformedResponseError(
                    f"Row {index} is invalid: {e.error_count()} error(s)", scope=scope
                ) from e
            if entry.email in seen:
                raise MalformedResponseError(
                    f"Duplicate email in result set: {entry.email}", scope=scope
                )
            if entries and entry.rank < entries[-1].rank:
                raise MalformedResponseError(
                    f"Row {index} out of rank order "
                    f"({entry.rank} after {entries[-1].rank})",
                    scope=scope,
                )
            seen.add(entry.email)
            entries.append(entry)

        # Equal ranks get a deterministic order; distinct ranks keep provider order.
        entries.sort(key=tie_break_key)
        return entries
