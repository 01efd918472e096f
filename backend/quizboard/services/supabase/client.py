"""Async Supabase PostgREST client for the ranked leaderboard RPC."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .config import SupabaseConfig
from .exceptions import (
    SupabaseAPIError,
    SupabaseAuthError,
    SupabaseNetworkError,
    SupabaseResponseError,
    SupabaseServerError,
)
from .models import LeaderboardRpcParams

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Ranked-data provider backed by a Supabase RPC.

    The client owns one ``httpx.AsyncClient`` for its lifetime. Call
    ``open()``/``close()`` explicitly or use it as an async context manager.
    """

    def __init__(
        self,
        config: SupabaseConfig | None = None,
        url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or SupabaseConfig()

        if url:
            self.config.url = url
        if api_key:
            self.config.api_key = api_key

        if not self.config.url or not self.config.api_key:
            raise SupabaseAuthError(
                "Supabase url and api_key are required. Provide via config or constructor."
            )

        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info(f"Initialized SupabaseClient for {self.config.url}")

    async def open(self) -> SupabaseClient:
        if self._client is not None:
            return self
        self._client = httpx.AsyncClient(
            base_url=self.config.rest_url,
            timeout=self.config.timeout_seconds,
            headers={
                "apikey": self.config.api_key,
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )
        return self

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed SupabaseClient")

    async def __aenter__(self) -> SupabaseClient:
        return await self.open()

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "SupabaseClient must be opened before use"
            )
        return self._client

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a Postgres function through PostgREST and return decoded JSON."""
        endpoint = f"rpc/{function}"
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.post(endpoint, json=params)
            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout calling {function}, retrying ({retry_count})...")
                    await asyncio.sleep(self._backoff(retry_count))
                continue
            except httpx.RequestError as e:
                logger.error(f"Network error calling {function}: {e}")
                raise SupabaseNetworkError(f"Network error: {e}") from e

            if response.status_code in (401, 403):
                raise SupabaseAuthError(
                    "Authentication failed", status_code=response.status_code
                )
            if response.status_code == 429 or response.status_code >= 500:
                last_error = SupabaseServerError(
                    f"HTTP {response.status_code} from {function}",
                    status_code=response.status_code,
                )
                retry_count += 1
                if retry_count < self.config.max_retries:
                    wait_time = self._backoff(retry_count)
                    logger.warning(
                        f"Server error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)
                continue
            if response.status_code >= 400:
                raise SupabaseAPIError(
                    f"RPC {function} rejected: {response.text}",
                    status_code=response.status_code,
                )

            try:
                return response.json()
            except ValueError as e:
                raise SupabaseResponseError(
                    f"Invalid JSON from {function}: {e}",
                    status_code=response.status_code,
                ) from e

        if isinstance(last_error, SupabaseAPIError):
            raise last_error
        raise SupabaseNetworkError(
            f"Request failed after {retry_count} retries: {last_error}"
        )

    async def get_leaderboard(
        self,
        course_id: str | None,
        week: str | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Fetch the ranked leaderboard for a course/week scope."""
        params = LeaderboardRpcParams(
            p_course_id=course_id,
            p_week=week,
            p_limit=limit,
        )
        data = await self.rpc(self.config.leaderboard_function, params.model_dump())
        if data is None:
            return []
        return data

    def _backoff(self, attempt: int) -> float:
        return self.config.backoff_base_seconds * (2 ** (attempt - 1))


def create_supabase_client(
    url: str | None = None,
    api_key: str | None = None,
    config: SupabaseConfig | None = None,
) -> SupabaseClient:
    """Create a SupabaseClient instance."""
    return SupabaseClient(config=config, url=url, api_key=api_key)
