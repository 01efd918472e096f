"""
Unit Tests: Supabase Client

Tests for the ranked-data provider client against a mocked transport.

Test cases:
- RPC request shape (endpoint, headers, body)
- Retry on 5xx/429, failure after max retries
- Auth, client-error, network and decode failures
- Explicit open/close lifecycle
"""

import json

import httpx
import pytest

from quizboard.services.supabase import (
    SupabaseAPIError,
    SupabaseAuthError,
    SupabaseClient,
    SupabaseConfig,
    SupabaseNetworkError,
    SupabaseResponseError,
    SupabaseServerError,
)
from tests.conftest import SCENARIO_ROWS


def _client(handler, **config) -> SupabaseClient:
    config = SupabaseConfig(
        url="https://example.supabase.co/",
        api_key="anon-key",
        backoff_base_seconds=0,
        **config,
    )
    return SupabaseClient(config=config, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_leaderboard_calls_rpc():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SCENARIO_ROWS)

    async with _client(handler) as client:
        rows = await client.get_leaderboard("CS101", "3", 1000)

    assert rows == SCENARIO_ROWS
    [request] = seen
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/rpc/get_leaderboard_by_course_week"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"
    assert json.loads(request.content) == {"p_course_id": "CS101", "p_week": "3", "p_limit": 1000}


@pytest.mark.asyncio
async def test_no_filter_sends_nulls():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=[])

    async with _client(handler) as client:
        assert await client.get_leaderboard(None, None, 10) == []

    assert bodies == [{"p_course_id": None, "p_week": None, "p_limit": 10}]


@pytest.mark.asyncio
async def test_null_body_is_empty_list():
    async with _client(lambda request: httpx.Response(200, content=b"null")) as client:
        assert await client.get_leaderboard(None, None, 10) == []


@pytest.mark.asyncio
async def test_server_error_retried_then_succeeds():
    statuses = iter([503, 429, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        return httpx.Response(status, json=SCENARIO_ROWS if status == 200 else {})

    async with _client(handler) as client:
        assert await client.get_leaderboard(None, None, 10) == SCENARIO_ROWS


@pytest.mark.asyncio
async def test_persistent_server_error_raises_after_max_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="boom")

    async with _client(handler, max_retries=3) as client:
        with pytest.raises(SupabaseServerError) as exc_info:
            await client.get_leaderboard(None, None, 10)

    assert exc_info.value.status_code == 500
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_timeouts_retried_then_network_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler, max_retries=2) as client:
        with pytest.raises(SupabaseNetworkError):
            await client.get_leaderboard(None, None, 10)

    assert len(calls) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_auth_failure(status):
    async with _client(lambda request: httpx.Response(status)) as client:
        with pytest.raises(SupabaseAuthError) as exc_info:
            await client.get_leaderboard(None, None, 10)

    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_client_error_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"message": "function not found"})

    async with _client(handler) as client:
        with pytest.raises(SupabaseAPIError) as exc_info:
            await client.get_leaderboard(None, None, 10)

    assert exc_info.value.status_code == 404
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_connection_error_raises_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(SupabaseNetworkError):
            await client.get_leaderboard(None, None, 10)


@pytest.mark.asyncio
async def test_invalid_json_raises_response_error():
    async with _client(lambda request: httpx.Response(200, content=b"<html>")) as client:
        with pytest.raises(SupabaseResponseError):
            await client.get_leaderboard(None, None, 10)


@pytest.mark.asyncio
async def test_explicit_open_close_lifecycle():
    client = _client(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(RuntimeError):
        await client.get_leaderboard(None, None, 10)

    await client.open()
    assert client.is_open
    assert await client.get_leaderboard(None, None, 10) == []

    await client.close()
    assert not client.is_open
    await client.close()


def test_credentials_required():
    with pytest.raises(SupabaseAuthError):
        SupabaseClient(config=SupabaseConfig())


def test_rest_url_strips_trailing_slash():
    assert SupabaseConfig(url="https://p.supabase.co/").rest_url == "https://p.supabase.co/rest/v1"
