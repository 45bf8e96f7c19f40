from __future__ import annotations

import time
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from patchkeeper.exceptions import NetworkError, RegistryError
from patchkeeper.utils.http import HTTPClient, _retry_after


def _response(
    status: int,
    *,
    json_data: Any = None,
    headers: Optional[Dict[str, str]] = None,
    text: str = "",
) -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status
    response.headers = headers or {}
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.mark.unit
class TestHTTPClientInit:
    """Tests for HTTPClient initialization and configuration."""

    def test_default_values(self) -> None:
        """Test HTTPClient initializes with correct default values."""
        client = HTTPClient()

        assert client.timeout == 30
        assert client.max_retries == 3
        assert client.rate_limit_delay == 0.0
        assert client.verify_ssl is True
        assert client.max_concurrency == 10
        assert "patchkeeper" in client.user_agent
        assert client._max_429_retries == 5

    def test_custom_values(self) -> None:
        client = HTTPClient(
            timeout=10,
            max_retries=5,
            rate_limit_delay=0.5,
            verify_ssl=False,
            user_agent="CustomAgent/1.0",
            max_concurrency=20,
        )

        assert client.timeout == 10
        assert client.max_retries == 5
        assert client.rate_limit_delay == 0.5
        assert client.verify_ssl is False
        assert client.user_agent == "CustomAgent/1.0"
        assert client.max_concurrency == 20

    def test_initial_state(self) -> None:
        client = HTTPClient()

        assert client._client is None
        assert client._last_request_time == 0.0


@pytest.mark.unit
class TestHTTPClientContextManager:
    """Tests for HTTPClient async context manager protocol."""

    @pytest.mark.asyncio
    async def test_context_manager_creates_and_closes_client(self) -> None:
        client = HTTPClient()

        async with client as entered:
            assert entered is client
            assert isinstance(client._client, httpx.AsyncClient)

        assert client._client is None

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        client = HTTPClient()

        await client.close()
        await client.close()

        assert client._client is None


@pytest.mark.unit
class TestHTTPClientRateLimit:
    """Tests for HTTPClient._rate_limit."""

    @pytest.mark.asyncio
    async def test_rate_limit_no_delay(self) -> None:
        """Test rate limiting is disabled when the delay is zero."""
        client = HTTPClient(rate_limit_delay=0.0)

        start = time.monotonic()
        await client._rate_limit()
        await client._rate_limit()

        assert time.monotonic() - start < 0.05
        assert client._last_request_time == 0.0

    @pytest.mark.asyncio
    async def test_rate_limit_enforces_delay(self) -> None:
        """Test consecutive calls are separated by at least the delay."""
        client = HTTPClient(rate_limit_delay=0.1)

        await client._rate_limit()
        start = time.monotonic()
        await client._rate_limit()

        assert time.monotonic() - start >= 0.08


@pytest.mark.unit
class TestHTTPClientSend:
    """Tests for HTTPClient._send retry logic."""

    @pytest.mark.asyncio
    async def test_successful_request(self) -> None:
        """Test 200 OK returns without retries."""
        client = HTTPClient(max_retries=1)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(200)

            async with client:
                response = await client._send("GET", "https://example.com")

        assert response.status_code == 200
        assert mock_request.call_count == 1

    @pytest.mark.asyncio
    async def test_5xx_retried_then_succeeds(self) -> None:
        client = HTTPClient(max_retries=2)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch(
            "patchkeeper.utils.http.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            mock_request.side_effect = [_response(503), _response(200)]

            async with client:
                response = await client._send("GET", "https://example.com")

        assert response.status_code == 200
        assert mock_request.call_count == 2
        assert mock_sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_5xx_exhausts_retries(self) -> None:
        client = HTTPClient(max_retries=2)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("patchkeeper.utils.http.asyncio.sleep", new_callable=AsyncMock):
            mock_request.return_value = _response(500)

            async with client:
                with pytest.raises(NetworkError) as exc_info:
                    await client._send("GET", "https://example.com")

        assert "after 3 attempts" in str(exc_info.value)
        assert mock_request.call_count == 3

    @pytest.mark.asyncio
    async def test_timeout_retried(self) -> None:
        client = HTTPClient(max_retries=1)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("patchkeeper.utils.http.asyncio.sleep", new_callable=AsyncMock):
            mock_request.side_effect = [httpx.ReadTimeout("slow"), _response(200)]

            async with client:
                response = await client._send("GET", "https://example.com")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_connection_error_exhausts_retries(self) -> None:
        client = HTTPClient(max_retries=0)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = httpx.ConnectError("refused")

            async with client:
                with pytest.raises(NetworkError) as exc_info:
                    await client._send("GET", "https://example.com")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_404_raises_registry_error(self) -> None:
        """Test a missing resource is not retried."""
        client = HTTPClient(max_retries=3)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(404)

            async with client:
                with pytest.raises(RegistryError) as exc_info:
                    await client._send("GET", "https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert mock_request.call_count == 1

    @pytest.mark.asyncio
    async def test_other_4xx_raises_network_error(self) -> None:
        client = HTTPClient(max_retries=3)

        with patch.object(httpx.AsyncClient, "request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _response(403, text="forbidden")

            async with client:
                with pytest.raises(NetworkError) as exc_info:
                    await client._send("GET", "https://example.com")

        assert not isinstance(exc_info.value, RegistryError)
        assert exc_info.value.status_code == 403
        assert exc_info.value.response_body == "forbidden"

    @pytest.mark.asyncio
    async def test_429_does_not_consume_retries(self) -> None:
        """Test throttled responses are retried on top of max_retries."""
        client = HTTPClient(max_retries=0)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch(
            "patchkeeper.utils.http.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            mock_request.side_effect = [
                _response(429, headers={"Retry-After": "2"}),
                _response(429),
                _response(200),
            ]

            async with client:
                response = await client._send("GET", "https://example.com")

        assert response.status_code == 200
        assert [c.args[0] for c in mock_sleep.await_args_list] == [2, 1]

    @pytest.mark.asyncio
    async def test_429_gives_up(self) -> None:
        client = HTTPClient(max_retries=0)

        with patch.object(
            httpx.AsyncClient, "request", new_callable=AsyncMock
        ) as mock_request, patch("patchkeeper.utils.http.asyncio.sleep", new_callable=AsyncMock):
            mock_request.return_value = _response(429, headers={"Retry-After": "0"})

            async with client:
                with pytest.raises(NetworkError) as exc_info:
                    await client._send("GET", "https://example.com")

        assert exc_info.value.status_code == 429
        assert mock_request.call_count == 6


@pytest.mark.unit
class TestHTTPClientGetJson:
    """Tests for HTTPClient.get and get_json."""

    @pytest.mark.asyncio
    async def test_get_strips_url(self) -> None:
        client = HTTPClient()

        with patch.object(client, "_send", new_callable=AsyncMock) as mock_send:
            await client.get("  https://example.com/x  ")

        mock_send.assert_awaited_once_with("GET", "https://example.com/x")

    @pytest.mark.asyncio
    async def test_returns_object(self) -> None:
        client = HTTPClient()

        with patch.object(client, "_send", new_callable=AsyncMock) as mock_send:
            mock_send.return_value = _response(200, json_data={"info": {}})

            assert await client.get_json("https://example.com") == {"info": {}}

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        client = HTTPClient()

        with patch.object(client, "_send", new_callable=AsyncMock) as mock_send:
            mock_send.return_value = _response(200, json_data=ValueError("bad"), text="<html>")

            with pytest.raises(NetworkError, match="Invalid JSON"):
                await client.get_json("https://example.com")

    @pytest.mark.asyncio
    async def test_non_object_json(self) -> None:
        client = HTTPClient()

        with patch.object(client, "_send", new_callable=AsyncMock) as mock_send:
            mock_send.return_value = _response(200, json_data=[1, 2])

            with pytest.raises(NetworkError, match="Expected JSON object"):
                await client.get_json("https://example.com")


@pytest.mark.unit
class TestRetryAfter:
    """Tests for _retry_after header parsing."""

    @pytest.mark.parametrize(
        "headers,expected",
        [({}, 1), ({"Retry-After": "7"}, 7), ({"Retry-After": "-3"}, 0), ({"Retry-After": "soon"}, 1)],
    )
    def test_values(self, headers: Dict[str, str], expected: int) -> None:
        assert _retry_after(_response(429, headers=headers)) == expected
