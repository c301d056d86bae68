"""Unit tests for the Microsoft Graph HTTP wrapper.

Tests GraphClient with httpx.AsyncClient.get patched out. Covers:
- Request construction for calendarView, onlineMeetings, transcripts and
  transcript content
- $top capping and OData quoting of join URLs
- Status code mapping to the GraphError hierarchy
- tenacity retry on transient failures, no retry on access errors
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from src.transcripts.services.graph.client import (
    CALENDAR_SELECT,
    GraphAccessDeniedError,
    GraphClient,
    GraphError,
    GraphNotFoundError,
    GraphTransportError,
)


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def graph_client():
    """GraphClient with a single attempt and no backoff."""
    return GraphClient(base_url="https://graph.test/v1.0", max_attempts=1, retry_backoff=0)


@pytest.fixture
def retrying_client():
    """GraphClient that retries three times without waiting."""
    return GraphClient(base_url="https://graph.test/v1.0", max_attempts=3, retry_backoff=0)


def _response(status: int, json=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("GET", "https://graph.test")
    if json is not None:
        return httpx.Response(status, json=json, request=request)
    if text is not None:
        return httpx.Response(status, text=text, request=request)
    return httpx.Response(status, request=request)


# ── Request Construction ────────────────────────────────────────────────────


class TestRequestConstruction:
    """Tests for URLs, query parameters and headers."""

    @pytest.mark.asyncio
    async def test_calendar_view_params(self, graph_client):
        """query_calendar_window sends window, $select, $orderby and $top."""
        mock_response = _response(200, json={"value": [{"id": "evt-1"}]})

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            events = await graph_client.query_calendar_window(
                "tok", "2026-02-01T00:00:00Z", "2026-02-02T00:00:00Z", 25
            )

        assert events == [{"id": "evt-1"}]
        url = mock_get.call_args.args[0]
        params = mock_get.call_args.kwargs["params"]
        assert url == "https://graph.test/v1.0/me/calendarView"
        assert params["startDateTime"] == "2026-02-01T00:00:00Z"
        assert params["endDateTime"] == "2026-02-02T00:00:00Z"
        assert params["$select"] == CALENDAR_SELECT
        assert params["$orderby"] == "start/dateTime desc"
        assert params["$top"] == "25"

    @pytest.mark.asyncio
    async def test_calendar_top_capped_at_backend_limit(self, graph_client):
        mock_response = _response(200, json={"value": []})

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            await graph_client.query_calendar_window("tok", "a", "b", 500)

        assert mock_get.call_args.kwargs["params"]["$top"] == "100"

    @pytest.mark.asyncio
    async def test_missing_value_is_empty_list(self, graph_client):
        mock_response = _response(200, json={})

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            events = await graph_client.query_calendar_window("tok", "a", "b", 10)

        assert events == []

    @pytest.mark.asyncio
    async def test_join_url_filter_quotes_literal(self, graph_client):
        """Single quotes in the join URL are doubled inside the OData literal."""
        mock_response = _response(200, json={"value": [{"id": "m-1"}, {"id": "m-2"}]})

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            meeting = await graph_client.find_meeting_by_join_url(
                "tok", "https://teams.test/l/meetup-join/it's"
            )

        assert meeting == {"id": "m-1"}
        assert mock_get.call_args.args[0] == "https://graph.test/v1.0/me/onlineMeetings"
        assert mock_get.call_args.kwargs["params"]["$filter"] == (
            "JoinWebUrl eq 'https://teams.test/l/meetup-join/it''s'"
        )

    @pytest.mark.asyncio
    async def test_join_url_no_match_returns_none(self, graph_client):
        mock_response = _response(200, json={"value": []})

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await graph_client.find_meeting_by_join_url("tok", "https://x") is None

    @pytest.mark.asyncio
    async def test_list_transcripts_and_recordings_paths(self, graph_client):
        mock_response = _response(200, json={"value": [{"id": "t-1"}]})

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            transcripts = await graph_client.list_transcripts("tok", "meeting-1")
            await graph_client.list_recordings("tok", "meeting-1")

        assert transcripts == [{"id": "t-1"}]
        urls = [call.args[0] for call in mock_get.call_args_list]
        assert urls == [
            "https://graph.test/v1.0/me/onlineMeetings/meeting-1/transcripts",
            "https://graph.test/v1.0/me/onlineMeetings/meeting-1/recordings",
        ]

    @pytest.mark.asyncio
    async def test_download_requests_vtt_format(self, graph_client):
        """Transcript content is requested explicitly as text/vtt."""
        mock_response = _response(200, text="WEBVTT\n\n")

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            content = await graph_client.download_transcript_content("tok", "m-1", "t-1")

        assert content == "WEBVTT\n\n"
        assert mock_get.call_args.args[0] == (
            "https://graph.test/v1.0/me/onlineMeetings/m-1/transcripts/t-1/content"
        )
        assert mock_get.call_args.kwargs["params"] == {"$format": "text/vtt"}

    @pytest.mark.asyncio
    async def test_ids_encoded_as_single_path_segments(self, graph_client):
        mock_response = _response(200, json={"value": []})

        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response
        ) as mock_get:
            await graph_client.list_transcripts("tok", "a/../b#x")
            await graph_client.download_transcript_content("tok", "m 1", "t/2?x=1")

        urls = [call.args[0] for call in mock_get.call_args_list]
        assert urls == [
            "https://graph.test/v1.0/me/onlineMeetings/a%2F..%2Fb%23x/transcripts",
            "https://graph.test/v1.0/me/onlineMeetings/m%201/transcripts/t%2F2%3Fx%3D1/content",
        ]

    def test_client_headers(self, graph_client):
        """Each request client carries the bearer token, Accept and UTC preference."""
        client = graph_client._client("tok", 5.0, accept="text/vtt")

        assert client.headers["Authorization"] == "Bearer tok"
        assert client.headers["Accept"] == "text/vtt"
        assert client.headers["Prefer"] == 'outlook.timezone="UTC"'


# ── Error Mapping ───────────────────────────────────────────────────────────


class TestErrorMapping:
    """Tests for HTTP status to GraphError mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_access_denied(self, graph_client, status):
        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(status)
        ):
            with pytest.raises(GraphAccessDeniedError) as exc_info:
                await graph_client.list_transcripts("tok", "m-1")

        assert exc_info.value.status_code == status
        assert exc_info.value.operation == "list_transcripts"

    @pytest.mark.asyncio
    async def test_not_found(self, graph_client):
        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(404)
        ):
            with pytest.raises(GraphNotFoundError):
                await graph_client.download_transcript_content("tok", "m-1", "t-1")

    @pytest.mark.asyncio
    async def test_server_error_is_transport_error(self, graph_client):
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(500, text="upstream exploded"),
        ):
            with pytest.raises(GraphTransportError) as exc_info:
                await graph_client.list_recordings("tok", "m-1")

        assert exc_info.value.status_code == 500
        assert "upstream exploded" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_network_error_has_no_status(self, graph_client):
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("connection refused"),
        ):
            with pytest.raises(GraphTransportError) as exc_info:
                await graph_client.query_calendar_window("tok", "a", "b", 10)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_transport_error(self, graph_client):
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(200, text="<html>not json</html>"),
        ):
            with pytest.raises(GraphTransportError):
                await graph_client.list_transcripts("tok", "m-1")

    def test_hierarchy(self):
        for cls in (GraphTransportError, GraphAccessDeniedError, GraphNotFoundError):
            assert issubclass(cls, GraphError)


# ── Retry ───────────────────────────────────────────────────────────────────


class TestRetry:
    """Tests for transient failure retry."""

    @pytest.mark.asyncio
    async def test_retry_on_transient_failure(self, retrying_client):
        """A 503 followed by success returns the successful payload."""
        error_response = _response(503)
        success_response = _response(200, json={"value": [{"id": "t-1"}]})

        call_count = 0

        async def mock_get(*args, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                return error_response
            return success_response

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=mock_get):
            result = await retrying_client.list_transcripts("tok", "m-1")

        assert result == [{"id": "t-1"}]
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_retry_gives_up_after_max_attempts(self, retrying_client):
        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(429)
        ) as mock_get:
            with pytest.raises(GraphTransportError) as exc_info:
                await retrying_client.list_transcripts("tok", "m-1")

        assert mock_get.call_count == 3
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_access_denied_not_retried(self, retrying_client):
        with patch(
            "httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(403)
        ) as mock_get:
            with pytest.raises(GraphAccessDeniedError):
                await retrying_client.find_meeting_by_join_url("tok", "https://x")

        assert mock_get.call_count == 1
