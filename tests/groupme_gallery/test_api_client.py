"""
Tests for GroupMeApiClient.

Mocks the aiohttp session; covers auth header, status mapping, 304
handling and backoff on rate limiting.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime
from unittest.mock import Mock

import aiohttp
import pytest

from gallery_core.errors import (
    AuthError,
    GroupNotFoundError,
    ThrottlingError,
    TransportError,
)
from gallery_core.resilience import RetryConfig
from groupme_gallery.api_client import (
    GroupMeApiClient,
    classify_api_error,
    parse_retry_after,
)

FAST_RETRY = RetryConfig(max_attempts=3, base_delay=0, max_delay=0, jitter=False)


@pytest.fixture
def client(mock_session):
    return GroupMeApiClient("tok-123", session=mock_session, retry_config=FAST_RETRY)


def _respond(mock_session, response_ctx, *responses):
    mock_session.get = Mock(side_effect=[response_ctx(r) for r in responses])


class TestConstruction:
    def test_empty_token_is_auth_error(self, mock_session):
        with pytest.raises(AuthError):
            GroupMeApiClient("", session=mock_session)

    def test_invalid_base_url(self, mock_session):
        with pytest.raises(ValueError, match="base_url"):
            GroupMeApiClient("tok", base_url="api.groupme.com", session=mock_session)

    @pytest.mark.asyncio
    async def test_close_leaves_shared_session_open(self, mock_session):
        mock_session.close = Mock()
        async with GroupMeApiClient("tok", session=mock_session):
            pass
        mock_session.close.assert_not_called()


class TestRequests:
    @pytest.mark.asyncio
    async def test_token_header_and_params(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(200, {"response": {"messages": []}}))

        await client.get_messages("42", before_id="900", limit=50)

        call = mock_session.get.call_args
        assert call.args[0] == "https://api.groupme.com/v3/groups/42/messages"
        assert call.kwargs["headers"] == {"X-Access-Token": "tok-123"}
        assert call.kwargs["params"] == {"limit": 50, "before_id": "900"}

    @pytest.mark.asyncio
    async def test_first_page_has_no_before_id(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(200, {"response": {"messages": []}}))
        await client.get_messages("42")
        assert "before_id" not in mock_session.get.call_args.kwargs["params"]

    @pytest.mark.asyncio
    async def test_messages_are_returned(self, client, mock_session, response_ctx, json_response):
        messages = [{"id": "2"}, {"id": "1"}]
        _respond(mock_session, response_ctx, json_response(200, {"response": {"count": 2, "messages": messages}}))
        assert await client.get_messages("42") == messages

    @pytest.mark.asyncio
    async def test_304_means_no_more_messages(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(304))
        assert await client.get_messages("42", before_id="1") == []

    @pytest.mark.asyncio
    async def test_get_group(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(200, {"response": {"id": "42", "name": "Family"}}))
        assert (await client.get_group("42"))["name"] == "Family"

    @pytest.mark.asyncio
    async def test_list_groups_page(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(200, {"response": [{"id": "1"}]}))
        assert await client.list_groups_page(2, per_page=10) == [{"id": "1"}]
        assert mock_session.get.call_args.kwargs["params"] == {"page": 2, "per_page": 10}


class TestErrors:
    @pytest.mark.asyncio
    async def test_401_is_auth_error_without_retry(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(401))
        with pytest.raises(AuthError):
            await client.get_messages("42")
        assert mock_session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_404_group_is_not_found(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(404))
        with pytest.raises(GroupNotFoundError):
            await client.get_group("nope")

    @pytest.mark.asyncio
    async def test_500_is_transport_error_without_retry(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(500))
        with pytest.raises(TransportError) as exc_info:
            await client.get_messages("42")
        assert exc_info.value.status_code == 500
        assert mock_session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_429_backs_off_then_succeeds(self, client, mock_session, response_ctx, json_response):
        _respond(
            mock_session,
            response_ctx,
            json_response(429),
            json_response(429, headers={"Retry-After": "0"}),
            json_response(200, {"response": {"messages": [{"id": "1"}]}}),
        )
        assert await client.get_messages("42") == [{"id": "1"}]
        assert mock_session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_429_exhausts_attempts(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, *[json_response(429) for _ in range(3)])
        with pytest.raises(ThrottlingError):
            await client.get_messages("42")
        assert mock_session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, client, mock_session):
        mock_session.get = Mock(side_effect=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(TransportError, match="refused"):
            await client.get_messages("42")

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, client, mock_session):
        mock_session.get = Mock(side_effect=asyncio.TimeoutError())
        with pytest.raises(TransportError, match="Timeout"):
            await client.get_messages("42")

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, client, mock_session, response_ctx, json_response):
        _respond(mock_session, response_ctx, json_response(200, {"meta": {"code": 200}}))
        with pytest.raises(TransportError, match="Unexpected"):
            await client.get_messages("42")


class TestHelpers:
    def test_parse_retry_after_seconds(self):
        assert parse_retry_after("12") == 12.0
        assert parse_retry_after(None) is None
        assert parse_retry_after("soon") is None

    def test_parse_retry_after_http_date(self):
        when = datetime.now(UTC) + timedelta(seconds=30)
        delay = parse_retry_after(format_datetime(when, usegmt=True))
        assert 25 <= delay <= 31

    def test_classify_api_error(self):
        assert isinstance(classify_api_error(401, "u"), AuthError)
        throttled = classify_api_error(429, "u", retry_after=4)
        assert isinstance(throttled, ThrottlingError)
        assert throttled.retry_after == 4
        other = classify_api_error(503, "u")
        assert type(other) is TransportError
        assert other.status_code == 503
