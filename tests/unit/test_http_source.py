"""
Unit tests for the HTTP source client
"""

import httpx
import pytest
from pipeline.extractors.http_source import HTTPSourceClient, is_absolute_http_url
from core.exceptions import (
    PermanentExtractError,
    RetryableError,
    SourceTimeoutError,
    TransientExtractError,
)

ENDPOINT = "https://crm.example.com/api/contacts"


def client_for(handler, **kwargs) -> HTTPSourceClient:
    return HTTPSourceClient(transport=httpx.MockTransport(handler), **kwargs)


class TestHTTPSourceClient:
    """Test fetching and failure classification"""

    @pytest.mark.asyncio
    async def test_fetch_returns_records_in_order(self, mock_contact_data):
        """Test a JSON array is returned as-is"""
        client = client_for(lambda request: httpx.Response(200, json=mock_contact_data))

        records = await client.fetch(ENDPOINT, timeout=5)

        assert records == mock_contact_data

    @pytest.mark.asyncio
    async def test_fetch_empty_array(self):
        """Test an empty array is a successful extraction"""
        client = client_for(lambda request: httpx.Response(200, json=[]))

        assert await client.fetch(ENDPOINT) == []

    @pytest.mark.asyncio
    async def test_bearer_token_sent(self):
        """Test the API key is sent as a bearer token"""
        seen = {}

        def handler(request):
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        await client_for(handler, api_key="secret-key").fetch(ENDPOINT)

        assert seen["authorization"] == "Bearer secret-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [500, 502, 503])
    async def test_server_error_is_transient(self, status_code):
        """Test 5xx responses are retryable"""
        client = client_for(lambda request: httpx.Response(status_code, text="unavailable"))

        with pytest.raises(TransientExtractError) as exc_info:
            await client.fetch(ENDPOINT)

        assert isinstance(exc_info.value, RetryableError)
        assert str(status_code) in exc_info.value.message
        assert exc_info.value.context["status_code"] == status_code

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 404, 429])
    async def test_client_error_is_permanent(self, status_code):
        """Test non-5xx error responses are not retryable"""
        client = client_for(lambda request: httpx.Response(status_code))

        with pytest.raises(PermanentExtractError) as exc_info:
            await client.fetch(ENDPOINT)

        assert not isinstance(exc_info.value, RetryableError)
        assert str(status_code) in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        """Test a timed-out request is retryable"""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(SourceTimeoutError) as exc_info:
            await client_for(handler).fetch(ENDPOINT, timeout=0.5)

        assert isinstance(exc_info.value, TransientExtractError)

    @pytest.mark.asyncio
    async def test_connection_failure_is_transient(self):
        """Test connection errors are retryable"""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientExtractError):
            await client_for(handler).fetch(ENDPOINT)

    @pytest.mark.asyncio
    async def test_object_body_is_permanent(self):
        """Test a non-array JSON body is malformed"""
        client = client_for(lambda request: httpx.Response(200, json={"data": []}))

        with pytest.raises(PermanentExtractError) as exc_info:
            await client.fetch(ENDPOINT)

        assert "JSON array" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_is_permanent(self):
        """Test an unparseable body is malformed"""
        client = client_for(lambda request: httpx.Response(200, text="<html>not json</html>"))

        with pytest.raises(PermanentExtractError) as exc_info:
            await client.fetch(ENDPOINT)

        assert exc_info.value.message == "Failed to parse JSON response"

    @pytest.mark.asyncio
    async def test_relative_endpoint_is_rejected_without_request(self):
        """Test no request is made for an invalid endpoint"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        with pytest.raises(PermanentExtractError):
            await client_for(handler).fetch("/api/contacts")

        assert calls == []


class TestIsAbsoluteHttpUrl:
    """Test endpoint validation"""

    @pytest.mark.parametrize("value", [
        "http://localhost:8080/contacts",
        "https://crm.example.com/api/contacts?page=1",
    ])
    def test_accepts_absolute_urls(self, value):
        assert is_absolute_http_url(value)

    @pytest.mark.parametrize("value", [
        "/api/contacts",
        "crm.example.com/contacts",
        "ftp://crm.example.com/contacts",
        "",
    ])
    def test_rejects_other_values(self, value):
        assert not is_absolute_http_url(value)
