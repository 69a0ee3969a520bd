"""
HTTP source client for the Extract stage.

Fetches a JSON array of contact records from one upstream endpoint:
- Bounded per-request timeout (never unbounded)
- Optional bearer token authentication
- Status codes classified into transient (5xx) and permanent (4xx) failures
- No retries here; the runner owns the retry policy
"""

import httpx
from typing import List, Dict, Any, Optional
from pipeline.base import SourceClient
from core.config import settings
from core.exceptions import (
    PermanentExtractError,
    SourceTimeoutError,
    TransientExtractError,
)
import logging

logger = logging.getLogger(__name__)


def is_absolute_http_url(value: str) -> bool:
    """True for absolute http/https URLs with a host"""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        return False
    return url.scheme in ("http", "https") and bool(url.host)


class HTTPSourceClient(SourceClient):
    """
    Extract raw records from a REST endpoint returning a JSON array.

    Attributes:
        api_key: Bearer token sent to the upstream (default: settings.SOURCE_API_KEY)
        default_timeout: Timeout in seconds when fetch() is called without one
        transport: Optional httpx transport, used to stub the upstream in tests
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key or settings.SOURCE_API_KEY
        self.default_timeout = default_timeout or settings.SOURCE_TIMEOUT_SECONDS
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch(
        self,
        source_endpoint: str,
        timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch every record the endpoint returns in a single GET.

        Args:
            source_endpoint: Absolute http(s) URL of the upstream
            timeout: Seconds before the request is abandoned

        Returns:
            List of raw records, in upstream order

        Raises:
            TransientExtractError: 5xx or connection failure
            SourceTimeoutError: The timeout elapsed
            PermanentExtractError: Invalid endpoint, 4xx/other status, malformed body
        """
        if not is_absolute_http_url(source_endpoint):
            raise PermanentExtractError(
                f"Source endpoint is not an absolute http(s) URI: {source_endpoint}",
                context={"source_endpoint": source_endpoint}
            )

        timeout = timeout or self.default_timeout
        context = {"source_endpoint": source_endpoint, "timeout": timeout}

        logger.info(f"Fetching records from {source_endpoint} (timeout={timeout}s)")

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await client.get(source_endpoint, headers=self._headers())

        except httpx.TimeoutException as e:
            raise SourceTimeoutError(
                f"Request to {source_endpoint} timed out after {timeout}s",
                context=context,
                original_exception=e
            )

        except httpx.TransportError as e:
            raise TransientExtractError(
                f"Connection to {source_endpoint} failed",
                context=context,
                original_exception=e
            )

        status_code = response.status_code
        context["status_code"] = status_code

        if status_code >= 500:
            context["response_body"] = response.text[:500]  # Truncate
            raise TransientExtractError(
                f"Upstream returned HTTP {status_code}",
                context=context
            )

        if not 200 <= status_code < 300:
            context["response_body"] = response.text[:500]
            raise PermanentExtractError(
                f"Upstream returned HTTP {status_code}",
                context=context
            )

        try:
            data = response.json()
        except ValueError as e:
            context["response_body"] = response.text[:500]
            raise PermanentExtractError(
                "Failed to parse JSON response",
                context=context,
                original_exception=e
            )

        if not isinstance(data, list):
            raise PermanentExtractError(
                f"Expected a JSON array, got {type(data).__name__}",
                context=context
            )

        logger.info(f"Fetched {len(data)} records from {source_endpoint}")
        return data
