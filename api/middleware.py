# ============================================================================
# File: api/middleware.py
# ============================================================================

import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 64


def resolve_request_id(header_value: str) -> str:
    """Keep a caller-supplied X-Request-ID when it fits in a run row, else mint one"""
    candidate = (header_value or "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH:
        return candidate
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per request:
    - request.state.request_id, echoed as X-Request-ID; also the pipeline run id
    - X-API-Latency-ms
    - one access log line
    """

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get("X-Request-ID", ""))
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - started) * 1000)
        # A route may re-key the request (run id already taken)
        request_id = response.headers.setdefault("X-Request-ID", request_id)
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} ({latency_ms} ms)"
        )
        return response
