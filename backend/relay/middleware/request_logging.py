"""
Request/response logging.

Logs every request (method, path, client, headers, body, query) and the
response status and body that goes back to the caller. Secrets passed in the
query string are redacted before anything is written.
"""

import json
import logging
import uuid
from datetime import UTC, datetime
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REDACTED = "**redacted**"
SECRET_QUERY_PARAMS = frozenset({"hub.verify_token"})


def redact_query(items: list[tuple[str, str]]) -> list[tuple[str, str]]:
    return [(k, REDACTED if k in SECRET_QUERY_PARAMS else v) for k, v in items]


def redacted_url(request: Request) -> str:
    query = redact_query(request.query_params.multi_items())
    if not query:
        return request.url.path
    return f"{request.url.path}?{urlencode(query, safe='*')}"


def format_body(raw: bytes) -> str:
    if not raw:
        return "Body: Empty or not parsed"
    text = raw.decode("utf-8", errors="replace")
    try:
        return f"Body: {json.dumps(json.loads(text), indent=2)}"
    except (ValueError, RecursionError):
        return f"Body (non-JSON): {text}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = uuid.uuid4().hex[:12]
        timestamp = datetime.now(UTC).isoformat()
        client = request.client.host if request.client else "unknown"

        logger.info(f"===== REQUEST {request_id} START =====")
        logger.info(f"[{timestamp}] {request.method} {redacted_url(request)} from {client}")
        logger.info(f"Headers: {json.dumps(dict(request.headers), indent=2)}")

        raw = await request.body()
        logger.info(format_body(raw))

        query = redact_query(request.query_params.multi_items())
        if query:
            logger.info(f"Query params: {json.dumps(dict(query), indent=2)}")

        response = await call_next(request)

        # Drain the streamed response so its body can be logged, then resend
        # it unchanged.
        body = b"".join([chunk async for chunk in response.body_iterator])
        logger.info(f"Response {request_id} status: {response.status_code}")
        logger.info(f"Response {request_id} body: {body.decode('utf-8', errors='replace')}")
        logger.info(f"===== REQUEST {request_id} END =====")

        rebuilt = Response(
            content=body,
            status_code=response.status_code,
            background=getattr(response, "background", None),
        )
        # Keep repeated headers such as set-cookie
        rebuilt.raw_headers = list(response.raw_headers)
        return rebuilt
