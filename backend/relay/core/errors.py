import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


async def plain_text_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    """Render HTTP errors as bare text markers instead of JSON."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=exc.headers
    )
