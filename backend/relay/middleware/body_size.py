import logging

from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from relay.core.config import MAX_BODY_SIZE

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """
    Reject requests whose body is larger than max_size bytes.

    The declared Content-Length is checked first; bodies without one
    (chunked) are counted while they are read. Accepted bodies are buffered
    and replayed to the wrapped app.
    """

    def __init__(self, app: ASGIApp, max_size: int = MAX_BODY_SIZE):
        self.app = app
        self.max_size = max_size

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size) -> None:
        logger.warning(
            f"Rejected {scope.get('method')} {scope.get('path')}: "
            f"{size} bytes exceeds {self.max_size}"
        )
        response = PlainTextResponse("Payload too large", status_code=413)
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Request(scope).headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            await self._reject(scope, receive, send, content_length)
            return

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body = message.get("body", b"")
            size += len(body)
            if size > self.max_size:
                await self._reject(scope, receive, send, f"more than {size}")
                return
            chunks.append(body)
            if not message.get("more_body", False):
                break

        buffered: Message | None = {
            "type": "http.request",
            "body": b"".join(chunks),
            "more_body": False,
        }

        async def replay() -> Message:
            nonlocal buffered
            if buffered is not None:
                message, buffered = buffered, None
                return message
            return await receive()

        await self.app(scope, replay, send)
