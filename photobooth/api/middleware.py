"""ASGI middleware that bounds request bodies before any route reads them."""

from typing import List

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from photobooth.exceptions import TooLarge
from photobooth.logging import get_logger

logger = get_logger(__name__)


class BodySizeLimitMiddleware:
    """Refuses bodies larger than ``max_body_bytes`` with ``400 Image too large.``

    A declared ``Content-Length`` over the limit is refused without reading the
    body. Otherwise the body is read chunk by chunk, counting bytes as they
    arrive, and handed on to the app only once it is known to fit.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_bytes:
            await self._reject(scope, receive, send, int(declared))
            return

        messages: List[Message] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            more_body = message.get("more_body", False)

        async def replay() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning("request_body_too_large", path=scope.get("path"), size=size, limit=self.max_body_bytes)
        response = JSONResponse(status_code=TooLarge.status_code, content={"message": TooLarge.default_message})
        await response(scope, receive, send)
