# campusbot/middleware/request_logger.py
import logging
import time
import uuid
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("campusbot.http")


class RequestLoggerMiddleware:
    """
    Logs every HTTP request with:
      - method, path, status, duration
      - X-Req-Id (from client, generated when absent; echoed on the response)

    Message bodies are not logged; chat transcripts stay out of the logs.
    """
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        rid = headers.get("x-req-id") or uuid.uuid4().hex[:12]
        method = scope.get("method", "-")
        path = scope.get("path", "-")
        start = time.time()
        status = {"code": 0}

        logger.info("[HTTP ►] rid=%s %s %s", rid, method, path)

        async def send_wrapper(message: Message):
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
                raw = list(message.get("headers", []))
                raw.append((b"x-req-id", rid.encode("latin-1", "replace")))
                message["headers"] = raw
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            dur_ms = (time.time() - start) * 1000
            logger.info("[HTTP ◄] rid=%s %s %s status=%s done in %.1fms", rid, method, path, status["code"], dur_ms)
