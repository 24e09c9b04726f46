"""
Middlewares Pure ASGI da plataforma.
"""
from __future__ import annotations

import logging
import time
import uuid

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send, Message


class ASGIMiddleware:
    """
    Base para middlewares Pure ASGI.

    Herde desta classe e implemente os hooks que precisar:

    - before_request(scope, request): Antes de processar a request
    - after_response(scope, request, status_code, response_headers): Ao iniciar a response
    - on_error(scope, request, exc): Quando ocorre exceção (a exceção é sempre relançada)
    """

    name: str = "ASGIMiddleware"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if "state" not in scope:
            scope["state"] = {}

        request = Request(scope, receive, send)
        await self.before_request(scope, request)

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started

            if message["type"] == "http.response.start":
                response_headers = list(message.get("headers", []))
                await self.after_response(scope, request, message["status"], response_headers)
                message = {**message, "headers": response_headers}
                response_started = True

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if not response_started:
                await self.on_error(scope, request, exc)
            raise

    async def before_request(self, scope: Scope, request: Request) -> None:
        """Hook executado antes da request."""
        return None

    async def after_response(
        self,
        scope: Scope,
        request: Request,
        status_code: int,
        response_headers: list[tuple[bytes, bytes]],
    ) -> None:
        """Hook executado ao iniciar a response (pode modificar headers in-place)."""
        return None

    async def on_error(self, scope: Scope, request: Request, exc: Exception) -> None:
        """Hook executado quando ocorre exceção antes do início da response."""
        return None


class RequestIDMiddleware(ASGIMiddleware):
    """
    Middleware que adiciona ID único a cada request.
    Útil para tracing e logs.
    """

    name = "RequestIDMiddleware"
    header_name: str = "X-Request-ID"

    async def before_request(self, scope: Scope, request: Request) -> None:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        scope["state"]["request_id"] = request_id

    async def after_response(
        self,
        scope: Scope,
        request: Request,
        status_code: int,
        response_headers: list[tuple[bytes, bytes]],
    ) -> None:
        request_id = scope["state"].get("request_id")
        if request_id:
            response_headers.append((self.header_name.lower().encode(), request_id.encode()))


class LoggingMiddleware(ASGIMiddleware):
    """
    Middleware que loga requests.
    """

    name = "LoggingMiddleware"
    logger_name: str = "plataforma.requests"

    async def before_request(self, scope: Scope, request: Request) -> None:
        scope["state"]["_log_start"] = time.perf_counter()

        request_logger = logging.getLogger(self.logger_name)
        request_logger.info(
            "-> %s %s [%s]",
            request.method,
            request.url.path,
            scope["state"].get("request_id", "-"),
        )

    async def after_response(
        self,
        scope: Scope,
        request: Request,
        status_code: int,
        response_headers: list[tuple[bytes, bytes]],
    ) -> None:
        start = scope["state"].get("_log_start")
        duration = f" [{time.perf_counter() - start:.3f}s]" if start else ""
        logging.getLogger(self.logger_name).info("<- %s%s", status_code, duration)

    async def on_error(self, scope: Scope, request: Request, exc: Exception) -> None:
        logging.getLogger(self.logger_name).error("Error: %s: %s", type(exc).__name__, exc)
        return None
