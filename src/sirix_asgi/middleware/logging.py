# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Logging Middleware - access log of the resource API.

Every request gets a request id, taken from ``X-Request-ID`` or generated,
stored in ``scope["request_id"]`` so the RequestContext reuses it. The
router stores the matched Route in ``scope["route"]``.

Log format:
    Request:  "<- [id] PUT /mydb/resource1 from 192.168.1.1"
    Response: "-> [id] PUT /mydb/resource1 200 (12.5ms) route=/:database/:resource"
    Error:    "-> [id] PUT /mydb/resource1 ERROR: ... (12.5ms)"

Unmatched requests log ``route=-``. Authorization and Cookie headers are
never logged, even with ``include_headers``.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, MutableMapping

from ..datastructures import headers_from_scope
from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

_REDACTED = {"authorization", "cookie"}


class LoggingMiddleware(BaseMiddleware):
    """Access logging middleware for HTTP requests.

    Attributes:
        logger: Logger for access lines, ``sirix_asgi.access`` by default.
        level: Numeric level of request/response lines.
        include_headers: Log request headers at DEBUG level.
    """

    middleware_name = "logging"
    middleware_order = 200
    middleware_default = True

    __slots__ = ("logger", "level", "include_headers")

    def __init__(
        self,
        app: ASGIApp,
        logger_name: str = "sirix_asgi.access",
        level: str = "INFO",
        include_headers: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.logger = logging.getLogger(logger_name)
        self.level = getattr(logging, level.upper(), logging.INFO)
        self.include_headers = include_headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        headers = headers_from_scope(scope)
        request_id = scope.get("request_id") or headers.get("x-request-id") or uuid.uuid4().hex
        scope["request_id"] = request_id
        request_info = f"[{request_id}] {scope.get('method', '?')} {scope.get('path', '/')}"
        client = scope.get("client")
        client_ip = client[0] if client else "unknown"

        self.logger.log(self.level, "<- %s from %s", request_info, client_ip)
        if self.include_headers:
            visible = {name: value for name, value in headers.items() if name.lower() not in _REDACTED}
            self.logger.debug("   Headers: %s", visible)

        status_code = 0

        async def send_with_logging(message: MutableMapping[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, send_with_logging)
        except Exception as e:
            duration = (time.perf_counter() - start_time) * 1000
            self.logger.error("-> %s ERROR: %s (%.1fms)", request_info, e, duration)
            raise

        duration = (time.perf_counter() - start_time) * 1000
        route = scope.get("route")
        self.logger.log(
            self.level,
            "-> %s %s (%.1fms) route=%s",
            request_info,
            status_code,
            duration,
            route.path if route is not None else "-",
        )
