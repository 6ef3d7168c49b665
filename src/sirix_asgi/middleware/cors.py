# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""CORS (Cross-Origin Resource Sharing) policy enforcer.

Installed by the application only when the authorization-code flow is
configured, so browser front-ends on other origins can drive the redirect
and token endpoints. With the password flow no CORS header is ever sent.

Policy:
    origin_pattern (str): Regular expression the whole Origin must match.
        ``"*"`` allows any origin. Default: ``"*"``.
    allow_headers (list|str): Request headers allowed on preflight.
    allow_methods (list|str): Methods allowed on preflight.
    allow_credentials (bool): Send ``Access-Control-Allow-Credentials``.
        The request origin is echoed instead of ``*``. Default: False.

Behaviour:
    - preflight (OPTIONS + Origin + Access-Control-Request-Method): answered
      here with 200 and the allow headers, 403 for a rejected origin
    - actual request from an allowed origin: Allow-Origin (and credentials)
      added to the response
    - actual request from a rejected origin: 403, the route never runs
    - no Origin header: passed through untouched
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, MutableMapping

from ..config import CORS_ALLOWED_HEADERS, CORS_ALLOWED_METHODS
from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("sirix_asgi.cors")


def _as_list(value: str | list[str] | tuple[str, ...] | None, default: tuple[str, ...]) -> list[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


class CORSMiddleware(BaseMiddleware):
    """CORS middleware for HTTP requests.

    Attributes:
        origin_pattern: Configured origin expression.
        allow_headers: Allowed request headers.
        allow_methods: Allowed methods.
        allow_credentials: Whether credentials are allowed.
    """

    middleware_name = "cors"
    middleware_order = 300
    middleware_default = False

    __slots__ = (
        "origin_pattern",
        "allow_headers",
        "allow_methods",
        "allow_credentials",
        "_origin_re",
        "_preflight_headers",
    )

    def __init__(
        self,
        app: ASGIApp,
        origin_pattern: str = "*",
        allow_headers: str | list[str] | tuple[str, ...] | None = None,
        allow_methods: str | list[str] | tuple[str, ...] | None = None,
        allow_credentials: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.origin_pattern = origin_pattern
        self.allow_headers = _as_list(allow_headers, CORS_ALLOWED_HEADERS)
        self.allow_methods = _as_list(allow_methods, CORS_ALLOWED_METHODS)
        self.allow_credentials = allow_credentials
        self._origin_re = None if origin_pattern == "*" else re.compile(origin_pattern)
        self._preflight_headers = [
            (b"access-control-allow-methods", ",".join(self.allow_methods).encode()),
            (b"access-control-allow-headers", ",".join(self.allow_headers).encode()),
        ]

    def origin_allowed(self, origin: str) -> bool:
        if self._origin_re is None:
            return True
        return self._origin_re.fullmatch(origin) is not None

    def _origin_headers(self, origin: str) -> list[tuple[bytes, bytes]]:
        """Allow-Origin headers for an allowed ``origin``."""
        if self._origin_re is None and not self.allow_credentials:
            return [(b"access-control-allow-origin", b"*")]
        headers = [
            (b"access-control-allow-origin", origin.encode("latin-1")),
            (b"vary", b"Origin"),
        ]
        if self.allow_credentials:
            headers.append((b"access-control-allow-credentials", b"true"))
        return headers

    async def _reject(self, send: Send, origin: str) -> None:
        logger.info("CORS rejected origin %s", origin)
        body = b"CORS Rejected - Invalid origin"
        await send(
            {
                "type": "http.response.start",
                "status": 403,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(body)).encode()),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = None
        request_method = None
        for name, value in scope.get("headers", []):
            if name == b"origin":
                origin = value.decode("latin-1")
            elif name == b"access-control-request-method":
                request_method = value.decode("latin-1")

        if not origin:
            await self.app(scope, receive, send)
            return

        if not self.origin_allowed(origin):
            await self._reject(send, origin)
            return

        cors_headers = self._origin_headers(origin)

        if scope.get("method") == "OPTIONS" and request_method:
            await send(
                {
                    "type": "http.response.start",
                    "status": 200,
                    "headers": [*cors_headers, *self._preflight_headers, (b"content-length", b"0")],
                }
            )
            await send({"type": "http.response.body", "body": b""})
            return

        async def send_with_cors(message: MutableMapping[str, Any]) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "headers": [*message.get("headers", []), *cors_headers]}
            await send(message)

        await self.app(scope, receive, send_with_cors)

    def __repr__(self) -> str:
        return f"CORSMiddleware(origin_pattern={self.origin_pattern!r}, credentials={self.allow_credentials})"
