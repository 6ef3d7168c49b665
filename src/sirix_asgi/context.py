# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""RequestContext - per-request state shared by the stages of a route chain.

A context is created by the Router when an HTTP request is accepted and
dropped once the response has been sent. It carries:

- the raw ASGI triple (scope, receive, send) and parsed headers/query
- path parameters extracted by the matched route
- the buffered body and its parsed form (filled by the body parser stage)
- the authenticated Principal (filled by the authorization gate)
- the FailureRecord, if a stage halted the chain
- the Response under construction

The current context is also published through a ContextVar so helpers
deep in a resource handler can reach it without threading it through
every call.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from .datastructures import Headers, QueryParams, headers_from_scope, query_params_from_scope
from .exceptions import ClientDisconnected, HTTPPayloadTooLarge
from .response import Response
from .types import Receive, Scope, Send

if TYPE_CHECKING:
    from .failures import FailureRecord
    from .oauth2 import Principal
    from .routing import Route

__all__ = ["RequestContext", "get_current_context", "reset_current_context", "set_current_context"]

_current_context: ContextVar["RequestContext | None"] = ContextVar("current_context", default=None)


def get_current_context() -> "RequestContext | None":
    """Get the context of the request being handled, if any."""
    return _current_context.get()


def set_current_context(context: "RequestContext | None") -> Any:
    """Set the current context. Returns token for reset."""
    return _current_context.set(context)


def reset_current_context(token: Any) -> None:
    """Restore the context active before the matching set_current_context()."""
    _current_context.reset(token)


class RequestContext:
    """Mutable per-request bag passed to every stage of a route chain.

    Attributes:
        scope: Raw ASGI scope.
        headers: Case-insensitive request headers.
        query: Parsed query string.
        path_params: Named parameters matched by the route (``:database``).
        route: The Route selected by the router, None before matching.
        body: Buffered raw body, None until the body parser stage ran.
        data: Parsed body (token endpoint), None otherwise.
        principal: Authenticated Principal, None until the gate ran.
        failure: FailureRecord of the stage that halted the chain.
        response: Response under construction.
        disconnected: True if the client went away before the body was complete.
    """

    __slots__ = (
        "scope",
        "receive",
        "send",
        "id",
        "headers",
        "query",
        "path_params",
        "route",
        "body",
        "data",
        "principal",
        "failure",
        "response",
        "disconnected",
    )

    def __init__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.scope = scope
        self.receive = receive
        self.send = send
        self.headers: Headers = headers_from_scope(scope)
        self.query: QueryParams = query_params_from_scope(scope)
        self.id: str = scope.get("request_id") or self.headers.get("x-request-id") or str(uuid.uuid4())
        self.path_params: dict[str, str] = {}
        self.route: Route | None = None
        self.body: bytes | None = None
        self.data: Any = None
        self.principal: Principal | None = None
        self.failure: FailureRecord | None = None
        self.response = Response()
        self.disconnected = False

    @property
    def method(self) -> str:
        return str(self.scope.get("method", "GET")).upper()

    @property
    def path(self) -> str:
        return str(self.scope.get("path", "/"))

    @property
    def content_type(self) -> str | None:
        """Request media type, lowercase and without parameters."""
        value = self.headers.get("content-type")
        if not value:
            return None
        return value.split(";", 1)[0].strip().lower() or None

    @property
    def accept(self) -> str | None:
        return self.headers.get("accept")

    @property
    def client_host(self) -> str | None:
        client = self.scope.get("client")
        return client[0] if client else None

    @property
    def finalized(self) -> bool:
        """True once the response has been written to the client."""
        return self.response.sent

    async def read_body(self, limit: int = -1) -> bytes:
        """Buffer the whole request body.

        Args:
            limit: Maximum accepted size in bytes, -1 for unlimited.

        Raises:
            HTTPPayloadTooLarge: If the body exceeds ``limit``.
            ClientDisconnected: If the client went away before the last chunk.
        """
        if self.body is not None:
            return self.body
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await self.receive()
            if message["type"] == "http.disconnect":
                self.disconnected = True
                raise ClientDisconnected()
            chunk = message.get("body", b"")
            size += len(chunk)
            if limit >= 0 and size > limit:
                raise HTTPPayloadTooLarge(f"Request body exceeds {limit} bytes")
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        self.body = b"".join(chunks)
        return self.body

    async def finish(self) -> None:
        """Send the response built so far."""
        await self.response(self.scope, self.receive, self.send)

    def __repr__(self) -> str:
        return f"<RequestContext id={self.id!r} method={self.method} path={self.path!r}>"
