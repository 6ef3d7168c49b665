# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Error middleware - last-resort failure translation.

Failures inside route chains are translated by the Router's harness. This
layer catches what escapes it (a broken middleware, a failing send) and
answers with the same ``Failure calling the RESTful API: <message>`` body,
unless the response was already started, in which case it only logs.

Enabled by default and outermost (order 100).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, MutableMapping

from ..failures import FailureRecord, FailureTranslator
from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("sirix_asgi.failures")


class ErrorMiddleware(BaseMiddleware):
    """Turns exceptions escaping the application into error responses."""

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("translator",)

    def __init__(self, app: ASGIApp, translator: FailureTranslator | None = None, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        self.translator = translator or FailureTranslator()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: MutableMapping[str, Any]) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            record = FailureRecord.from_exception(exc)
            if not record.explicit:
                logger.error(
                    "Unhandled error on %s %s: %s",
                    scope.get("method"),
                    scope.get("path"),
                    record.message,
                    exc_info=exc,
                )
            if started:
                logger.warning("Response already started, dropping failure %s", record.message)
                return
            response = self.translator.build_response(record)
            await response(scope, receive, send)
