# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Failure records and their translation into HTTP responses.

Every failure of a route chain, whatever produced it, is turned into a
FailureRecord and handed to the FailureTranslator, the only component that
writes error responses.

Translation rule:
    - record carries an explicit status (HTTPException and subclasses):
      that status and message are used verbatim, extra headers preserved
    - otherwise: 500 with the underlying exception message

Response body::

    Failure calling the RESTful API: <message>

The translator writes at most once per request. If the response was
already started by a stage, or the client disconnected before its body was
complete, nothing is written and the failure is only logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING

from .exceptions import HTTPException
from .response import Response

if TYPE_CHECKING:
    from .context import RequestContext

__all__ = ["FAILURE_PREFIX", "FailureRecord", "FailureTranslator"]

FAILURE_PREFIX = "Failure calling the RESTful API: "

logger = logging.getLogger("sirix_asgi.failures")


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


@dataclass(frozen=True)
class FailureRecord:
    """Why a request cannot proceed.

    Attributes:
        status_code: Explicit status, None for unclassified failures.
        message: Human-readable message.
        cause: Underlying exception, if any.
        headers: Extra response headers (e.g. WWW-Authenticate).
    """

    status_code: int | None
    message: str
    cause: BaseException | None = None
    headers: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @classmethod
    def from_exception(cls, exc: BaseException) -> FailureRecord:
        """Build a record from a stage exception."""
        if isinstance(exc, HTTPException):
            message = exc.detail or _reason(exc.status_code)
            return cls(exc.status_code, message, exc, tuple(exc.headers or ()))
        return cls(None, str(exc) or type(exc).__name__, exc)

    @property
    def explicit(self) -> bool:
        return self.status_code is not None


class FailureTranslator:
    """Single exit point converting FailureRecords into responses."""

    __slots__ = ("default_status",)

    def __init__(self, default_status: int = 500) -> None:
        self.default_status = default_status

    def status_for(self, record: FailureRecord) -> int:
        return record.status_code if record.status_code is not None else self.default_status

    def build_response(self, record: FailureRecord) -> Response:
        """Response for a record, without sending it."""
        response = Response(
            content=f"{FAILURE_PREFIX}{record.message}",
            status_code=self.status_for(record),
            headers=list(record.headers),
            media_type="text/plain",
        )
        return response

    async def __call__(self, context: RequestContext, record: FailureRecord) -> None:
        """Record the failure on the context and send the error response."""
        if context.failure is not None:
            logger.warning(
                "Ignoring second failure for %s %s: %s", context.method, context.path, record.message
            )
            return
        context.failure = record

        if not record.explicit:
            logger.error(
                "Unhandled error on %s %s: %s",
                context.method,
                context.path,
                record.message,
                exc_info=record.cause,
            )

        if context.disconnected:
            logger.info(
                "Client gone on %s %s, dropping failure %s", context.method, context.path, record.message
            )
            return

        if context.finalized:
            logger.warning(
                "Response already sent for %s %s, dropping failure %s",
                context.method,
                context.path,
                record.message,
            )
            return

        context.response = self.build_response(record)
        await context.finish()
