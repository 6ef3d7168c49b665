# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
HTTP Response for ASGI applications.

A Response is created empty by the RequestContext and configured by the
handler chain. The router sends it once the chain finishes::

    context.response.set_header("Location", url)
    context.response.status_code = 302
    await context.response(scope, receive, send)

set_result(result, media_type=None)
    Set body from a stage result. Auto-detects content type:
    - dict/list: application/json (serialized with orjson)
    - bytes: application/octet-stream
    - str: text/plain
    - None: empty body
    - other: str() as text/plain

A Response can only be sent once. ``sent`` turns True on the first call and
later calls raise RuntimeError, so a finalized response is never written
twice.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import orjson

from .types import Receive, Scope, Send

__all__ = ["Response"]

# Type alias for headers input
HeadersInput = Mapping[str, str] | list[tuple[str, str]] | None


def _normalize_headers(headers: HeadersInput) -> list[tuple[str, str]]:
    """Normalize headers input to a list of (name, value) tuples."""
    if headers is None:
        return []
    if isinstance(headers, list):
        return list(headers)
    return list(headers.items())


class Response:
    """
    HTTP response sent through the ASGI interface.

    Attributes:
        body: Encoded response body as bytes.
        status_code: HTTP status code.
        media_type: Content-Type media type, without charset.
        sent: True once the response has been written to the client.

    Example:
        >>> response = Response(content="Hello", media_type="text/plain")
        >>> await response(scope, receive, send)
    """

    __slots__ = ("body", "status_code", "media_type", "_headers", "sent")

    charset: str = "utf-8"

    def __init__(
        self,
        content: bytes | str | None = None,
        status_code: int = 200,
        headers: HeadersInput = None,
        media_type: str | None = None,
    ) -> None:
        self.status_code = status_code
        self._headers: list[tuple[str, str]] = _normalize_headers(headers)
        self.media_type = media_type
        self.body = self._encode_content(content)
        self.sent = False

    def _encode_content(self, content: bytes | str | None) -> bytes:
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        return content.encode(self.charset)

    def _content_type(self) -> str | None:
        """Content-Type header value with charset for text types."""
        if self.media_type is None:
            return None
        if self.media_type.startswith("text/") and "charset" not in self.media_type:
            return f"{self.media_type}; charset={self.charset}"
        return self.media_type

    @property
    def headers(self) -> list[tuple[str, str]]:
        """Headers that will be sent, including content-type and content-length."""
        headers = [
            (name, value)
            for name, value in self._headers
            if name.lower() not in ("content-type", "content-length")
        ]
        content_type = self._content_type()
        if content_type:
            headers.append(("content-type", content_type))
        headers.append(("content-length", str(len(self.body))))
        return headers

    def get_header(self, name: str) -> str | None:
        """First value of a header set on this response (case-insensitive)."""
        name_lower = name.lower()
        for key, value in self.headers:
            if key.lower() == name_lower:
                return value
        return None

    def set_header(self, name: str, value: str) -> None:
        """Add a response header."""
        self._headers.append((name, value))

    def set_result(self, result: Any, media_type: str | None = None) -> None:
        """Set response body from a stage result.

        Args:
            result: The stage result to send as body.
            media_type: Explicit media type, overrides type-based detection.
        """
        if isinstance(result, (dict, list)):
            self.body = orjson.dumps(result)
            self.media_type = media_type or "application/json"
        elif isinstance(result, bytes):
            self.body = result
            self.media_type = media_type or self.media_type or "application/octet-stream"
        elif isinstance(result, str):
            self.body = result.encode(self.charset)
            self.media_type = media_type or self.media_type or "text/plain"
        elif result is None:
            self.body = b""
            self.media_type = media_type or self.media_type
        else:
            self.body = str(result).encode(self.charset)
            self.media_type = media_type or self.media_type or "text/plain"

    def _build_headers(self) -> list[tuple[bytes, bytes]]:
        """ASGI headers: lowercase names, latin-1 encoded."""
        return [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers
        ]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Send http.response.start and http.response.body messages."""
        if self.sent:
            raise RuntimeError("Response already sent")
        self.sent = True
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self._build_headers(),
            }
        )
        await send({"type": "http.response.body", "body": self.body})
