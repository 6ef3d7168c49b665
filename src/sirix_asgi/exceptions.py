# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for sirix-asgi request failures.

Every failure raised by a handler chain stage ends up in the
FailureTranslator (see failures.py). The classes here decide which status
code the client sees.

Taxonomy
--------
HTTPException
    Explicit status failure. The translator reuses ``status_code`` and
    ``detail`` verbatim and appends ``headers`` to the response.

    Subclasses with fixed status codes:
    HTTPBadRequest (400), HTTPUnauthorized (401), HTTPForbidden (403),
    HTTPNotFound (404), HTTPPayloadTooLarge (413), HTTPNotImplemented (501),
    HTTPBadGateway (502).

OAuth2Error(HTTPException)
    The identity provider rejected a request (401) or could not be reached
    (502).

BodyDecodeError
    The request body could not be decoded for its declared (or assumed)
    content type. Not an HTTPException: the stage that parses the body
    decides which status and message to surface.

Any other exception is an unclassified failure and becomes a 500 whose
message is ``str(exc)``.

Example:
    >>> raise HTTPException(404, detail="Resource not found")
    >>> raise HTTPUnauthorized("Missing bearer token")
"""


class HTTPException(Exception):
    """
    HTTP exception with status code and detail.

    Raise this in a stage to halt the chain with an explicit status. The
    FailureTranslator converts it into the response.

    Attributes:
        status_code: HTTP status code (expected 4xx or 5xx, not validated)
        detail: Error detail message
        headers: Response headers as list of tuples (supports duplicate names)

    Example:
        >>> raise HTTPException(404, detail="User not found")
        >>> raise HTTPException(401, headers={"WWW-Authenticate": "Bearer"})
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        """
        Initialize HTTP exception.

        Args:
            status_code: HTTP status code (4xx, 5xx expected)
            detail: Error detail message (default: "")
            headers: Response headers as dict or list of tuples (default: None).
        """
        self.status_code = status_code
        self.detail = detail
        if headers is None:
            self.headers: list[tuple[str, str]] | None = None
        elif isinstance(headers, dict):
            self.headers = list(headers.items())
        else:
            self.headers = list(headers)
        super().__init__(detail)

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return f"{type(self).__name__}(status_code={self.status_code}, detail={self.detail!r})"


class HTTPBadRequest(HTTPException):
    """HTTP 400 Bad Request exception."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(400, detail=detail)


class ClientDisconnected(HTTPBadRequest):
    """Client went away before the request body was complete."""

    def __init__(self, detail: str = "Client disconnected before the request body was complete") -> None:
        super().__init__(detail)


class HTTPUnauthorized(HTTPException):
    """HTTP 401 Unauthorized exception with a Bearer challenge."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(401, detail=detail, headers={"WWW-Authenticate": 'Bearer realm="sirix"'})


class HTTPForbidden(HTTPException):
    """HTTP 403 Forbidden exception."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(403, detail=detail)


class HTTPNotFound(HTTPException):
    """HTTP 404 Not Found exception."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(404, detail=detail)


class HTTPPayloadTooLarge(HTTPException):
    """HTTP 413 Payload Too Large exception."""

    def __init__(self, detail: str = "Request Entity Too Large") -> None:
        super().__init__(413, detail=detail)


class HTTPNotImplemented(HTTPException):
    """HTTP 501 Not Implemented exception."""

    def __init__(self, detail: str = "Not Implemented") -> None:
        super().__init__(501, detail=detail)


class HTTPBadGateway(HTTPException):
    """HTTP 502 Bad Gateway exception."""

    def __init__(self, detail: str = "Bad Gateway") -> None:
        super().__init__(502, detail=detail)


class OAuth2Error(HTTPException):
    """Failure talking to the identity provider.

    ``status_code`` is 401 when the provider rejected the credentials and
    502 when it was unreachable or answered with a server error.
    """

    def __init__(self, detail: str, status_code: int = 401) -> None:
        super().__init__(status_code, detail=detail)


class BodyDecodeError(Exception):
    """Request body is not valid for its content type."""

    def __init__(self, content_type: str | None, reason: str = "") -> None:
        self.content_type = content_type
        self.reason = reason
        super().__init__(f"Cannot decode body as {content_type or 'application/json'}: {reason}")
