# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Read-only views over raw ASGI request data.

Mapping from ASGI to sirix-asgi classes::

    scope["headers"] = [(b"...", b"...")]  →  Headers (case-insensitive)
    scope["query_string"] = b"a=1&b=2"     →  QueryParams (parsed)
    form-urlencoded request body           →  QueryParams (same grammar)

Headers names are case-insensitive and stored lowercase; query parameter
names are case-sensitive. Both keep every value of repeated keys and
return the first one from ``get()``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator
from urllib.parse import parse_qs

__all__ = ["Headers", "QueryParams", "headers_from_scope", "query_params_from_scope"]


class Headers:
    """Immutable, case-insensitive HTTP headers with multi-value support.

    Example:
        >>> headers = Headers([(b"Content-Type", b"application/json")])
        >>> headers.get("content-type")
        'application/json'
        >>> "CONTENT-TYPE" in headers
        True
    """

    __slots__ = ("_headers",)

    def __init__(self, raw_headers: list[tuple[bytes, bytes]]) -> None:
        self._headers: list[tuple[str, str]] = [
            (name.decode("latin-1").lower(), value.decode("latin-1"))
            for name, value in raw_headers
        ]

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value for a header, or default."""
        key_lower = key.lower()
        for name, value in self._headers:
            if name == key_lower:
                return value
        return default

    def getlist(self, key: str) -> list[str]:
        """All values for a header, in order of appearance."""
        key_lower = key.lower()
        return [value for name, value in self._headers if name == key_lower]

    def keys(self) -> list[str]:
        seen: dict[str, None] = {}
        for name, _ in self._headers:
            seen.setdefault(name, None)
        return list(seen)

    def items(self) -> list[tuple[str, str]]:
        return list(self._headers)

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"


class QueryParams:
    """Parsed ``application/x-www-form-urlencoded`` data.

    Used for the URL query string and for form-encoded request bodies.
    Raw bytes are decoded as latin-1 by default; form bodies pass
    ``encoding="utf-8"``.
    Blank values are preserved (``"key="`` gives ``""``).

    Example:
        >>> params = QueryParams(b"state=abc&tag=a&tag=b")
        >>> params.get("state")
        'abc'
        >>> params.getlist("tag")
        ['a', 'b']
    """

    __slots__ = ("_params",)

    def __init__(self, query_string: bytes | str, encoding: str = "latin-1") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode(encoding, errors="replace")
        self._params: dict[str, list[str]] = parse_qs(query_string, keep_blank_values=True)

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value for a parameter, or default."""
        values = self._params.get(key)
        if values:
            return values[0]
        return default

    def getlist(self, key: str) -> list[str]:
        return list(self._params.get(key, []))

    def keys(self) -> list[str]:
        return list(self._params)

    def items(self) -> list[tuple[str, str]]:
        """(name, first_value) pairs."""
        return [(key, values[0]) for key, values in self._params.items() if values]

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __bool__(self) -> bool:
        return bool(self._params)

    def __repr__(self) -> str:
        return f"QueryParams({self._params!r})"


def headers_from_scope(scope: Mapping[str, Any]) -> Headers:
    """Headers of an ASGI scope (empty when the scope has none)."""
    return Headers(scope.get("headers", []))


def query_params_from_scope(scope: Mapping[str, Any]) -> QueryParams:
    """Query parameters of an ASGI scope (empty when the scope has none)."""
    return QueryParams(scope.get("query_string", b""))
