# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Content negotiation and request body parsing.

Media type matching
-------------------
Routes may declare ``consumes`` (accepted request Content-Type) and
``produces`` (response type matched against Accept):

- consumes: the request media type, parameters stripped, must equal one of
  the declared types. A request without Content-Type never matches.
- produces: with an Accept header, one of its ranges with q > 0 must cover
  the declared type (``*/*`` and ``type/*`` honored). Without an Accept
  header every produces matcher is satisfied.

Body stages
-----------
BodyParser
    Buffers the whole body before the resource handler runs.
TokenBodyParser
    Buffers the body of ``POST /token`` and decodes it: form-urlencoded when
    declared as such, JSON otherwise. Undecodable bodies fail with 500 and
    TOKEN_BODY_HELP.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson

from .datastructures import QueryParams
from .exceptions import BodyDecodeError, HTTPException

if TYPE_CHECKING:
    from .context import RequestContext

__all__ = [
    "FORM",
    "JSON",
    "MULTIPART",
    "XML",
    "TOKEN_BODY_HELP",
    "BodyParser",
    "TokenBodyParser",
    "consumes_matches",
    "form_to_json",
    "media_matches",
    "parse_accept",
    "parse_media_type",
    "parse_token_body",
    "produces_matches",
]

JSON = "application/json"
XML = "application/xml"
FORM = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"

TOKEN_BODY_HELP = (
    '"application/json" and "application/x-www-form-urlencoded" are supported Content-Types.'
    "If none is specified it's tried to parse as JSON"
)

# Fields always present in a normalized form body (None when missing)
FORM_FIELDS = ("code", "redirect_uri", "response_type", "grant_type")
# Fields copied only when the client sent them
FORM_OPTIONAL_FIELDS = ("username", "password", "refresh_token", "state", "scope")


def parse_media_type(value: str | None) -> str | None:
    """Lowercase media type without parameters, None if empty."""
    if not value:
        return None
    media = value.split(";", 1)[0].strip().lower()
    return media or None


def parse_accept(header: str) -> list[tuple[str, float]]:
    """Parse an Accept header into (media range, q) pairs, in header order."""
    ranges: list[tuple[str, float]] = []
    for part in header.split(","):
        pieces = [p.strip() for p in part.split(";")]
        media = pieces[0].lower()
        if not media:
            continue
        q = 1.0
        for param in pieces[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0
        ranges.append((media, q))
    return ranges


def media_matches(media_range: str, media: str) -> bool:
    """True if ``media_range`` (may contain wildcards) covers ``media``."""
    if media_range in ("*", "*/*"):
        return True
    range_type, _, range_sub = media_range.partition("/")
    media_type, _, media_sub = media.partition("/")
    if range_type != media_type:
        return False
    return range_sub in ("*", media_sub)


def consumes_matches(content_type: str | None, consumes: tuple[str, ...]) -> bool:
    if not consumes:
        return True
    media = parse_media_type(content_type)
    if media is None:
        return False
    return media in consumes


def produces_matches(accept: str | None, produces: tuple[str, ...]) -> bool:
    if not produces or not accept or not accept.strip():
        return True
    for media_range, q in parse_accept(accept):
        if q <= 0:
            continue
        if any(media_matches(media_range, media) for media in produces):
            return True
    return False


def form_to_json(body: bytes | str) -> dict[str, Any]:
    """Normalize a form-urlencoded token request into the JSON shape."""
    form = QueryParams(body, encoding="utf-8")
    data: dict[str, Any] = {name: form.get(name) for name in FORM_FIELDS}
    for name in FORM_OPTIONAL_FIELDS:
        if name in form:
            data[name] = form.get(name)
    return data


def parse_token_body(content_type: str | None, body: bytes) -> dict[str, Any]:
    """Decode a token request body by content type.

    Raises:
        BodyDecodeError: If the body is not a JSON object.
    """
    media = parse_media_type(content_type)
    if media == FORM:
        return form_to_json(body)
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise BodyDecodeError(media, str(exc)) from exc
    if not isinstance(data, dict):
        raise BodyDecodeError(media, "expected a JSON object")
    return data


class BodyParser:
    """Stage that buffers the complete request body."""

    __slots__ = ("limit",)

    def __init__(self, limit: int = -1) -> None:
        self.limit = limit

    async def __call__(self, context: RequestContext) -> None:
        await context.read_body(self.limit)

    def __repr__(self) -> str:
        return f"BodyParser(limit={self.limit})"


class TokenBodyParser(BodyParser):
    """Stage that buffers and decodes the token endpoint body into ``context.data``."""

    __slots__ = ()

    async def __call__(self, context: RequestContext) -> None:
        body = await context.read_body(self.limit)
        try:
            context.data = parse_token_body(context.headers.get("content-type"), body)
        except BodyDecodeError as exc:
            raise HTTPException(500, detail=TOKEN_BODY_HELP) from exc
