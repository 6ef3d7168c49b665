# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for Response."""

from __future__ import annotations

from typing import Any

import orjson
import pytest
from conftest import MockSend

from sirix_asgi.response import Response


@pytest.fixture
def scope() -> dict[str, Any]:
    return {"type": "http"}


async def mock_receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b""}


class TestResponse:
    @pytest.mark.asyncio
    async def test_basic_bytes_content(self, scope: dict, send: MockSend) -> None:
        response = Response(content=b"<rest/>", media_type="application/xml")
        await response(scope, mock_receive, send)

        assert len(send.messages) == 2
        assert send.status == 200
        assert send.body == b"<rest/>"
        assert send.headers[b"content-type"] == b"application/xml"
        assert send.headers[b"content-length"] == b"7"

    @pytest.mark.asyncio
    async def test_text_media_type_appends_charset(self, scope: dict, send: MockSend) -> None:
        response = Response(content="Hello", media_type="text/plain")
        await response(scope, mock_receive, send)

        assert send.headers[b"content-type"] == b"text/plain; charset=utf-8"

    @pytest.mark.asyncio
    async def test_custom_headers_lowercased(self, scope: dict, send: MockSend) -> None:
        response = Response(headers={"Location": "https://kc.test/auth"}, status_code=302)
        await response(scope, mock_receive, send)

        assert send.status == 302
        assert send.headers[b"location"] == b"https://kc.test/auth"

    @pytest.mark.asyncio
    async def test_second_send_raises(self, scope: dict, send: MockSend) -> None:
        response = Response(content=b"x")
        await response(scope, mock_receive, send)
        assert response.sent

        with pytest.raises(RuntimeError):
            await response(scope, mock_receive, send)
        assert len(send.messages) == 2


class TestSetResult:
    def test_dict_is_json(self) -> None:
        response = Response()
        response.set_result({"database": "mydb"})
        assert orjson.loads(response.body) == {"database": "mydb"}
        assert response.media_type == "application/json"

    def test_str_with_produced_type(self) -> None:
        response = Response()
        response.set_result("<rest/>", media_type="application/xml")
        assert response.body == b"<rest/>"
        assert response.media_type == "application/xml"

    def test_str_defaults_to_text(self) -> None:
        response = Response()
        response.set_result("ok")
        assert response.media_type == "text/plain"

    def test_bytes_defaults_to_octet_stream(self) -> None:
        response = Response()
        response.set_result(b"\x00\x01")
        assert response.media_type == "application/octet-stream"

    def test_none_is_empty(self) -> None:
        response = Response(content=b"old")
        response.set_result(None)
        assert response.body == b""

    def test_get_and_set_header(self) -> None:
        response = Response()
        response.set_header("ETag", "abc")
        assert response.get_header("etag") == "abc"
        assert response.get_header("content-length") == "0"
        assert response.get_header("x-missing") is None
