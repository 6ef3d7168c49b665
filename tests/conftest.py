# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Shared fixtures: ASGI drivers and a fake Keycloak realm."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest

from sirix_asgi.config import Settings

SITE = "https://keycloak.test/realms/sirixdb"
OIDC = f"{SITE}/protocol/openid-connect"


class MockSend:
    """Capture ASGI send messages for testing."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def start_message(self) -> dict[str, Any]:
        return self.messages[0]

    @property
    def status(self) -> int:
        return self.start_message["status"]

    @property
    def headers(self) -> dict[bytes, bytes]:
        return dict(self.start_message["headers"])

    def header(self, name: str) -> str | None:
        value = self.headers.get(name.lower().encode("latin-1"))
        return value.decode("latin-1") if value is not None else None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "client": ("127.0.0.1", 54321),
    }


def make_receive(body: bytes = b"", chunk_size: int | None = None) -> Any:
    """Receive callable delivering ``body`` in chunks, then disconnect."""
    size = chunk_size or max(len(body), 1)
    chunks = [body[i : i + size] for i in range(0, len(body), size)] or [b""]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": index < len(chunks) - 1}
        for index, chunk in enumerate(chunks)
    ]

    async def receive() -> dict[str, Any]:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class FakeKeycloak:
    """In-memory identity provider answering through httpx.MockTransport.

    Attributes:
        users: username -> (password, roles).
        tokens: access token -> introspection claims.
        requests: Every request received, in order.
        down: When True every call raises ConnectError.
    """

    def __init__(self) -> None:
        self.users: dict[str, tuple[str, list[str]]] = {}
        self.tokens: dict[str, dict[str, Any]] = {}
        self.codes: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.down = False
        self.discovery_status = 200
        self.token_status: int | None = None

    def add_user(self, username: str, password: str, roles: list[str]) -> None:
        self.users[username] = (password, roles)

    def add_token(self, token: str, roles: list[str], active: bool = True, username: str = "alice") -> None:
        self.tokens[token] = {
            "active": active,
            "preferred_username": username,
            "realm_access": {"roles": roles},
        }

    def add_code(self, code: str, username: str) -> None:
        self.codes[code] = username

    def forms(self, path_suffix: str) -> list[dict[str, str]]:
        """Decoded form bodies posted to URLs ending with ``path_suffix``."""
        return [
            dict(parse_qsl(request.content.decode()))
            for request in self.requests
            if request.method == "POST" and request.url.path.endswith(path_suffix)
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def _issue(self, username: str) -> httpx.Response:
        token = f"at-{username}"
        roles = self.users.get(username, ("", []))[1]
        self.add_token(token, roles, username=username)
        return httpx.Response(
            200,
            json={
                "access_token": token,
                "token_type": "Bearer",
                "expires_in": 300,
                "refresh_token": f"rt-{username}",
            },
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path.endswith("/.well-known/openid-configuration"):
            if self.discovery_status != 200:
                return httpx.Response(self.discovery_status, text="unavailable")
            return httpx.Response(
                200,
                json={
                    "issuer": SITE,
                    "authorization_endpoint": f"{OIDC}/auth",
                    "token_endpoint": f"{OIDC}/token",
                    "introspection_endpoint": f"{OIDC}/token/introspect",
                    "userinfo_endpoint": f"{OIDC}/userinfo",
                    "end_session_endpoint": f"{OIDC}/logout",
                },
            )

        form = dict(parse_qsl(request.content.decode()))
        if path.endswith("/token/introspect"):
            return httpx.Response(200, json=self.tokens.get(form.get("token", ""), {"active": False}))

        if path.endswith("/token"):
            if self.token_status is not None:
                return httpx.Response(self.token_status, json={"error": "server_error"})
            grant = form.get("grant_type")
            if grant == "password":
                user = self.users.get(form.get("username", ""))
                if user is not None and user[0] == form.get("password"):
                    return self._issue(form["username"])
            elif grant == "authorization_code":
                username = self.codes.pop(form.get("code", ""), None)
                if username is not None:
                    return self._issue(username)
            elif grant == "refresh_token":
                refresh = form.get("refresh_token", "")
                if refresh.startswith("rt-"):
                    return self._issue(refresh[3:])
            return httpx.Response(
                401, json={"error": "invalid_grant", "error_description": "Invalid user credentials"}
            )

        return httpx.Response(404)


@pytest.fixture
def keycloak() -> FakeKeycloak:
    return FakeKeycloak()


@pytest.fixture
def send() -> MockSend:
    return MockSend()


@pytest.fixture
def settings_factory(tmp_path: Path) -> Any:
    """Build Settings pointing at the fake realm, with ``tmp_path`` as data root."""

    def factory(**values: Any) -> Settings:
        config: dict[str, Any] = {"keycloak.url": SITE, "client.secret": "s3cret"}
        config.update({key.replace("__", "."): value for key, value in values.items()})
        return Settings.from_mapping(config, data_root=tmp_path)

    return factory


@pytest.fixture
def call() -> Any:
    """Drive an ASGI app with one HTTP request; returns the MockSend."""

    async def call(
        app: Any,
        method: str = "GET",
        path: str = "/",
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        query_string: bytes = b"",
    ) -> MockSend:
        send = MockSend()
        await app(make_scope(method, path, headers, query_string), make_receive(body), send)
        return send

    return call
