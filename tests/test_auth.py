# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for the authorization gate."""

from __future__ import annotations

from typing import Any

import pytest
from conftest import FakeKeycloak, MockSend, make_receive, make_scope

from sirix_asgi.auth import AuthorizationGate, Role, bearer_token
from sirix_asgi.context import RequestContext
from sirix_asgi.exceptions import HTTPForbidden, HTTPUnauthorized
from sirix_asgi.oauth2 import OAuth2Client


def context_with(send: MockSend, authorization: str | None = None) -> RequestContext:
    headers = {"Authorization": authorization} if authorization else {}
    return RequestContext(make_scope("DELETE", "/mydb", headers), make_receive(), send)


@pytest.fixture
def client(keycloak: FakeKeycloak, settings_factory: Any) -> OAuth2Client:
    return OAuth2Client(settings_factory().oauth2, transport=keycloak.transport)


class TestBearerToken:
    def test_valid(self) -> None:
        assert bearer_token("Bearer abc.def") == "abc.def"
        assert bearer_token("bearer abc") == "abc"

    def test_invalid(self) -> None:
        assert bearer_token(None) is None
        assert bearer_token("") is None
        assert bearer_token("Basic dXNlcjpwYXNz") is None
        assert bearer_token("Bearer") is None
        assert bearer_token("Bearer   ") is None


def test_role_provider_names() -> None:
    assert [role.provider_role for role in Role] == ["view", "create", "modify", "delete"]


class TestAuthorizationGate:
    @pytest.mark.asyncio
    async def test_missing_token(self, client: OAuth2Client, send: MockSend) -> None:
        gate = AuthorizationGate(client, Role.DELETE)
        with pytest.raises(HTTPUnauthorized):
            await gate(context_with(send))

    @pytest.mark.asyncio
    async def test_invalid_token(
        self, client: OAuth2Client, keycloak: FakeKeycloak, send: MockSend
    ) -> None:
        gate = AuthorizationGate(client, Role.VIEW)
        with pytest.raises(HTTPUnauthorized):
            await gate(context_with(send, "Bearer unknown"))

    @pytest.mark.asyncio
    async def test_insufficient_role(
        self, client: OAuth2Client, keycloak: FakeKeycloak, send: MockSend
    ) -> None:
        keycloak.add_token("viewer", ["view"])
        gate = AuthorizationGate(client, Role.DELETE)
        with pytest.raises(HTTPForbidden, match="delete"):
            await gate(context_with(send, "Bearer viewer"))

    @pytest.mark.asyncio
    async def test_granted(self, client: OAuth2Client, keycloak: FakeKeycloak, send: MockSend) -> None:
        keycloak.add_token("deleter", ["view", "delete"])
        context = context_with(send, "Bearer deleter")

        await AuthorizationGate(client, Role.DELETE)(context)

        assert context.principal is not None
        assert context.principal.token == "deleter"
        assert keycloak.forms("/token/introspect")[0]["token"] == "deleter"
        assert send.messages == []

    @pytest.mark.asyncio
    async def test_client_role_accepted(
        self, client: OAuth2Client, keycloak: FakeKeycloak, send: MockSend
    ) -> None:
        keycloak.tokens["tk"] = {"active": True, "resource_access": {"sirix": {"roles": ["create"]}}}
        context = context_with(send, "Bearer tk")
        await AuthorizationGate(client, Role.CREATE)(context)
        assert context.principal is not None
