# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""OAuth2 client for the Keycloak identity provider.

Responsibilities:
    - one-time discovery of ``<site>/.well-known/openid-configuration``
    - authorization URL for the authorization-code flow
    - token exchange for the authorization-code, password and refresh grants
    - token introspection, used by the authorization gate

The protocol work is done by authlib's AsyncOAuth2Client, an
httpx.AsyncClient subclass: ``create_authorization_url``, ``fetch_token``
for every grant, ``introspect_token``. Client credentials are sent in the
form body (``client_secret_post``), or ``client_id`` alone for public
clients.

Endpoints missing from the discovery document fall back to the configured
paths relative to the site URL (``token.path``, ``auth.path``) and to
``<token endpoint>/introspect`` for introspection.

Provider failures map to OAuth2Error:
    - provider answered 4xx: 401 with the provider's error text
    - provider unreachable or 5xx: 502

Example::

    client = OAuth2Client(settings.oauth2)
    await client.discover()
    url = client.authorize_url("https://app/callback", state="xyz")
    principal = await client.exchange({"username": "admin", "password": "admin"})
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError

from ..config import FlowType, OAuth2Settings
from ..exceptions import HTTPBadRequest, HTTPUnauthorized, OAuth2Error
from .principal import Principal

__all__ = ["OAuth2Client", "ProviderMetadata"]

logger = logging.getLogger("sirix_asgi.oauth2")

DISCOVERY_PATH = "/.well-known/openid-configuration"


@dataclass(frozen=True)
class ProviderMetadata:
    """Endpoints resolved from provider discovery."""

    issuer: str | None
    authorization_endpoint: str
    token_endpoint: str
    introspection_endpoint: str
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None

    @classmethod
    def from_discovery(cls, document: Mapping[str, Any], settings: OAuth2Settings) -> ProviderMetadata:
        site = settings.site or ""
        token_endpoint = document.get("token_endpoint") or f"{site}{settings.token_path}"
        return cls(
            issuer=document.get("issuer"),
            authorization_endpoint=document.get("authorization_endpoint") or f"{site}{settings.auth_path}",
            token_endpoint=token_endpoint,
            introspection_endpoint=document.get("introspection_endpoint") or f"{token_endpoint}/introspect",
            userinfo_endpoint=document.get("userinfo_endpoint"),
            end_session_endpoint=document.get("end_session_endpoint"),
            jwks_uri=document.get("jwks_uri"),
        )


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping):
        text = payload.get("error_description") or payload.get("error")
        if text:
            return str(text)
    return response.text or response.reason_phrase


def _check_token_response(response: httpx.Response) -> httpx.Response:
    """``access_token_response`` hook: map provider failures before authlib parses the token."""
    if response.status_code >= 500:
        raise OAuth2Error(
            f"Identity provider error {response.status_code}: {_error_text(response)}",
            status_code=502,
        )
    if response.status_code >= 400:
        raise OAuthError(error="invalid_grant", description=_error_text(response))
    return response


class OAuth2Client:
    """Client side of the provider contract.

    Attributes:
        settings: OAuth2 part of the immutable Settings.
        http: Shared authlib AsyncOAuth2Client (an httpx.AsyncClient),
            safe for concurrent requests.
    """

    __slots__ = ("settings", "http", "_metadata", "_lock")

    def __init__(
        self,
        settings: OAuth2Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.settings = settings
        self.http = AsyncOAuth2Client(
            client_id=settings.client_id,
            client_secret=settings.client_secret or None,
            token_endpoint_auth_method="client_secret_post" if settings.client_secret else "none",
            timeout=timeout,
            transport=transport,
        )
        self.http.register_compliance_hook("access_token_response", _check_token_response)
        self._metadata: ProviderMetadata | None = None
        self._lock = asyncio.Lock()

    @property
    def flow(self) -> FlowType:
        return self.settings.flow

    @property
    def metadata(self) -> ProviderMetadata:
        if self._metadata is None:
            raise RuntimeError("Provider not discovered yet, call discover() first")
        return self._metadata

    @property
    def discovered(self) -> bool:
        return self._metadata is not None

    async def discover(self) -> ProviderMetadata:
        """Fetch provider metadata once; later calls return the cached value.

        Raises:
            OAuth2Error: 502 if the provider cannot be reached or answers badly.
        """
        if self._metadata is not None:
            return self._metadata
        async with self._lock:
            if self._metadata is not None:
                return self._metadata
            if not self.settings.site:
                raise OAuth2Error("keycloak.url is not configured", status_code=502)
            url = f"{self.settings.site}{DISCOVERY_PATH}"
            logger.info("Discovering identity provider at %s", url)
            try:
                response = await self.http.get(url, withhold_token=True)
            except httpx.HTTPError as exc:
                raise OAuth2Error(f"Identity provider unreachable: {exc}", status_code=502) from exc
            if response.status_code != 200:
                raise OAuth2Error(
                    f"Discovery failed with status {response.status_code}", status_code=502
                )
            try:
                document = response.json()
            except ValueError as exc:
                raise OAuth2Error("Discovery document is not JSON", status_code=502) from exc
            self._metadata = ProviderMetadata.from_discovery(document, self.settings)
            logger.debug("Provider metadata: %s", self._metadata)
            return self._metadata

    def authorize_url(self, redirect_uri: str | None, state: str, scope: str = "openid") -> str:
        """Authorization endpoint URL redirecting the user agent to the provider."""
        url, _ = self.http.create_authorization_url(
            self.metadata.authorization_endpoint,
            state=state,
            redirect_uri=redirect_uri,
            scope=scope or None,
        )
        return url

    def grant_params(self, data: Mapping[str, Any]) -> dict[str, str]:
        """Grant fields of the token request for the configured flow.

        Client credentials are added by authlib when the request is sent.

        Raises:
            HTTPBadRequest: If the body lacks the fields the grant needs.
        """
        if data.get("grant_type") == "refresh_token":
            refresh_token = data.get("refresh_token")
            if not refresh_token:
                raise HTTPBadRequest("Missing 'refresh_token'")
            return {"grant_type": "refresh_token", "refresh_token": str(refresh_token)}
        if self.flow is FlowType.AUTH_CODE:
            code = data.get("code")
            if not code:
                raise HTTPBadRequest("Missing 'code'")
            params = {"grant_type": "authorization_code", "code": str(code)}
            redirect_uri = data.get("redirect_uri") or self.settings.redirect_uri
            if redirect_uri:
                params["redirect_uri"] = str(redirect_uri)
            return params
        username = data.get("username")
        password = data.get("password")
        if not username or password is None:
            raise HTTPBadRequest("Missing 'username' or 'password'")
        return {"grant_type": "password", "username": str(username), "password": str(password)}

    async def exchange(self, data: Mapping[str, Any]) -> Principal:
        """Exchange credentials or an authorization code for a token.

        Returns:
            Principal whose claims are the provider's token response.

        Raises:
            HTTPBadRequest: Missing grant fields.
            OAuth2Error: Provider rejected the grant (401) or failed (502).
        """
        metadata = await self.discover()
        params = self.grant_params(data)
        try:
            token = await self.http.fetch_token(metadata.token_endpoint, **params)
        except OAuthError as exc:
            logger.info("Token exchange denied (%s grant)", params["grant_type"])
            raise OAuth2Error(exc.description or exc.error or "Token request denied", status_code=401) from exc
        except httpx.HTTPError as exc:
            raise OAuth2Error(f"Identity provider unreachable: {exc}", status_code=502) from exc
        except ValueError as exc:
            raise OAuth2Error("Token response is not JSON", status_code=502) from exc
        return Principal(token=str(token.get("access_token", "")), claims=dict(token))

    async def introspect(self, token: str) -> dict[str, Any]:
        """Raw introspection result for an access token."""
        metadata = await self.discover()
        try:
            response = await self.http.introspect_token(
                metadata.introspection_endpoint, token=token, token_type_hint="access_token"
            )
        except httpx.HTTPError as exc:
            raise OAuth2Error(f"Identity provider unreachable: {exc}", status_code=502) from exc
        if response.status_code >= 500:
            raise OAuth2Error(
                f"Identity provider error {response.status_code}: {_error_text(response)}",
                status_code=502,
            )
        if response.status_code >= 400:
            raise OAuth2Error(_error_text(response), status_code=401)
        try:
            result = response.json()
        except ValueError as exc:
            raise OAuth2Error("Introspection response is not JSON", status_code=502) from exc
        return dict(result)

    async def authenticate(self, token: str) -> Principal:
        """Validate an access token through introspection.

        Raises:
            HTTPUnauthorized: If the token is not active.
        """
        claims = await self.introspect(token)
        if not claims.get("active", False):
            raise HTTPUnauthorized("Invalid or expired token")
        return Principal(token=token, claims=claims)

    async def aclose(self) -> None:
        await self.http.aclose()

    def __repr__(self) -> str:
        return f"OAuth2Client(site={self.settings.site!r}, flow={self.flow.value})"
