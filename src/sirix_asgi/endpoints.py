# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""OAuth2 endpoints: ``GET /user/authorize`` and ``POST /token``.

AuthorizeEndpoint
    Starts the authorization-code flow by redirecting the user agent to
    the provider. Fails with 400 under the password flow.

TokenEndpoint
    Exchanges the decoded token request (see TokenBodyParser) with the
    provider and answers with the token response as JSON.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from .exceptions import HTTPBadRequest
from .negotiation import JSON

if TYPE_CHECKING:
    from .context import RequestContext
    from .oauth2 import OAuth2Client

__all__ = ["AuthorizeEndpoint", "TokenEndpoint"]

logger = logging.getLogger("sirix_asgi.oauth2")


class AuthorizeEndpoint:
    """Stage answering ``302 Location: <authorization endpoint>?...``."""

    __slots__ = ("client",)

    def __init__(self, client: OAuth2Client) -> None:
        self.client = client

    async def __call__(self, context: RequestContext) -> None:
        if not self.client.settings.auth_code:
            raise HTTPBadRequest(
                f"Authorization redirect requires the AUTH_CODE flow, configured flow is {self.client.flow.value}"
            )
        await self.client.discover()
        redirect_uri = context.query.get("redirect_uri") or self.client.settings.redirect_uri
        state = context.query.get("state") or str(uuid.uuid4())
        location = self.client.authorize_url(redirect_uri, state)
        logger.debug("Redirecting %s to provider, state=%s", context.client_host, state)

        context.response.status_code = 302
        context.response.set_header("Location", location)
        await context.finish()


class TokenEndpoint:
    """Stage exchanging ``context.data`` for a token."""

    __slots__ = ("client",)

    def __init__(self, client: OAuth2Client) -> None:
        self.client = client

    async def __call__(self, context: RequestContext) -> None:
        principal = await self.client.exchange(context.data or {})
        context.response.set_result(principal.to_json(), media_type=JSON)
        await context.finish()
