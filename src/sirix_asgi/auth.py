# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Role-based authorization gate for route chains.

Each protected route starts its chain with an AuthorizationGate bound to
the Role the route requires::

    GET    -> Role.VIEW      PUT    -> Role.CREATE
    POST   -> Role.MODIFY    DELETE -> Role.DELETE
    (query-style POSTs require Role.VIEW)

The gate reads ``Authorization: Bearer <token>``, validates the token with
the identity provider (introspection) and checks the granted roles.

Failures:
    - missing/malformed header: 401
    - token rejected by the provider: 401
    - role not granted: 403
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import HTTPForbidden, HTTPUnauthorized

if TYPE_CHECKING:
    from .context import RequestContext
    from .oauth2 import OAuth2Client

__all__ = ["AuthorizationGate", "Role", "bearer_token"]

logger = logging.getLogger("sirix_asgi.auth")


class Role(Enum):
    """Roles a route can require. Values are the provider-side role names."""

    VIEW = "view"
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"

    @property
    def provider_role(self) -> str:
        return self.value


def bearer_token(authorization: str | None) -> str | None:
    """Token of a ``Bearer`` Authorization header, None otherwise."""
    if not authorization or " " not in authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class AuthorizationGate:
    """Stage verifying the caller holds ``role`` before the chain continues.

    On success the Principal is stored on ``context.principal``.
    """

    __slots__ = ("client", "role")

    def __init__(self, client: OAuth2Client, role: Role) -> None:
        self.client = client
        self.role = role

    async def __call__(self, context: RequestContext) -> None:
        token = bearer_token(context.headers.get("authorization"))
        if token is None:
            raise HTTPUnauthorized("Missing bearer token")

        principal = await self.client.authenticate(token)
        if not principal.has_role(self.role.provider_role):
            logger.info(
                "Denied %s %s to %s: role '%s' required",
                context.method,
                context.path,
                principal.subject or "unknown",
                self.role.provider_role,
            )
            raise HTTPForbidden(f"Role '{self.role.provider_role}' required")

        context.principal = principal

    def __repr__(self) -> str:
        return f"AuthorizationGate(role={self.role.name})"
