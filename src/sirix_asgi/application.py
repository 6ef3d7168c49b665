# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""SirixApplication - the ASGI application assembled from Settings.

Architecture::

    uvicorn → SirixApplication.__call__
        → lifespan            (scope type "lifespan")
        → ErrorMiddleware → LoggingMiddleware → [CORSMiddleware]
        → Router → AuthorizationGate → BodyParser → ResourceHandlers

CORS is installed once, here, and only for the authorization-code flow.

Route table (first match wins, in this order)::

    GET    /user/authorize                        authorize redirect
    POST   /token                                 token exchange
    PUT    /:database, /:database/:resource       CREATE   xml | json
    POST   /:database                             CREATE   multipart
    POST   /:database/:resource                   MODIFY   xml | json
    GET    /                                      VIEW     xml | json
    HEAD+GET /:database/:resource, /:database     VIEW     xml | json
    HEAD   /                                      VIEW     xml | json
    POST   /, /:database/:resource                VIEW     xml | json (query)
    DELETE /:database/:resource, /:database       DELETE   xml | json
    DELETE /                                      DELETE

The query-style ``POST /:database/:resource`` rules are shadowed by the
MODIFY rules with the same matchers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from .auth import AuthorizationGate, Role
from .endpoints import AuthorizeEndpoint, TokenEndpoint
from .lifespan import ApplicationLifespan
from .middleware import middleware_chain
from .negotiation import JSON, MULTIPART, XML, BodyParser, TokenBodyParser
from .oauth2 import OAuth2Client
from .resources import ResourceHandlers, load_handlers
from .routing import Router

if TYPE_CHECKING:
    from .config import Settings
    from .types import ASGIApp, Receive, Scope, Send

__all__ = ["SirixApplication", "build_router"]

DATABASE = "/:database"
RESOURCE = "/:database/:resource"


def build_router(settings: Settings, client: OAuth2Client, handlers: ResourceHandlers) -> Router:
    """Register the full route table on a new Router."""
    router = Router()
    body = BodyParser(settings.body_limit)

    def gate(role: Role) -> AuthorizationGate:
        return AuthorizationGate(client, role)

    # OAuth2
    router.get(settings.oauth2.auth_path, AuthorizeEndpoint(client))
    router.post(settings.oauth2.token_path, TokenBodyParser(settings.body_limit), TokenEndpoint(client))

    # Create
    for path in (DATABASE, RESOURCE):
        router.put(path, gate(Role.CREATE), body, handlers.xml_create, consumes=(XML,), role=Role.CREATE)
        router.put(path, gate(Role.CREATE), body, handlers.json_create, consumes=(JSON,), role=Role.CREATE)
    router.post(
        DATABASE, gate(Role.CREATE), body, handlers.create_multiple, consumes=(MULTIPART,), role=Role.CREATE
    )

    # Update
    router.post(
        RESOURCE, gate(Role.MODIFY), body, handlers.xml_update,
        consumes=(XML,), produces=(XML,), role=Role.MODIFY,
    )
    router.post(
        RESOURCE, gate(Role.MODIFY), body, handlers.json_update,
        consumes=(JSON,), produces=(JSON,), role=Role.MODIFY,
    )

    # Read
    router.get("/", gate(Role.VIEW), handlers.xml_get, produces=(XML,), role=Role.VIEW)
    router.get("/", gate(Role.VIEW), handlers.json_get, produces=(JSON,), role=Role.VIEW)
    for path in (RESOURCE, DATABASE):
        router.head(path, gate(Role.VIEW), handlers.xml_head, produces=(XML,), role=Role.VIEW)
        router.get(path, gate(Role.VIEW), handlers.xml_get, produces=(XML,), role=Role.VIEW)
        router.head(path, gate(Role.VIEW), handlers.json_head, produces=(JSON,), role=Role.VIEW)
        router.get(path, gate(Role.VIEW), handlers.json_get, produces=(JSON,), role=Role.VIEW)
    router.head("/", gate(Role.VIEW), handlers.xml_head, produces=(XML,), role=Role.VIEW)
    router.head("/", gate(Role.VIEW), handlers.json_head, produces=(JSON,), role=Role.VIEW)

    # Query
    for path in ("/", RESOURCE):
        router.post(
            path, gate(Role.VIEW), body, handlers.xml_get,
            consumes=(XML,), produces=(XML,), role=Role.VIEW,
        )
        router.post(
            path, gate(Role.VIEW), body, handlers.json_get,
            consumes=(JSON,), produces=(JSON,), role=Role.VIEW,
        )

    # Delete
    for path in (RESOURCE, DATABASE):
        router.delete(path, gate(Role.DELETE), handlers.xml_delete, consumes=(XML,), role=Role.DELETE)
        router.delete(path, gate(Role.DELETE), handlers.json_delete, consumes=(JSON,), role=Role.DELETE)
    router.delete("/", gate(Role.DELETE), handlers.delete_all, role=Role.DELETE)

    return router


class SirixApplication:
    """ASGI application serving the resource API.

    Attributes:
        settings: Immutable process configuration.
        client: OAuth2Client shared by all requests.
        handlers: Resource handlers, terminal stage of the CRUD routes.
        router: Route table and chain executor.
        app: Router wrapped in the middleware chain.
        lifespan: ASGI lifespan handler.

    Example:
        >>> app = SirixApplication(Settings.from_mapping({"keycloak.url": "https://kc/realms/sirix"}))
        >>> uvicorn.run(app, port=9443)
    """

    __slots__ = ("settings", "client", "handlers", "router", "app", "lifespan")

    def __init__(
        self,
        settings: Settings,
        handlers: ResourceHandlers | None = None,
        client: OAuth2Client | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: Resolved configuration.
            handlers: Resource handlers; loaded from ``settings.handlers`` if None.
            client: OAuth2 client; built from ``settings.oauth2`` if None.
            transport: httpx transport for a client built here (tests use
                ``httpx.MockTransport``).
        """
        self.settings = settings
        self.client = client or OAuth2Client(settings.oauth2, transport=transport)
        self.handlers = handlers or load_handlers(settings.handlers, settings.data_root)
        self.router = build_router(settings, self.client, self.handlers)
        self.app: ASGIApp = middleware_chain(self.router, self.middleware_config())
        self.lifespan = ApplicationLifespan(self)

    def middleware_config(self) -> dict[str, Any]:
        """Enabled middleware and their options for these settings."""
        config: dict[str, Any] = {"errors": True, "logging": True, "cors": False}
        if self.settings.cors_enabled:
            cors = self.settings.cors
            config["cors"] = {
                "origin_pattern": cors.origin_pattern,
                "allow_headers": cors.allowed_headers,
                "allow_methods": cors.allowed_methods,
                "allow_credentials": cors.allow_credentials,
            }
        return config

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.lifespan(scope, receive, send)
        else:
            await self.app(scope, receive, send)

    def __repr__(self) -> str:
        return f"SirixApplication(flow={self.settings.oauth2.flow.value}, routes={len(self.router)})"
