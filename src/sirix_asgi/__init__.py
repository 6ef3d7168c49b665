# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""sirix-asgi - HTTPS front-end of a hierarchical document store.

Content-negotiated routing, role-based authorization against Keycloak,
OAuth2 password and authorization-code flows, and centralized failure
translation, served by uvicorn.
"""

__version__ = "0.1.0"

from .application import SirixApplication, build_router
from .auth import AuthorizationGate, Role
from .config import ConfigError, FlowType, Settings, load_settings
from .context import RequestContext, get_current_context
from .exceptions import (
    BodyDecodeError,
    ClientDisconnected,
    HTTPBadGateway,
    HTTPBadRequest,
    HTTPException,
    HTTPForbidden,
    HTTPNotFound,
    HTTPNotImplemented,
    HTTPPayloadTooLarge,
    HTTPUnauthorized,
    OAuth2Error,
)
from .failures import FailureRecord, FailureTranslator
from .harness import StageHarness
from .oauth2 import OAuth2Client, Principal
from .resources import ResourceHandlers
from .response import Response
from .routing import Route, Router

__all__ = [
    "__version__",
    "AuthorizationGate",
    "BodyDecodeError",
    "ClientDisconnected",
    "ConfigError",
    "FailureRecord",
    "FailureTranslator",
    "FlowType",
    "HTTPBadGateway",
    "HTTPBadRequest",
    "HTTPException",
    "HTTPForbidden",
    "HTTPNotFound",
    "HTTPNotImplemented",
    "HTTPPayloadTooLarge",
    "HTTPUnauthorized",
    "OAuth2Client",
    "OAuth2Error",
    "Principal",
    "RequestContext",
    "ResourceHandlers",
    "Response",
    "Role",
    "Route",
    "Router",
    "Settings",
    "SirixApplication",
    "StageHarness",
    "build_router",
    "get_current_context",
    "load_settings",
]
