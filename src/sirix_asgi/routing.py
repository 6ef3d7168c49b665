# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Router - matches requests to route chains and executes them.

The Router is the innermost ASGI layer. For each HTTP request it:

1. Creates the RequestContext
2. Selects the first Route, in registration order, whose method and path
   pattern match and whose consumes/produces matchers accept the request
3. Stores path parameters on the context
4. Runs the route's stages in order through the StageHarness
5. Sends the response once the chain is done

Request flow::

    scope → RequestContext
          → Router.match(method, path, content-type, accept)
          → stage 1 (AuthorizationGate) → stage 2 (BodyParser) → handler
          → context.response → send

Chain rules:
    - a stage returning None hands over to the next stage
    - a stage returning a value sets the response body and ends the chain
    - a stage that sent the response itself ends the chain
    - a failing stage ends the chain, the FailureTranslator answers
    - no matching route: 404 through the FailureTranslator

Path patterns use ``:name`` segments for parameters::

    router.get("/:database/:resource", gate, handler, produces=(XML,))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .context import RequestContext, reset_current_context, set_current_context
from .exceptions import HTTPNotFound
from .harness import StageHarness
from .negotiation import consumes_matches, produces_matches

if TYPE_CHECKING:
    from .auth import Role
    from .types import Receive, Scope, Send, Stage

__all__ = ["PathPattern", "Route", "Router"]

logger = logging.getLogger("sirix_asgi.router")


def _split(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


@dataclass(frozen=True)
class PathPattern:
    """Path template with ``:name`` parameter segments."""

    template: str
    segments: tuple[str, ...] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "segments", tuple(_split(self.template)))

    @property
    def param_names(self) -> list[str]:
        return [segment[1:] for segment in self.segments if segment.startswith(":")]

    def match(self, path: str) -> dict[str, str] | None:
        """Path parameters if ``path`` matches, None otherwise."""
        parts = _split(path)
        if len(parts) != len(self.segments):
            return None
        params: dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            if segment.startswith(":"):
                params[segment[1:]] = part
            elif segment != part:
                return None
        return params


@dataclass(frozen=True)
class Route:
    """One entry of the route table.

    Attributes:
        method: HTTP method, uppercase.
        pattern: PathPattern of the route.
        stages: Ordered handler chain.
        consumes: Accepted request media types, empty for any.
        produces: Response media types matched against Accept, empty for any.
        role: Role required by the chain's authorization gate, if any.
    """

    method: str
    pattern: PathPattern
    stages: tuple[Stage, ...]
    consumes: tuple[str, ...] = ()
    produces: tuple[str, ...] = ()
    role: Role | None = None

    @property
    def path(self) -> str:
        return self.pattern.template

    def accepts(self, content_type: str | None, accept: str | None) -> bool:
        return consumes_matches(content_type, self.consumes) and produces_matches(
            accept, self.produces
        )

    def __repr__(self) -> str:
        extra = ""
        if self.consumes:
            extra += f" consumes={','.join(self.consumes)}"
        if self.produces:
            extra += f" produces={','.join(self.produces)}"
        if self.role is not None:
            extra += f" role={self.role.name}"
        return f"<Route {self.method} {self.path}{extra}>"


class Router:
    """Ordered route table and chain executor (ASGI application).

    Attributes:
        routes: Routes in registration order.
        harness: StageHarness running every stage.
    """

    __slots__ = ("routes", "harness")

    def __init__(self, harness: StageHarness | None = None) -> None:
        self.routes: list[Route] = []
        self.harness = harness or StageHarness()

    def add(
        self,
        method: str,
        path: str,
        *stages: Stage,
        consumes: tuple[str, ...] = (),
        produces: tuple[str, ...] = (),
        role: Role | None = None,
    ) -> Route:
        """Register a route. Stages run in the given order."""
        if not stages:
            raise ValueError(f"Route {method} {path} needs at least one stage")
        route = Route(
            method=method.upper(),
            pattern=PathPattern(path),
            stages=tuple(stages),
            consumes=tuple(consumes),
            produces=tuple(produces),
            role=role,
        )
        self.routes.append(route)
        return route

    def get(self, path: str, *stages: Stage, **kwargs: object) -> Route:
        return self.add("GET", path, *stages, **kwargs)  # type: ignore[arg-type]

    def head(self, path: str, *stages: Stage, **kwargs: object) -> Route:
        return self.add("HEAD", path, *stages, **kwargs)  # type: ignore[arg-type]

    def post(self, path: str, *stages: Stage, **kwargs: object) -> Route:
        return self.add("POST", path, *stages, **kwargs)  # type: ignore[arg-type]

    def put(self, path: str, *stages: Stage, **kwargs: object) -> Route:
        return self.add("PUT", path, *stages, **kwargs)  # type: ignore[arg-type]

    def delete(self, path: str, *stages: Stage, **kwargs: object) -> Route:
        return self.add("DELETE", path, *stages, **kwargs)  # type: ignore[arg-type]

    def match(
        self,
        method: str,
        path: str,
        content_type: str | None = None,
        accept: str | None = None,
    ) -> tuple[Route, dict[str, str]] | None:
        """First route accepting the request, with its path parameters."""
        method = method.upper()
        for route in self.routes:
            if route.method != method:
                continue
            params = route.pattern.match(path)
            if params is None:
                continue
            if route.accepts(content_type, accept):
                return route, params
        return None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI interface - dispatch an HTTP request."""
        if scope["type"] != "http":
            return
        context = RequestContext(scope, receive, send)
        token = set_current_context(context)
        try:
            await self.dispatch(context)
        finally:
            reset_current_context(token)

    async def dispatch(self, context: RequestContext) -> None:
        """Match and run the chain for ``context``."""
        found = self.match(
            context.method,
            context.path,
            context.headers.get("content-type"),
            context.accept,
        )
        if found is None:
            logger.debug("No route for %s %s", context.method, context.path)
            await self.harness.fail(context, HTTPNotFound())
            return

        route, params = found
        context.route = route
        context.scope["route"] = route
        context.path_params = params
        logger.debug("%s %s matched %r", context.method, context.path, route)

        for stage in route.stages:
            outcome = await self.harness.run(stage, context)
            if not outcome.ok or context.finalized:
                return
            if outcome.result is not None:
                media_type = route.produces[0] if route.produces else None
                context.response.set_result(outcome.result, media_type=media_type)
                break

        if not context.finalized:
            await context.finish()

    def __len__(self) -> int:
        return len(self.routes)

    def __repr__(self) -> str:
        return f"Router(routes={len(self.routes)})"
