# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Middleware package - ASGI layers wrapped around the Router.

Every middleware subclasses BaseMiddleware and registers itself under
``middleware_name``. ``middleware_chain()`` builds the stack from a
mapping of enabled names, outermost first by ``middleware_order``::

    100  errors   (default on)   last-resort failure translation
    200  logging  (default on)   access log
    300  cors     (default off)  installed for the authorization-code flow
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

MIDDLEWARE_REGISTRY: dict[str, type["BaseMiddleware"]] = {}


class BaseMiddleware(ABC):
    """Base class for all middleware. Subclasses auto-register via __init_subclass__.

    Class attributes:
        middleware_name: Registry key (default: class name).
        middleware_order: Order in chain (lower = outer).
        middleware_default: Enabled when the chain config does not mention it.
    """

    middleware_name: str = ""
    middleware_order: int = 500
    middleware_default: bool = False

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp, **kwargs: Any) -> None:
        self.app = app

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        name = cls.middleware_name or cls.__name__
        if name in MIDDLEWARE_REGISTRY:
            raise ValueError(f"Middleware name '{name}' already registered")
        cls.middleware_name = name
        MIDDLEWARE_REGISTRY[name] = cls

    @abstractmethod
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None: ...


def _autodiscover() -> None:
    """Import all middleware modules in this package to trigger registration."""
    package_dir = Path(__file__).parent
    for py_file in package_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        importlib.import_module(f".{py_file.stem}", __package__)


def middleware_chain(app: ASGIApp, config: Mapping[str, Any] | None = None) -> ASGIApp:
    """Wrap ``app`` with the enabled middleware.

    Args:
        app: The innermost ASGI app (the Router).
        config: ``{name: options}``. ``False``/``None`` disables a middleware,
            ``True`` enables it with defaults, a mapping enables it and is
            passed as keyword arguments. Unmentioned middleware follow
            ``middleware_default``.

    Returns:
        Wrapped ASGI app, outermost middleware first by order.

    Example:
        >>> middleware_chain(router, {"cors": {"origin_pattern": "*"}})
    """
    config = config or {}
    unknown = set(config) - set(MIDDLEWARE_REGISTRY)
    if unknown:
        raise ValueError(f"Unknown middleware: {', '.join(sorted(unknown))}")

    enabled: list[tuple[int, type[BaseMiddleware], dict[str, Any]]] = []
    for name, cls in MIDDLEWARE_REGISTRY.items():
        options = config.get(name, cls.middleware_default)
        if options is None or options is False:
            continue
        kwargs = dict(options) if isinstance(options, Mapping) else {}
        enabled.append((cls.middleware_order, cls, kwargs))

    enabled.sort(key=lambda item: item[0])
    for _order, cls, kwargs in reversed(enabled):
        app = cls(app, **kwargs)
    return app


_autodiscover()
globals().update({cls.__name__: cls for cls in MIDDLEWARE_REGISTRY.values()})

__all__ = [
    "BaseMiddleware",
    "MIDDLEWARE_REGISTRY",
    "middleware_chain",
    *(cls.__name__ for cls in MIDDLEWARE_REGISTRY.values()),
]
