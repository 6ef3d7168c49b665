# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Resource handlers - the terminal stage of every CRUD route.

The storage engine lives outside this package. A deployment plugs it in by
subclassing ResourceHandlers and naming the class in the ``handlers``
config key::

    handlers: "mystore.http:StoreHandlers"

Each operation receives the RequestContext, already authorized and with
the body buffered in ``context.body``. Path parameters are in
``context.path_params`` (``database``, ``resource``). The return value
becomes the response body:

    - str / bytes: sent as is, labeled with the route's produced type
    - dict / list: JSON
    - None: empty 200

Operations may also build and send ``context.response`` themselves.
Operations not overridden answer 501.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .config import ConfigError
from .exceptions import HTTPNotImplemented

if TYPE_CHECKING:
    from .context import RequestContext

__all__ = ["OPERATIONS", "ResourceHandlers", "load_handlers"]

OPERATIONS = (
    "xml_create",
    "json_create",
    "create_multiple",
    "xml_update",
    "json_update",
    "xml_get",
    "json_get",
    "xml_head",
    "json_head",
    "xml_delete",
    "json_delete",
    "delete_all",
)


class ResourceHandlers:
    """Base class of the storage-side operations.

    Attributes:
        data_root: Location of the backing store, read-only.
    """

    def __init__(self, data_root: Path) -> None:
        self.data_root = data_root

    def _not_implemented(self, context: RequestContext) -> Any:
        operation = context.route.path if context.route is not None else context.path
        raise HTTPNotImplemented(f"{context.method} {operation} is not implemented")

    async def on_startup(self) -> None:
        """Called once when the server starts."""

    async def on_shutdown(self) -> None:
        """Called once when the server stops."""

    async def xml_create(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def json_create(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def create_multiple(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def xml_update(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def json_update(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def xml_get(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def json_get(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def xml_head(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def json_head(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def xml_delete(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def json_delete(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    async def delete_all(self, context: RequestContext) -> Any:
        return self._not_implemented(context)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(data_root={str(self.data_root)!r})"


def load_handlers(target: str | None, data_root: Path) -> ResourceHandlers:
    """Instantiate the handlers named by ``module:Class``.

    None gives the base class, which answers 501 everywhere.

    Raises:
        ConfigError: If the target is malformed or cannot be imported.
    """
    if not target:
        return ResourceHandlers(data_root)
    module_name, _, class_name = target.partition(":")
    if not module_name or not class_name:
        raise ConfigError(f"Invalid handlers '{target}': expected 'module:Class'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import handlers module '{module_name}': {exc}") from exc
    cls = getattr(module, class_name, None)
    if cls is None:
        raise ConfigError(f"Module '{module_name}' has no attribute '{class_name}'")
    return cls(data_root)
