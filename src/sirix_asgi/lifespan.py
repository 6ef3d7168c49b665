# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
ASGI Lifespan Management.

ApplicationLifespan runs the startup and shutdown sequences of a
SirixApplication:

startup
    1. one round of identity provider discovery
    2. ``on_startup`` of the resource handlers

shutdown
    1. ``on_shutdown`` of the resource handlers
    2. close the shared HTTP client of the OAuth2 client

A startup error answers ``lifespan.startup.failed`` so the server refuses
to serve requests with an unreachable provider. Shutdown errors are logged
and shutdown always completes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .types import Receive, Scope, Send

if TYPE_CHECKING:
    from .application import SirixApplication

__all__ = ["ApplicationLifespan"]


class ApplicationLifespan:
    """ASGI lifespan handler for SirixApplication.

    Attributes:
        app: The application whose resources are managed.
        started: True between a successful startup and shutdown.
    """

    __slots__ = ("app", "_logger", "started")

    def __init__(self, app: SirixApplication) -> None:
        self.app = app
        self._logger = logging.getLogger("sirix_asgi.lifespan")
        self.started = False

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:  # noqa: ARG002
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    self._logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception:
                    self._logger.exception("Shutdown error")
                finally:
                    await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        self._logger.info("sirix-asgi starting up (flow=%s)", self.app.settings.oauth2.flow.value)
        metadata = await self.app.client.discover()
        self._logger.info("Identity provider issuer: %s", metadata.issuer)
        await self.app.handlers.on_startup()
        self.started = True
        self._logger.info("sirix-asgi started")

    async def shutdown(self) -> None:
        self._logger.info("sirix-asgi shutting down...")
        try:
            await self.app.handlers.on_shutdown()
        except Exception:
            self._logger.exception("Error shutting down resource handlers")
        await self.app.client.aclose()
        self.started = False
        self._logger.info("sirix-asgi stopped")
