# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for the ASGI lifespan of SirixApplication."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from conftest import FakeKeycloak, MockSend

from sirix_asgi.application import SirixApplication
from sirix_asgi.resources import ResourceHandlers


class HookedHandlers(ResourceHandlers):
    def __init__(self, data_root: Path) -> None:
        super().__init__(data_root)
        self.events: list[str] = []

    async def on_startup(self) -> None:
        self.events.append("startup")

    async def on_shutdown(self) -> None:
        self.events.append("shutdown")


def lifespan_receive(*types: str) -> Any:
    messages = [{"type": message_type} for message_type in types]

    async def receive() -> dict[str, Any]:
        return messages.pop(0)

    return receive


@pytest.mark.asyncio
async def test_startup_and_shutdown(keycloak: FakeKeycloak, settings_factory: Any, tmp_path: Path) -> None:
    handlers = HookedHandlers(tmp_path)
    app = SirixApplication(settings_factory(), handlers=handlers, transport=keycloak.transport)
    send = MockSend()

    await app({"type": "lifespan"}, lifespan_receive("lifespan.startup", "lifespan.shutdown"), send)

    assert [m["type"] for m in send.messages] == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
    assert handlers.events == ["startup", "shutdown"]
    assert app.client.discovered
    assert app.client.http.is_closed
    assert not app.lifespan.started


@pytest.mark.asyncio
async def test_unreachable_provider_fails_startup(
    keycloak: FakeKeycloak, settings_factory: Any, tmp_path: Path
) -> None:
    keycloak.down = True
    handlers = HookedHandlers(tmp_path)
    app = SirixApplication(settings_factory(), handlers=handlers, transport=keycloak.transport)
    send = MockSend()

    await app({"type": "lifespan"}, lifespan_receive("lifespan.startup"), send)

    assert send.messages[0]["type"] == "lifespan.startup.failed"
    assert "unreachable" in send.messages[0]["message"]
    assert handlers.events == []


@pytest.mark.asyncio
async def test_shutdown_error_still_completes(
    keycloak: FakeKeycloak, settings_factory: Any, tmp_path: Path
) -> None:
    class FailingHandlers(ResourceHandlers):
        async def on_shutdown(self) -> None:
            raise RuntimeError("store busy")

    app = SirixApplication(settings_factory(), handlers=FailingHandlers(tmp_path), transport=keycloak.transport)
    send = MockSend()

    await app({"type": "lifespan"}, lifespan_receive("lifespan.startup", "lifespan.shutdown"), send)

    assert send.messages[-1]["type"] == "lifespan.shutdown.complete"
    assert app.client.http.is_closed
