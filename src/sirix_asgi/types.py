# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""ASGI type aliases used across sirix-asgi.

Scope and Message are kept as generic mappings: ASGI scopes and messages
vary by connection type and are validated at runtime by the request,
response and middleware classes that consume them.

Stage is the signature of one step of a route's handler chain. A stage
receives the RequestContext and may be sync or async; its return value, if
not None, becomes the response body.
"""

from typing import Any, Awaitable, Callable, MutableMapping

__all__ = ["Scope", "Message", "Receive", "Send", "ASGIApp", "Stage"]

# ASGI Scope - connection metadata
Scope = MutableMapping[str, Any]

# ASGI Message - sent/received data
Message = MutableMapping[str, Any]

# ASGI Receive - callable to receive messages
Receive = Callable[[], Awaitable[Message]]

# ASGI Send - callable to send messages
Send = Callable[[Message], Awaitable[None]]

# ASGI Application - the main callable
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

# Handler chain stage - sync or async callable taking the RequestContext
Stage = Callable[[Any], Any]
