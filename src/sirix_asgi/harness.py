# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Async dispatch harness for route chain stages.

Purpose
=======
Every stage of a route chain (authorization gate, body parser, resource
handler) runs through ``StageHarness.run()``, which has one contract:
run the stage, catch any failure, forward it to the FailureTranslator.

Definition::

    class StageHarness:
        def __init__(self, translator: FailureTranslator | None = None)
        async def run(self, stage: Stage, context: RequestContext) -> StageOutcome

    class StageOutcome(NamedTuple):
        ok: bool
        result: Any

Execution model
===============
- Coroutine stages are scheduled as their own task on the running loop
  and awaited, so the request task only resumes once the stage is done.
- Sync stages are wrapped with ``smartasync``, which offloads them to a
  worker thread when called from async code. A slow sync resource handler
  never blocks the event loop.
- A stage that returns an awaitable is awaited as well.

Failures never propagate out of ``run()``: the exception becomes a
FailureRecord, the translator writes the error response, and ``ok`` is
False so the router stops the chain.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import TYPE_CHECKING, Any, NamedTuple

from smartasync import smartasync

from .failures import FailureRecord, FailureTranslator

if TYPE_CHECKING:
    from .context import RequestContext
    from .types import Stage

__all__ = ["StageHarness", "StageOutcome"]


class StageOutcome(NamedTuple):
    ok: bool
    result: Any = None


def _is_coroutine_stage(stage: Stage) -> bool:
    if inspect.iscoroutinefunction(stage):
        return True
    call = getattr(stage, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


class StageHarness:
    """Runs chain stages as non-blocking tasks and funnels their failures.

    Attributes:
        translator: FailureTranslator receiving every stage failure.
    """

    __slots__ = ("translator",)

    def __init__(self, translator: FailureTranslator | None = None) -> None:
        self.translator = translator or FailureTranslator()

    async def _invoke(self, stage: Stage, context: RequestContext) -> Any:
        if _is_coroutine_stage(stage):
            result = stage(context)
        else:
            result = smartasync(stage)(context)
        while inspect.isawaitable(result):
            result = await result
        return result

    async def run(self, stage: Stage, context: RequestContext) -> StageOutcome:
        """Run one stage; on failure translate it and report ``ok=False``."""
        try:
            result = await asyncio.ensure_future(self._invoke(stage, context))
        except Exception as exc:
            await self.fail(context, exc)
            return StageOutcome(False)
        return StageOutcome(True, result)

    async def fail(self, context: RequestContext, exc: BaseException) -> None:
        """Forward a failure that happened outside a stage (e.g. no route)."""
        await self.translator(context, FailureRecord.from_exception(exc))
