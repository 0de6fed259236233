"""
Cooperative cancellation for a single chat turn.

The host owns one CancellationToken per turn and calls cancel() when the user
stops the request. Awaiting code races its work against wait().
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Awaitable, TypeVar

from pulumipus.errors import Cancelled

T = TypeVar("T")


class CancellationToken:
    """A one-shot cancellation flag that can be awaited."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    async def wait(self):
        await self._event.wait()


async def race(work: Awaitable[T], token: CancellationToken | None) -> T:
    """
    Await `work` unless `token` fires first.

    If the token wins, the work is cancelled (aborting any in-flight I/O) and
    Cancelled is raised.
    """
    if token is None:
        return await work

    task = asyncio.ensure_future(work)
    if token.is_cancellation_requested:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise Cancelled()

    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    raise Cancelled()
