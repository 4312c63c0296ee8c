"""Run tail coroutines from synchronous click commands."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from nimctl.core.exceptions import TimeoutError

T = TypeVar("T")


async def run_with_timeout(
    coro: Coroutine[Any, Any, T],
    timeout: float,
    timeout_message: str = "Operation timed out",
) -> T:
    """Await coro, cancelling it once timeout seconds have passed.

    Raises:
        TimeoutError: the deadline passed; coro has been cancelled and has
            closed its streams by the time this is raised.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        raise TimeoutError(timeout_message, timeout_seconds=timeout)


def run_sync(
    coro: Coroutine[Any, Any, T],
    timeout: float | None = None,
    timeout_message: str = "Operation timed out",
) -> T:
    """Run coro to completion on a fresh event loop.

    Click commands are synchronous and never run inside a loop. Ctrl-C
    cancels coro and then surfaces as KeyboardInterrupt.
    """
    if timeout is not None:
        coro = run_with_timeout(coro, timeout, timeout_message)
    return asyncio.run(coro)
