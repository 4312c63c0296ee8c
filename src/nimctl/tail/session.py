"""Fan-out/fan-in engine shared by log and event tailing.

Each source runs as its own asyncio task. Blocking client calls (opening a
stream, reading the next line) run on a thread pool owned by the session and
sized to the number of workers, so followed streams never starve each other.
All workers feed one bounded queue; a supervisor task waits for every worker
and then closes the queue exactly once; the caller's task drains it into the
sink.
"""

import asyncio
import functools
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol, TypeVar

from nimctl.core.exceptions import SourceReadFailed, TailError
from nimctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)

T = TypeVar("T")

Sink = Callable[[str], None]

DEFAULT_BUFFER_SIZE = 1024

# Queue sentinel marking that every worker has finished.
_CLOSED = object()
# Returned by next() on an exhausted iterator.
_EXHAUSTED = object()


class Formattable(Protocol):
    def format(self) -> str: ...


class Closeable(Protocol):
    def close(self) -> None: ...


C = TypeVar("C", bound=Closeable)


def _close_unclaimed(future: Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    logger.debug("Closing source opened after cancellation")
    future.result().close()


Worker = Callable[["TailSession"], Awaitable[None]]


class TailSession:
    """One running tail: its workers, the shared queue and the sinks."""

    def __init__(
        self,
        sink: Sink,
        error_sink: Sink | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self._sink = sink
        self._error_sink = error_sink
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=buffer_size)
        self._workers: list[tuple[str, Worker]] = []
        self._executor: ThreadPoolExecutor | None = None
        self.lines_written = 0
        self.errors: list[TailError] = []

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    def add_worker(self, name: str, worker: Worker) -> None:
        """Register a worker coroutine function; it receives the session."""
        if self._executor is not None:
            raise RuntimeError("cannot add workers to a running session")
        self._workers.append((name, worker))

    async def emit(self, item: Formattable) -> None:
        """Place one item on the shared queue, waiting while it is full.

        The wait is an ordinary await, so cancelling the session never leaves
        a worker stuck on a full queue.
        """
        await self._queue.put(item)

    async def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking client call on the session's thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor, functools.partial(func, *args, **kwargs)
        )

    async def open(self, func: Callable[..., C], *args: Any, **kwargs: Any) -> C:
        """Like call(), for a blocking call that returns a closeable source.

        If the caller is cancelled while the call is still running, the
        source it eventually returns is closed instead of leaking.
        """
        future = self._executor.submit(func, *args, **kwargs)
        try:
            return await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            future.add_done_callback(_close_unclaimed)
            raise

    async def iterate(self, iterable: Iterable[T], source: Any) -> AsyncIterator[T]:
        """Iterate a blocking iterable one item at a time off the event loop.

        Errors raised while reading become SourceReadFailed for ``source``.
        """
        iterator = iter(iterable)
        while True:
            try:
                item = await self.call(next, iterator, _EXHAUSTED)
            except Exception as e:
                raise SourceReadFailed(source, e) from e
            if item is _EXHAUSTED:
                return
            yield item

    def report(self, error: TailError) -> None:
        """Record a per-source failure without stopping the session."""
        self.errors.append(error)
        logger.debug("Source failed", error=error)
        if self._error_sink is not None:
            self._error_sink(str(error))

    async def _run_worker(self, name: str, worker: Worker) -> None:
        try:
            await worker(self)
        except TailError as e:
            self.report(e)
        except Exception as e:
            # One broken source must not take down its siblings.
            self.report(SourceReadFailed(name, e))
        finally:
            logger.debug("Worker finished", worker=name)

    async def _supervise(self, tasks: list[asyncio.Task[None]]) -> None:
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._close_queue()

    async def _close_queue(self) -> None:
        await self._queue.put(_CLOSED)

    async def run(self) -> int:
        """Run every worker and drain the queue into the sink.

        Returns the number of lines written once all workers have finished.
        Cancelling the calling task cancels every worker and re-raises
        CancelledError.
        """
        if self._executor is not None:
            raise RuntimeError("session already started")

        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(self._workers)),
            thread_name_prefix="nimctl-tail",
        )
        tasks = [
            asyncio.create_task(self._run_worker(name, worker), name=name)
            for name, worker in self._workers
        ]
        supervisor = asyncio.create_task(self._supervise(tasks))
        logger.debug("Tail session started", workers=len(tasks))

        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    break
                self._sink(item.format())
                self.lines_written += 1
            await supervisor
        finally:
            pending = [t for t in (*tasks, supervisor) if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            self._executor.shutdown(wait=False, cancel_futures=True)

        logger.debug("Tail session finished", lines=self.lines_written, errors=len(self.errors))
        return self.lines_written
