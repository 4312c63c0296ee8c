"""Tail the logs or events of every pod matching a label selector."""

import asyncio
from typing import Any

from nimctl.core.exceptions import EnumerationFailed, NoSourcesFound, SourceOpenFailed
from nimctl.core.logging import StructuredLogger
from nimctl.tail.models import (
    LogLine,
    PodContainerRef,
    event_record_from_dict,
    parse_log_timestamp,
)
from nimctl.tail.session import DEFAULT_BUFFER_SIZE, Sink, TailSession

logger = StructuredLogger(__name__)


async def _enumerate_pods(client: Any, namespace: str, selector: str) -> list[dict[str, Any]]:
    """List the pods matching selector, off the event loop."""
    loop = asyncio.get_running_loop()
    try:
        pods = await loop.run_in_executor(
            None, lambda: client.list_pods(namespace, label_selector=selector)
        )
    except Exception as e:
        raise EnumerationFailed(namespace, selector, e) from e

    if not pods:
        raise NoSourcesFound(namespace, selector)
    return pods


def _log_worker(client: Any, ref: PodContainerRef, follow: bool, timestamps: bool):
    async def worker(session: TailSession) -> None:
        try:
            stream = await session.open(
                client.open_log_stream, ref, follow=follow, timestamps=timestamps
            )
        except Exception as e:
            raise SourceOpenFailed(ref, e, "log stream") from e

        try:
            async for text in session.iterate(stream, ref):
                stamp = parse_log_timestamp(text) if timestamps else None
                await session.emit(LogLine(source=ref, text=text, timestamp=stamp))
        finally:
            stream.close()

    return worker


def _event_worker(client: Any, namespace: str, pod: str):
    ref = PodContainerRef(namespace=namespace, pod=pod)

    async def worker(session: TailSession) -> None:
        try:
            snapshot = await session.call(client.list_pod_events, namespace, pod)
        except Exception as e:
            raise SourceOpenFailed(ref, e, "event list") from e

        records = sorted(
            (event_record_from_dict(event, pod, snapshot.api) for event in snapshot.events),
            key=lambda record: record.sort_key,
        )
        for record in records:
            await session.emit(record)

        try:
            watch = await session.open(
                client.watch_pod_events,
                namespace,
                pod,
                api=snapshot.api,
                resource_version=snapshot.resource_version,
            )
        except Exception as e:
            raise SourceOpenFailed(ref, e, "event watch") from e

        try:
            async for event in session.iterate(watch, ref):
                await session.emit(event_record_from_dict(event, pod, snapshot.api))
        finally:
            watch.close()

    return worker


async def tail_logs(
    client: Any,
    namespace: str,
    selector: str,
    sink: Sink,
    *,
    container: str | None = None,
    follow: bool = True,
    timestamps: bool = False,
    error_sink: Sink | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> None:
    """Stream the logs of every container of every matching pod into sink.

    Each line is written as ``[pod/container] text`` in arrival order. Pods are
    enumerated once; failing to list them or finding none raises before any
    stream is opened. A stream that cannot be opened or breaks while being read
    is reported to error_sink and does not stop the others.

    Returns once every stream has ended. Cancel the calling task to stop a
    followed tail.
    """
    pods = await _enumerate_pods(client, namespace, selector)

    session = TailSession(sink, error_sink=error_sink, buffer_size=buffer_size)
    for pod in pods:
        containers = pod.get("containers") or []
        if container:
            containers = [c for c in containers if c == container]
        for name in containers:
            ref = PodContainerRef(namespace=namespace, pod=pod["name"], container=name)
            session.add_worker(ref.label, _log_worker(client, ref, follow, timestamps))

    log = logger.bind(namespace=namespace, selector=selector)
    log.info("Streaming logs", pods=len(pods), streams=session.worker_count)
    await session.run()


async def tail_events(
    client: Any,
    namespace: str,
    selector: str,
    sink: Sink,
    *,
    error_sink: Sink | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> None:
    """Stream the events of every matching pod into sink.

    Existing events are printed oldest first, then new ones as they arrive.
    """
    pods = await _enumerate_pods(client, namespace, selector)

    session = TailSession(sink, error_sink=error_sink, buffer_size=buffer_size)
    for pod in pods:
        session.add_worker(pod["name"], _event_worker(client, namespace, pod["name"]))

    log = logger.bind(namespace=namespace, selector=selector)
    log.info(f"Watching events for {len(pods)} pod(s)")
    await session.run()
