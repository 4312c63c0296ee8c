"""Tests for fan-in tailing of pod logs and events."""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest

from nimctl.clients.k8s import EventSnapshot, EventWatch
from nimctl.core.exceptions import (
    EnumerationFailed,
    K8sError,
    NoSourcesFound,
    SourceOpenFailed,
    SourceReadFailed,
)
from nimctl.tail import tail_events, tail_logs
from nimctl.tail.models import CORE_V1, EVENTS_V1, PodContainerRef


class FakeStream:
    """Blocking line source that ends after its lines, or once closed when endless."""

    def __init__(self, lines=(), endless=False, fail_after=None):
        self.lines = list(lines)
        self.endless = endless
        self.fail_after = fail_after
        self.closed = threading.Event()

    def __iter__(self):
        for i, line in enumerate(self.lines):
            if self.fail_after is not None and i == self.fail_after:
                raise ConnectionError("connection reset")
            yield line
        while self.endless and not self.closed.is_set():
            yield "tick"

    def close(self):
        self.closed.set()


class FakeClient:
    """Stands in for K8sClient, recording which sources were opened."""

    def __init__(self, pods=None, list_error=None):
        self.pods = pods or []
        self.list_error = list_error
        self.streams = {}
        self.open_errors = {}
        self.opened = []
        self.snapshots = {}
        self.watches = {}
        self.watch_calls = []

    def list_pods(self, namespace=None, label_selector=None):
        if self.list_error:
            raise self.list_error
        return self.pods

    def open_log_stream(self, source, follow=True, timestamps=False):
        self.opened.append(source)
        if source.label in self.open_errors:
            raise self.open_errors[source.label]
        return self.streams[source.label]

    def list_pod_events(self, namespace, pod):
        snapshot = self.snapshots[pod]
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot

    def watch_pod_events(self, namespace, pod, api=EVENTS_V1, resource_version=None):
        self.watch_calls.append((pod, api, resource_version))
        return self.watches.get(pod, FakeStream())


class WatchingClient(FakeClient):
    """Serves event watches through EventWatch over a mocked list call."""

    def __init__(self, pods=None):
        super().__init__(pods=pods)
        self.list_events = MagicMock()

    def watch_pod_events(self, namespace, pod, api=EVENTS_V1, resource_version=None):
        watch = EventWatch(self.list_events, namespace, api, resource_version=resource_version)
        watch.open()
        return watch


class GatedClient(FakeClient):
    """Opens log streams only once the gate is set."""

    def __init__(self, pods=None):
        super().__init__(pods=pods)
        self.gate = threading.Event()
        self.started = threading.Event()

    def open_log_stream(self, source, follow=True, timestamps=False):
        self.started.set()
        self.gate.wait(timeout=5)
        return super().open_log_stream(source, follow=follow, timestamps=timestamps)


def pod(name, *containers):
    return {"name": name, "namespace": "ns", "status": "Running", "containers": list(containers)}


def event(seconds, reason, note="", api=EVENTS_V1, controller=None):
    data = {"type": "Normal", "reason": reason}
    stamp = f"2024-01-01T00:00:{seconds:02d}Z" if seconds is not None else None
    if api == EVENTS_V1:
        data.update({"eventTime": stamp, "note": note, "reportingController": controller})
    else:
        data.update({"lastTimestamp": stamp, "message": note, "source": {"component": controller}})
    return data


class Collector:
    def __init__(self):
        self.lines = []
        self.errors = []

    def sink(self, line):
        self.lines.append(line)

    def error_sink(self, line):
        self.errors.append(line)


class TestTailLogs:
    """Tests for tail_logs."""

    def test_no_pods_raises_before_opening(self):
        client = FakeClient(pods=[])
        out = Collector()

        with pytest.raises(NoSourcesFound) as exc_info:
            asyncio.run(tail_logs(client, "ns", "app=x", out.sink))

        assert client.opened == []
        assert out.lines == []
        assert "app=x" in str(exc_info.value)

    def test_list_failure_raises_enumeration_failed(self):
        client = FakeClient(list_error=K8sError("Failed to list pods: Forbidden", status_code=403))

        with pytest.raises(EnumerationFailed) as exc_info:
            asyncio.run(tail_logs(client, "ns", "app=x", Collector().sink))

        assert client.opened == []
        assert isinstance(exc_info.value.cause, K8sError)

    def test_every_line_attributed_once(self):
        client = FakeClient(pods=[pod("p1", "a", "b"), pod("p2", "a", "b")])
        for p in ("p1", "p2"):
            for c in ("a", "b"):
                client.streams[f"{p}/{c}"] = FakeStream([f"{p}-{c}-{i}" for i in range(3)])
        out = Collector()

        result = asyncio.run(tail_logs(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert result is None
        assert len(out.lines) == 12
        expected = {
            f"[{p}/{c}] {p}-{c}-{i}" for p in ("p1", "p2") for c in ("a", "b") for i in range(3)
        }
        assert set(out.lines) == expected
        assert out.errors == []

    def test_lines_keep_per_source_order(self):
        client = FakeClient(pods=[pod("p1", "a"), pod("p2", "a")])
        client.streams["p1/a"] = FakeStream([str(i) for i in range(50)])
        client.streams["p2/a"] = FakeStream([str(i) for i in range(50)])
        out = Collector()

        asyncio.run(tail_logs(client, "ns", "app=x", out.sink, buffer_size=4))

        p1 = [line.split(" ", 1)[1] for line in out.lines if line.startswith("[p1/a]")]
        assert p1 == [str(i) for i in range(50)]

    def test_open_failure_is_isolated(self):
        client = FakeClient(pods=[pod("p1", "a"), pod("p2", "a"), pod("p3", "a")])
        client.streams["p1/a"] = FakeStream(["one", "two"])
        client.streams["p3/a"] = FakeStream(["three"])
        client.open_errors["p2/a"] = K8sError("Failed to stream logs: Not Found", status_code=404)
        out = Collector()

        result = asyncio.run(tail_logs(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert result is None
        assert sorted(out.lines) == ["[p1/a] one", "[p1/a] two", "[p3/a] three"]
        assert len(out.errors) == 1
        assert "ns/p2/a" in out.errors[0]
        assert "log stream" in out.errors[0]

    def test_read_failure_reported_after_delivered_lines(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.streams["p1/a"] = FakeStream(["ok", "lost"], fail_after=1)
        out = Collector()

        asyncio.run(tail_logs(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert out.lines == ["[p1/a] ok"]
        assert len(out.errors) == 1
        assert "connection reset" in out.errors[0]

    def test_container_filter(self):
        client = FakeClient(pods=[pod("p1", "main", "sidecar")])
        client.streams["p1/main"] = FakeStream(["hello"])
        out = Collector()

        asyncio.run(tail_logs(client, "ns", "app=x", out.sink, container="main"))

        assert client.opened == [PodContainerRef("ns", "p1", "main")]
        assert out.lines == ["[p1/main] hello"]

    def test_pod_without_containers_contributes_nothing(self):
        client = FakeClient(pods=[pod("empty"), pod("p1", "a")])
        client.streams["p1/a"] = FakeStream(["x"])
        out = Collector()

        asyncio.run(tail_logs(client, "ns", "app=x", out.sink))

        assert out.lines == ["[p1/a] x"]

    def test_streams_are_closed(self):
        client = FakeClient(pods=[pod("p1", "a"), pod("p2", "a")])
        client.streams["p1/a"] = FakeStream(["x"])
        client.streams["p2/a"] = FakeStream([])

        asyncio.run(tail_logs(client, "ns", "app=x", Collector().sink))

        assert all(s.closed.is_set() for s in client.streams.values())

    def test_cancellation_returns_promptly(self):
        client = FakeClient(pods=[pod("p1", "a", "b"), pod("p2", "a")])
        for label in ("p1/a", "p1/b", "p2/a"):
            client.streams[label] = FakeStream(endless=True)
        out = Collector()

        async def run():
            await asyncio.wait_for(
                tail_logs(client, "ns", "app=x", out.sink, buffer_size=1),
                timeout=0.3,
            )

        start = time.monotonic()
        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(run())

        assert time.monotonic() - start < 3
        assert out.lines
        assert all(s.closed.is_set() for s in client.streams.values())

    def test_task_cancel_propagates(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.streams["p1/a"] = FakeStream(endless=True)

        async def run():
            task = asyncio.create_task(tail_logs(client, "ns", "app=x", Collector().sink))
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert client.streams["p1/a"].closed.is_set()

    def test_stream_opened_after_cancel_is_closed(self):
        client = GatedClient(pods=[pod("p1", "a")])
        client.streams["p1/a"] = FakeStream(endless=True)

        async def run():
            task = asyncio.create_task(tail_logs(client, "ns", "app=x", Collector().sink))
            while not client.started.is_set():
                await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        client.gate.set()

        assert client.streams["p1/a"].closed.wait(timeout=2)

    def test_timestamps_parsed(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.streams["p1/a"] = FakeStream(["2024-05-01T10:00:00.123456789Z started"])
        out = Collector()

        asyncio.run(tail_logs(client, "ns", "app=x", out.sink, timestamps=True))

        assert out.lines == ["[p1/a] 2024-05-01T10:00:00.123456789Z started"]


class TestTailEvents:
    """Tests for tail_events."""

    def test_no_pods(self):
        with pytest.raises(NoSourcesFound):
            asyncio.run(tail_events(FakeClient(pods=[]), "ns", "app=x", Collector().sink))

    def test_snapshot_sorted_by_time(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(
            api=EVENTS_V1,
            events=[event(5, "Five"), event(2, "Two"), event(8, "Eight")],
            resource_version="42",
        )
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink))

        assert [line.split()[3] for line in out.lines] == ["Two", "Five", "Eight"]
        assert client.watch_calls == [("p1", EVENTS_V1, "42")]

    def test_event_line_format(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(
            api=EVENTS_V1,
            events=[
                event(3, "Pulled", "image pulled"),
                event(None, "Scheduled", "assigned", controller="default-scheduler"),
            ],
        )
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink))

        assert out.lines == [
            "[p1] <unknown> Normal Scheduled default-scheduler: assigned",
            "[p1] 2024-01-01T00:00:03Z Normal Pulled kubelet: image pulled",
        ]

    def test_core_events_and_watch(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(
            api=CORE_V1,
            events=[event(1, "Created", "created", api=CORE_V1)],
            resource_version="7",
        )
        client.watches["p1"] = FakeStream([event(9, "Killing", "stopping", api=CORE_V1)])
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink))

        assert out.lines == [
            "[p1] 2024-01-01T00:00:01Z Normal Created kubelet: created",
            "[p1] 2024-01-01T00:00:09Z Normal Killing kubelet: stopping",
        ]
        assert client.watch_calls == [("p1", CORE_V1, "7")]

    def test_list_failure_is_per_pod(self):
        client = FakeClient(pods=[pod("p1", "a"), pod("p2", "a")])
        client.snapshots["p1"] = K8sError("Failed to list events: Forbidden", status_code=403)
        client.snapshots["p2"] = EventSnapshot(api=EVENTS_V1, events=[event(1, "Started")])
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert len(out.lines) == 1
        assert out.lines[0].startswith("[p2]")
        assert len(out.errors) == 1
        assert "event list" in out.errors[0]

    def test_watch_open_failure_reported(self):
        client = FakeClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(api=EVENTS_V1, events=[event(1, "Started")])

        def broken_watch(*args, **kwargs):
            raise K8sError("Failed to watch events: Gone", status_code=410)

        client.watch_pod_events = broken_watch
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert len(out.lines) == 1
        assert len(out.errors) == 1
        assert "event watch" in out.errors[0]

    def test_expired_watch_reported(self, watch_response):
        expired = {
            "type": "ERROR",
            "object": {"kind": "Status", "code": 410, "reason": "Expired", "message": "too old resource version"},
        }
        client = WatchingClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(api=EVENTS_V1, events=[event(1, "Started")], resource_version="5")
        client.list_events.side_effect = lambda *args, **kwargs: watch_response(expired)
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert len(out.lines) == 1
        assert len(out.errors) == 1
        assert "error reading ns/p1" in out.errors[0]
        assert "Expired" in out.errors[0]
        assert client.list_events.call_count == 2

    def test_watch_resumes_after_server_close(self, watch_response):
        def added(seconds, reason, version):
            return {"type": "ADDED", "object": {**event(seconds, reason), "metadata": {"resourceVersion": version}}}

        client = WatchingClient(pods=[pod("p1", "a")])
        client.snapshots["p1"] = EventSnapshot(api=EVENTS_V1, resource_version="5")
        client.list_events.side_effect = [
            watch_response(added(6, "Pulled", "6")),
            watch_response(added(7, "Started", "7")),
            watch_response(
                {"type": "ERROR", "object": {"code": 500, "reason": "InternalError", "message": "etcd unavailable"}}
            ),
        ]
        out = Collector()

        asyncio.run(tail_events(client, "ns", "app=x", out.sink, error_sink=out.error_sink))

        assert [line.split()[3] for line in out.lines] == ["Pulled", "Started"]
        versions = [c.kwargs["resource_version"] for c in client.list_events.call_args_list]
        assert versions == ["5", "6", "7"]
        assert len(out.errors) == 1
        assert "etcd unavailable" in out.errors[0]


class TestErrors:
    """Tests for tail error messages."""

    def test_source_open_failed_names_source(self):
        ref = PodContainerRef("ns", "p1", "a")
        error = SourceOpenFailed(ref, RuntimeError("boom"), "log stream")
        assert str(error) == "error opening log stream for ns/p1/a: boom"
        assert error.source == ref

    def test_source_read_failed(self):
        error = SourceReadFailed(PodContainerRef("ns", "p1"), RuntimeError("eof"))
        assert str(error) == "error reading ns/p1: eof"
