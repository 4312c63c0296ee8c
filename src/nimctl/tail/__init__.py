"""Concurrent fan-in tailing of pod logs and events."""

from nimctl.tail.models import EventRecord, LogLine, PodContainerRef
from nimctl.tail.session import TailSession
from nimctl.tail.tailer import tail_events, tail_logs

__all__ = [
    "EventRecord",
    "LogLine",
    "PodContainerRef",
    "TailSession",
    "tail_events",
    "tail_logs",
]
