"""Data types flowing through a tail session."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from nimctl.core.utils import format_timestamp, get_path, parse_timestamp

DEFAULT_EVENT_SOURCE = "kubelet"

EVENTS_V1 = "events.k8s.io/v1"
CORE_V1 = "v1"

_LOG_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2}) "
)

# Sort key for events that carry no usable time at all.
_EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class PodContainerRef:
    """One addressable log or event source."""

    namespace: str
    pod: str
    container: str | None = None

    @property
    def label(self) -> str:
        if self.container:
            return f"{self.pod}/{self.container}"
        return self.pod

    def __str__(self) -> str:
        return f"{self.namespace}/{self.label}"


@dataclass(frozen=True)
class LogLine:
    """A single log line attributed to its pod and container."""

    source: PodContainerRef
    text: str
    timestamp: datetime | None = None

    def format(self) -> str:
        return f"[{self.source.label}] {self.text}"


@dataclass(frozen=True)
class EventRecord:
    """A Kubernetes event about one pod, reduced to what gets printed."""

    pod: str
    timestamp: datetime | None
    type: str
    reason: str
    source: str
    message: str

    @property
    def sort_key(self) -> datetime:
        return self.timestamp or _EPOCH_MIN

    def format(self) -> str:
        return (
            f"[{self.pod}] {format_timestamp(self.timestamp)} {self.type} "
            f"{self.reason} {self.source}: {self.message}"
        )


def first_timestamp(*candidates: Any) -> datetime | None:
    """Return the first candidate that holds a usable time."""
    for candidate in candidates:
        parsed = parse_timestamp(candidate)
        if parsed is not None:
            return parsed
    return None


def resolve_event_time(event: dict[str, Any], api: str = EVENTS_V1) -> datetime | None:
    """Best available time for an event object as returned by the API.

    events.k8s.io/v1 renames the legacy first/last timestamps to
    ``deprecated*``; both APIs share ``eventTime`` and ``series``.
    """
    if api == EVENTS_V1:
        legacy = ("deprecatedLastTimestamp", "deprecatedFirstTimestamp")
    else:
        legacy = ("lastTimestamp", "firstTimestamp")
    return first_timestamp(
        event.get("eventTime"),
        get_path(event, "series.lastObservedTime"),
        *(event.get(key) for key in legacy),
    )


def event_record_from_dict(event: dict[str, Any], pod: str, api: str = EVENTS_V1) -> EventRecord:
    """Build an EventRecord from an events.k8s.io/v1 or core/v1 event dict."""
    if api == EVENTS_V1:
        source = event.get("reportingController")
        message = event.get("note")
    else:
        source = get_path(event, "source.component")
        message = event.get("message")
    return EventRecord(
        pod=pod,
        timestamp=resolve_event_time(event, api),
        type=event.get("type") or "",
        reason=event.get("reason") or "",
        source=source or DEFAULT_EVENT_SOURCE,
        message=message or "",
    )


def parse_log_timestamp(text: str) -> datetime | None:
    """Parse the RFC3339 timestamp the API prepends when timestamps=true."""
    match = _LOG_TIMESTAMP.match(text)
    if not match:
        return None
    base, fraction, offset = match.groups()
    # Python keeps microseconds; the API sends nanoseconds.
    if fraction:
        base = f"{base}.{fraction[:6].ljust(6, '0')}"
    return parse_timestamp(base + offset)
