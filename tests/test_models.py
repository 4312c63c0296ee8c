"""Tests for tail data types and event time resolution."""

from datetime import datetime, timezone

from nimctl.tail.models import (
    CORE_V1,
    EVENTS_V1,
    EventRecord,
    LogLine,
    PodContainerRef,
    event_record_from_dict,
    parse_log_timestamp,
    resolve_event_time,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestPodContainerRef:
    def test_label_and_str(self):
        ref = PodContainerRef("nim", "llama-0", "server")
        assert ref.label == "llama-0/server"
        assert str(ref) == "nim/llama-0/server"

    def test_pod_only(self):
        assert PodContainerRef("nim", "llama-0").label == "llama-0"


class TestLogLine:
    def test_format(self):
        line = LogLine(PodContainerRef("nim", "p", "c"), "INFO started")
        assert line.format() == "[p/c] INFO started"

    def test_parse_log_timestamp(self):
        assert parse_log_timestamp("2024-05-01T10:00:00.123456789Z hello") == utc(
            2024, 5, 1, 10, 0, 0, 123456
        )
        assert parse_log_timestamp("2024-05-01T10:00:00+02:00 hello") == utc(2024, 5, 1, 8)
        assert parse_log_timestamp("no timestamp here") is None


class TestResolveEventTime:
    def test_event_time_wins(self):
        event = {
            "eventTime": "2024-01-01T00:00:05.000000Z",
            "deprecatedLastTimestamp": "2024-01-01T00:00:09Z",
        }
        assert resolve_event_time(event, EVENTS_V1) == utc(2024, 1, 1, 0, 0, 5)

    def test_series_before_legacy(self):
        event = {
            "eventTime": None,
            "series": {"count": 3, "lastObservedTime": "2024-01-01T00:00:07.000000Z"},
            "deprecatedLastTimestamp": "2024-01-01T00:00:01Z",
        }
        assert resolve_event_time(event, EVENTS_V1) == utc(2024, 1, 1, 0, 0, 7)

    def test_events_v1_legacy_fields(self):
        event = {"eventTime": None, "deprecatedFirstTimestamp": "2024-01-01T00:00:02Z"}
        assert resolve_event_time(event, EVENTS_V1) == utc(2024, 1, 1, 0, 0, 2)

    def test_core_last_then_first(self):
        assert resolve_event_time(
            {"lastTimestamp": "2024-01-01T00:00:04Z", "firstTimestamp": "2024-01-01T00:00:01Z"},
            CORE_V1,
        ) == utc(2024, 1, 1, 0, 0, 4)
        assert resolve_event_time(
            {"lastTimestamp": None, "firstTimestamp": "2024-01-01T00:00:01Z"}, CORE_V1
        ) == utc(2024, 1, 1, 0, 0, 1)

    def test_no_time(self):
        assert resolve_event_time({}, CORE_V1) is None


class TestEventRecord:
    def test_from_events_v1(self):
        record = event_record_from_dict(
            {
                "type": "Warning",
                "reason": "BackOff",
                "note": "Back-off restarting failed container",
                "reportingController": "kubelet",
                "eventTime": "2024-01-01T00:00:03.000000Z",
            },
            "llama-0",
            EVENTS_V1,
        )
        assert record.format() == (
            "[llama-0] 2024-01-01T00:00:03Z Warning BackOff kubelet: "
            "Back-off restarting failed container"
        )

    def test_from_core_defaults_source(self):
        record = event_record_from_dict(
            {"type": "Normal", "reason": "Pulled", "message": "pulled", "source": {}},
            "llama-0",
            CORE_V1,
        )
        assert record.source == "kubelet"
        assert record.format() == "[llama-0] <unknown> Normal Pulled kubelet: pulled"

    def test_sort_key_puts_unknown_first(self):
        unknown = EventRecord("p", None, "Normal", "A", "kubelet", "")
        known = EventRecord("p", utc(2024, 1, 1), "Normal", "B", "kubelet", "")
        assert sorted([known, unknown], key=lambda r: r.sort_key) == [unknown, known]
