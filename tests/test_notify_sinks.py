import json
import logging
from dataclasses import dataclass

import pytest

from cec.notify.base import SinkError
from cec.notify.fanout import CollectingSink, FanoutSink
from cec.notify.formatter import format_event_text
from cec.notify.jsonl import JsonLinesSink
from cec.notify.log import LoggingSink


PAYLOAD = {
    "id": "evt1",
    "summary": "test new event",
    "htmlLink": "https://www.google.com/calendar/event?eid=xyz",
    "start": {"dateTime": "2024-06-02T13:00:00.000+02:00", "timeZone": "Europe/Paris"},
}


@dataclass
class _FailingSink:
    def channel(self) -> str:
        return "fail"

    def notify(self, payload) -> None:  # noqa: ANN001, ARG002
        raise RuntimeError("boom")


def test_format_event_text() -> None:
    text = format_event_text(PAYLOAD)
    assert text == (
        "upcoming event: test new event start=2024-06-02T13:00:00.000+02:00 id=evt1 "
        "link=https://www.google.com/calendar/event?eid=xyz"
    )
    assert format_event_text({}) == "upcoming event: (no title) start=- id=- link=-"


def test_jsonl_sink_appends_lines(tmp_path) -> None:  # noqa: ANN001
    path = tmp_path / "nested" / "out.jsonl"
    sink = JsonLinesSink(path=str(path))

    sink.notify(PAYLOAD)
    sink.notify({"id": "evt2", "summary": "réunion"})

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["payload"] == PAYLOAD
    assert "notified_at" in first
    assert "réunion" in lines[1]


def test_logging_sink_logs_formatted_text(caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.INFO, logger="cec.notifications")
    LoggingSink().notify(PAYLOAD)
    assert "upcoming event: test new event" in caplog.text


def test_fanout_isolates_failing_sink(caplog) -> None:  # noqa: ANN001
    collected = CollectingSink()
    fanout = FanoutSink(sinks=(_FailingSink(), collected))

    caplog.set_level(logging.ERROR)
    with pytest.raises(SinkError) as exc_info:
        fanout.notify(PAYLOAD)

    assert collected.payloads == [PAYLOAD]
    assert exc_info.value.failures == ("fail: RuntimeError: boom",)
    assert "sink failed" in caplog.text
    assert fanout.channel() == "fail+collect"


def test_empty_fanout_channel() -> None:
    assert FanoutSink(sinks=()).channel() == "none"


def test_fanout_without_failures_does_not_raise() -> None:
    first, second = CollectingSink(), CollectingSink()
    FanoutSink(sinks=(first, second)).notify(PAYLOAD)
    assert first.payloads == second.payloads == [PAYLOAD]
