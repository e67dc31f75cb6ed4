from .base import NotificationSink, SinkError
from .fanout import CollectingSink, FanoutSink
from .formatter import format_event_text
from .jsonl import JsonLinesSink
from .log import LoggingSink

__all__ = [
    "CollectingSink",
    "FanoutSink",
    "JsonLinesSink",
    "LoggingSink",
    "NotificationSink",
    "SinkError",
    "format_event_text",
]
