from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .base import NotificationSink, SinkError


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FanoutSink(NotificationSink):
    """
    组合渠道：依次调用每个 sink，单个 sink 失败不影响其余 sink；
    全部调用完后若有失败，抛出 SinkError，交由 tracker 计数。
    """

    sinks: tuple[NotificationSink, ...]

    def channel(self) -> str:
        return "+".join(s.channel() for s in self.sinks) or "none"

    def notify(self, payload: Mapping[str, Any]) -> None:
        failures: list[str] = []
        for sink in self.sinks:
            try:
                sink.notify(payload)
            except Exception as e:  # noqa: BLE001
                channel = sink.channel()
                failures.append(f"{channel}: {type(e).__name__}: {e}")
                logger.exception(
                    "sink failed: channel=%s sink_type=%s event_id=%s",
                    channel,
                    type(sink).__name__,
                    payload.get("id"),
                )
        if failures:
            raise SinkError(failures)


@dataclass(slots=True)
class CollectingSink(NotificationSink):
    """
    只在内存中收集 payload，不做任何投递（dry-run 使用）。
    """

    payloads: list[Mapping[str, Any]] = field(default_factory=list)

    def channel(self) -> str:
        return "collect"

    def notify(self, payload: Mapping[str, Any]) -> None:
        self.payloads.append(payload)
