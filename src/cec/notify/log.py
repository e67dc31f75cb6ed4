from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .base import NotificationSink
from .formatter import format_event_text


@dataclass(slots=True)
class LoggingSink(NotificationSink):
    logger_name: str = "cec.notifications"

    def channel(self) -> str:
        return "log"

    def notify(self, payload: Mapping[str, Any]) -> None:
        logging.getLogger(self.logger_name).info("%s", format_event_text(payload))
