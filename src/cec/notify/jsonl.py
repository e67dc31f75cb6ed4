from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Mapping

from ..models import utc_now
from .base import NotificationSink


@dataclass(slots=True)
class JsonLinesSink(NotificationSink):
    """
    本地 JSON Lines 文件渠道：每次通知追加一行。

    行格式：{"notified_at": "<ISO8601>", "payload": {...}}
    目录不存在时自动创建。
    """

    path: str

    def channel(self) -> str:
        return "jsonl"

    def notify(self, payload: Mapping[str, Any]) -> None:
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        line = json.dumps(
            {"notified_at": utc_now().isoformat(), "payload": dict(payload)},
            ensure_ascii=False,
            default=str,
        )
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
