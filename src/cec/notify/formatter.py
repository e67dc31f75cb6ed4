from __future__ import annotations

from typing import Any, Mapping


def _start_text(payload: Mapping[str, Any]) -> str:
    start = payload.get("start")
    if isinstance(start, Mapping):
        value = start.get("dateTime") or start.get("date")
        if value:
            return str(value)
    return "-"


def format_event_text(payload: Mapping[str, Any]) -> str:
    """
    统一的单行文本格式，用于日志类渠道。
    """
    summary = str(payload.get("summary") or "(no title)")
    link = str(payload.get("htmlLink") or "-")
    event_id = str(payload.get("id") or "-")
    return f"upcoming event: {summary} start={_start_text(payload)} id={event_id} link={link}"
