from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from ..models import CalendarEvent, NotifiedSet


class StateStore(Protocol):
    """
    状态层接口（按 calendar_id 隔离）：
    - notified_ids：每个日历的已通知集合，宿主在每次 poll 前后读写
    - notifications：成功投递的通知历史（健康检查的输入之一），与 notified_ids 同一事务写入
    - fetch_errors：拉取失败留痕（健康检查的另一输入）
    """

    def ensure_schema(self) -> None: ...

    def load_notified(self, calendar_id: str) -> NotifiedSet: ...

    def commit_poll(self, calendar_id: str, state: NotifiedSet, delivered: Sequence[CalendarEvent]) -> None: ...

    def record_fetch_error(self, *, calendar_id: str, error: str) -> None: ...

    def last_notification_at(self, calendar_id: str) -> datetime | None: ...

    def last_fetch_error_at(self, calendar_id: str) -> datetime | None: ...
