from __future__ import annotations

from typing import Protocol

from ..models import CalendarEvent


class FetchError(RuntimeError):
    """
    拉取失败（网络/鉴权/平台错误）。核心逻辑不处理，交由 runner 记录并在下一轮重试。
    """


class EventFetcher(Protocol):
    """
    日历适配器接口：返回 [now, now + horizon_days] 窗口内的即将发生事件。

    顺序不保证，但通常按开始时间排序；失败时抛出 FetchError。
    """

    def fetch_upcoming(self, calendar_id: str, horizon_days: int) -> list[CalendarEvent]: ...
