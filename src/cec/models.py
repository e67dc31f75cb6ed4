from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Iterable, Iterator, Mapping


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def parse_rfc3339_datetime(value: str) -> datetime:
    """
    解析常见的 RFC3339/ISO8601 时间串为带 tzinfo 的 datetime。

    兼容：
    - 2026-02-10T12:34:56Z
    - 2026-02-10T12:34:56+02:00
    - 2026-02-10（全天事件，按 UTC 零点处理）
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    if len(value) == 10:
        d = date.fromisoformat(value)
        return datetime(d.year, d.month, d.day, tzinfo=UTC)
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


@dataclass(frozen=True, slots=True)
class CalendarEvent:
    """
    日历事件：由 EventFetcher 在每次拉取时生成，核心逻辑只读不改。

    - identity：平台分配的稳定 id；None 或空串视为畸形事件
    - start：仅作排序键，不参与去重
    - payload：原样转交给通知 sink 的数据
    """

    identity: str | None
    start: datetime | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_malformed(self) -> bool:
        return not self.identity

    @classmethod
    def from_google_item(cls, item: Mapping[str, Any]) -> CalendarEvent:
        """
        由 Google Calendar API 的 event 资源构建事件，整个 item 作为 payload。

        start 优先取 dateTime，其次取全天事件的 date；无法解析时为 None。
        """
        raw_id = item.get("id")
        identity = raw_id if isinstance(raw_id, str) and raw_id else None

        start: datetime | None = None
        start_obj = item.get("start")
        if isinstance(start_obj, Mapping):
            start_s = start_obj.get("dateTime") or start_obj.get("date")
            if isinstance(start_s, str) and start_s:
                try:
                    start = parse_rfc3339_datetime(start_s)
                except ValueError:
                    start = None

        return cls(identity=identity, start=start, payload=dict(item))


@dataclass(frozen=True, slots=True)
class NotifiedSet:
    """
    已通知且仍待发生的事件 id 集合。

    不可变：poll() 读入旧状态、返回新状态，由宿主负责持久化。
    """

    ids: frozenset[str] = frozenset()

    @classmethod
    def empty(cls) -> NotifiedSet:
        return cls()

    @classmethod
    def from_iterable(cls, ids: Iterable[str]) -> NotifiedSet:
        return cls(ids=frozenset(i for i in ids if i))

    def __contains__(self, identity: object) -> bool:
        return identity in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids)

    def to_list(self) -> list[str]:
        return sorted(self.ids)


@dataclass(frozen=True, slots=True)
class PollOutcome:
    """
    一次 poll 的结果：本轮新通知的事件（保持输入顺序）与压缩后的新状态。

    failed 是 notified 的子集：sink 抛出异常的事件（仍记为已通知，不重试）。
    """

    notified: tuple[CalendarEvent, ...]
    state: NotifiedSet
    skipped_malformed: int = 0
    skipped_seen: int = 0
    failed: tuple[CalendarEvent, ...] = ()

    @property
    def failures(self) -> int:
        return len(self.failed)

    @property
    def delivered(self) -> tuple[CalendarEvent, ...]:
        failed_ids = {e.identity for e in self.failed}
        return tuple(e for e in self.notified if e.identity not in failed_ids)
