from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .config import CalendarConfig
from .models import utc_now
from .state.store import StateStore


# 拉取错误只要不早于“最近一次通知 - 2 分钟”，就视为近期错误。
RECENT_ERROR_GRACE = timedelta(minutes=2)


@dataclass(frozen=True, slots=True)
class HealthStatus:
    calendar_id: str
    working: bool
    last_notification_at: datetime | None
    last_fetch_error_at: datetime | None
    reason: str


def has_recent_fetch_error(last_notification_at: datetime | None, last_fetch_error_at: datetime | None) -> bool:
    if last_fetch_error_at is None:
        return False
    if last_notification_at is None:
        return True
    return last_fetch_error_at > last_notification_at - RECENT_ERROR_GRACE


def check_health(store: StateStore, calendar: CalendarConfig, now: datetime | None = None) -> HealthStatus:
    """
    判断某个日历的监控是否正常工作：

    - 最近 expected_receive_period_days 天内至少发出过一次通知
    - 且没有近期的拉取错误
    """
    now = now or utc_now()
    last_notified = store.last_notification_at(calendar.calendar_id)
    last_error = store.last_fetch_error_at(calendar.calendar_id)

    if last_notified is None:
        reason = "no notification recorded yet"
        working = False
    elif last_notified < now - timedelta(days=calendar.expected_receive_period_days):
        reason = f"no notification within {calendar.expected_receive_period_days} days"
        working = False
    elif has_recent_fetch_error(last_notified, last_error):
        reason = "recent fetch error"
        working = False
    else:
        reason = "ok"
        working = True

    return HealthStatus(
        calendar_id=calendar.calendar_id,
        working=working,
        last_notification_at=last_notified,
        last_fetch_error_at=last_error,
        reason=reason,
    )
