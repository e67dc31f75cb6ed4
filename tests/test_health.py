from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from cec.config import CalendarConfig
from cec.health import check_health, has_recent_fetch_error
from cec.models import NotifiedSet


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@dataclass
class _HistoryStore:
    notified_at: datetime | None = None
    error_at: datetime | None = None

    def ensure_schema(self) -> None:
        return None

    def load_notified(self, calendar_id: str) -> NotifiedSet:  # noqa: ARG002
        return NotifiedSet.empty()

    def last_notification_at(self, calendar_id: str) -> datetime | None:  # noqa: ARG002
        return self.notified_at

    def last_fetch_error_at(self, calendar_id: str) -> datetime | None:  # noqa: ARG002
        return self.error_at


CAL = CalendarConfig(calendar_id="cal", expected_receive_period_days=3)


def test_not_working_without_any_notification() -> None:
    status = check_health(_HistoryStore(), CAL, now=NOW)
    assert status.working is False
    assert status.reason == "no notification recorded yet"


def test_working_after_recent_notification() -> None:
    status = check_health(_HistoryStore(notified_at=NOW - timedelta(days=1)), CAL, now=NOW)
    assert status.working is True
    assert status.reason == "ok"


def test_not_working_when_notification_too_old() -> None:
    status = check_health(_HistoryStore(notified_at=NOW - timedelta(days=4)), CAL, now=NOW)
    assert status.working is False
    assert "3 days" in status.reason


def test_not_working_after_newer_fetch_error() -> None:
    store = _HistoryStore(notified_at=NOW - timedelta(days=1), error_at=NOW - timedelta(hours=1))
    status = check_health(store, CAL, now=NOW)
    assert status.working is False
    assert status.reason == "recent fetch error"


def test_old_fetch_error_is_not_recent() -> None:
    notified = NOW - timedelta(hours=1)
    assert has_recent_fetch_error(notified, notified - timedelta(minutes=10)) is False
    assert has_recent_fetch_error(notified, notified - timedelta(minutes=1)) is True
    assert has_recent_fetch_error(None, notified) is True
    assert has_recent_fetch_error(notified, None) is False
