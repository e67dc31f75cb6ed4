from datetime import UTC, datetime, timedelta, timezone

from cec.models import CalendarEvent, NotifiedSet, parse_rfc3339_datetime


def test_from_google_item_uses_id_and_datetime_start() -> None:
    item = {
        "id": "abc123",
        "summary": "test new event",
        "start": {"dateTime": "2024-06-02T13:00:00.000+02:00", "timeZone": "Europe/Paris"},
        "status": "confirmed",
    }
    event = CalendarEvent.from_google_item(item)

    assert event.identity == "abc123"
    assert event.start == datetime(2024, 6, 2, 13, 0, tzinfo=timezone(timedelta(hours=2)))
    assert event.payload == item
    assert not event.is_malformed


def test_from_google_item_all_day_event() -> None:
    event = CalendarEvent.from_google_item({"id": "d1", "start": {"date": "2024-06-02"}})
    assert event.start == datetime(2024, 6, 2, tzinfo=UTC)


def test_from_google_item_without_id_is_malformed() -> None:
    assert CalendarEvent.from_google_item({"summary": "no id"}).is_malformed
    assert CalendarEvent.from_google_item({"id": "", "summary": "empty id"}).is_malformed
    assert CalendarEvent.from_google_item({"id": 42}).identity is None


def test_from_google_item_tolerates_bad_start() -> None:
    event = CalendarEvent.from_google_item({"id": "x", "start": {"dateTime": "not a date"}})
    assert event.identity == "x"
    assert event.start is None


def test_parse_rfc3339_z_suffix() -> None:
    assert parse_rfc3339_datetime("2026-02-10T12:34:56Z") == datetime(2026, 2, 10, 12, 34, 56, tzinfo=UTC)


def test_notified_set_ignores_empty_ids_and_sorts_for_persistence() -> None:
    s = NotifiedSet.from_iterable(["b", "", "a", "b"])
    assert len(s) == 2
    assert "a" in s
    assert "" not in s
    assert s.to_list() == ["a", "b"]
    assert NotifiedSet.empty() == NotifiedSet()
