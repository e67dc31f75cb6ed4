import os
import sys
import tempfile
import unittest


sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))


from cec.models import CalendarEvent, NotifiedSet  # noqa: E402
from cec.state.sqlite_store import SqliteStateStore  # noqa: E402


class TestSqliteStateStore(unittest.TestCase):
    def test_notified_set_roundtrip_per_calendar(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()

            self.assertEqual(store.load_notified("cal-a"), NotifiedSet.empty())

            store.commit_poll("cal-a", NotifiedSet.from_iterable(["1", "2"]), ())
            store.commit_poll("cal-b", NotifiedSet.from_iterable(["9"]), ())
            self.assertEqual(set(store.load_notified("cal-a")), {"1", "2"})
            self.assertEqual(set(store.load_notified("cal-b")), {"9"})

            store.commit_poll("cal-a", NotifiedSet.from_iterable(["2", "3"]), ())
            self.assertEqual(set(store.load_notified("cal-a")), {"2", "3"})
            self.assertEqual(set(store.load_notified("cal-b")), {"9"})

            store.commit_poll("cal-a", NotifiedSet.empty(), ())
            self.assertEqual(len(store.load_notified("cal-a")), 0)

    def test_history_timestamps(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()

            self.assertIsNone(store.last_notification_at("cal"))
            self.assertIsNone(store.last_fetch_error_at("cal"))

            event = CalendarEvent(identity="e1", payload={"id": "e1", "summary": "été"})
            store.commit_poll("cal", NotifiedSet.from_iterable(["e1"]), (event,))
            store.record_fetch_error(calendar_id="other", error="RuntimeError: boom")

            self.assertIsNotNone(store.last_notification_at("cal"))
            self.assertIsNone(store.last_fetch_error_at("cal"))
            self.assertIsNotNone(store.last_fetch_error_at("other"))
            self.assertIsNotNone(store.last_notification_at("cal").tzinfo)

    def test_commit_poll_rolls_back_state_and_history_together(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = SqliteStateStore(os.path.join(td, "state.sqlite3"))
            store.ensure_schema()
            store.commit_poll("cal", NotifiedSet.from_iterable(["a"]), ())

            broken = CalendarEvent(identity="b", payload=42)  # type: ignore[arg-type]
            with self.assertRaises(TypeError):
                store.commit_poll("cal", NotifiedSet.from_iterable(["a", "b"]), (broken,))

            self.assertEqual(set(store.load_notified("cal")), {"a"})
            self.assertIsNone(store.last_notification_at("cal"))
