from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ..models import CalendarEvent, NotifiedSet, parse_rfc3339_datetime, utc_now


def _utc_now_iso() -> str:
    return utc_now().isoformat()


@dataclass(slots=True)
class SqliteStateStore:
    """
    默认状态存储：SQLite

    表设计：
    - notified_ids：(calendar_id, identity) 已通知集合，整体替换写入
    - notifications：通知历史（payload 以 JSON 保存）
    - fetch_errors：拉取失败留痕（不做重试队列，但保证可追踪）
    """

    sqlite_path: str

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.sqlite_path)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notified_ids (
                    calendar_id TEXT NOT NULL,
                    identity TEXT NOT NULL,
                    PRIMARY KEY (calendar_id, identity)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    calendar_id TEXT NOT NULL,
                    identity TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS fetch_errors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    calendar_id TEXT NOT NULL,
                    error TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def load_notified(self, calendar_id: str) -> NotifiedSet:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT identity FROM notified_ids WHERE calendar_id = ?",
                (calendar_id,),
            ).fetchall()
            return NotifiedSet.from_iterable(row["identity"] for row in rows)

    def commit_poll(self, calendar_id: str, state: NotifiedSet, delivered: Sequence[CalendarEvent]) -> None:
        """
        在同一个事务内整体替换已通知集合并追加通知历史，失败时整体回滚。
        """
        now = _utc_now_iso()
        with self._connect() as conn:
            conn.execute("DELETE FROM notified_ids WHERE calendar_id = ?", (calendar_id,))
            conn.executemany(
                "INSERT INTO notified_ids(calendar_id, identity) VALUES(?, ?)",
                [(calendar_id, identity) for identity in state.to_list()],
            )
            conn.executemany(
                """
                INSERT INTO notifications(calendar_id, identity, payload_json, created_at)
                VALUES(?, ?, ?, ?)
                """,
                [
                    (
                        calendar_id,
                        event.identity or "",
                        json.dumps(dict(event.payload), ensure_ascii=False, default=str),
                        now,
                    )
                    for event in delivered
                ],
            )

    def record_fetch_error(self, *, calendar_id: str, error: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO fetch_errors(calendar_id, error, created_at)
                VALUES(?, ?, ?)
                """,
                (calendar_id, error, _utc_now_iso()),
            )

    def _max_created_at(self, table: str, calendar_id: str) -> datetime | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT MAX(created_at) AS ts FROM {table} WHERE calendar_id = ?",  # noqa: S608
                (calendar_id,),
            ).fetchone()
            if not row or row["ts"] is None:
                return None
            return parse_rfc3339_datetime(row["ts"])

    def last_notification_at(self, calendar_id: str) -> datetime | None:
        return self._max_created_at("notifications", calendar_id)

    def last_fetch_error_at(self, calendar_id: str) -> datetime | None:
        return self._max_created_at("fetch_errors", calendar_id)
