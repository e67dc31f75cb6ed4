from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime

from .config import AppConfig, CalendarConfig
from .fetch.base import EventFetcher
from .fetch.google import GoogleCalendarFetcher, build_calendar_service
from .models import utc_now
from .notify.base import NotificationSink
from .notify.fanout import CollectingSink, FanoutSink
from .notify.jsonl import JsonLinesSink
from .notify.log import LoggingSink
from .state.sqlite_store import SqliteStateStore
from .state.store import StateStore
from .tracker import NotificationTracker


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CalendarRunReport:
    calendar_id: str
    notified_before: int
    notified_after: int
    events_fetched: int
    events_notified: int
    events_skipped_seen: int
    events_skipped_malformed: int
    notify_failures: int
    error: str | None
    duration_ms: int


@dataclass(slots=True)
class RunOnceReport:
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    dry_run: bool
    calendars: tuple[CalendarRunReport, ...]
    events_fetched: int
    events_notified: int
    events_skipped_seen: int
    events_skipped_malformed: int
    notify_failures: int
    fetch_errors: int


@dataclass(slots=True)
class Runner:
    """
    宿主执行器：一次轮询周期内对每个日历完成闭环：
    State(load) -> Fetch -> Tracker(dedupe/notify/compact) -> State(store) -> History

    每个日历的已通知集合按 calendar_id 独立保存，互不共享。
    """

    state: StateStore
    fetcher: EventFetcher
    calendars: tuple[CalendarConfig, ...]
    sink: NotificationSink
    verbose: bool = False

    def run_once(self, *, dry_run: bool = False) -> RunOnceReport:
        """
        执行一个轮询周期（单次）。

        dry_run 为 True 时照常拉取与判定，但不调用真实 sink、不写任何状态，
        只在日志中列出本轮会通知的事件。
        """
        started_at = utc_now()
        start_t = time.monotonic()

        self.state.ensure_schema()

        reports: list[CalendarRunReport] = []
        for calendar in self.calendars:
            reports.append(self._run_calendar(calendar, dry_run=dry_run))

        finished_at = utc_now()
        return RunOnceReport(
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=int((time.monotonic() - start_t) * 1000),
            dry_run=dry_run,
            calendars=tuple(reports),
            events_fetched=sum(r.events_fetched for r in reports),
            events_notified=sum(r.events_notified for r in reports),
            events_skipped_seen=sum(r.events_skipped_seen for r in reports),
            events_skipped_malformed=sum(r.events_skipped_malformed for r in reports),
            notify_failures=sum(r.notify_failures for r in reports),
            fetch_errors=sum(1 for r in reports if r.error is not None),
        )

    def _run_calendar(self, calendar: CalendarConfig, *, dry_run: bool) -> CalendarRunReport:
        calendar_id = calendar.calendar_id
        start_t = time.monotonic()
        before = self.state.load_notified(calendar_id)

        # 拉取失败时直接返回，已通知集合保持原样。
        try:
            events = self.fetcher.fetch_upcoming(calendar_id, calendar.horizon_days)
        except Exception as e:  # noqa: BLE001
            error = f"{type(e).__name__}: {e}"
            logger.exception(
                "fetch failed: calendar_id=%s fetcher_type=%s horizon_days=%d",
                calendar_id,
                type(self.fetcher).__name__,
                calendar.horizon_days,
            )
            if not dry_run:
                self.state.record_fetch_error(calendar_id=calendar_id, error=error)
            return CalendarRunReport(
                calendar_id=calendar_id,
                notified_before=len(before),
                notified_after=len(before),
                events_fetched=0,
                events_notified=0,
                events_skipped_seen=0,
                events_skipped_malformed=0,
                notify_failures=0,
                error=error,
                duration_ms=int((time.monotonic() - start_t) * 1000),
            )

        sink: NotificationSink = CollectingSink() if dry_run else self.sink
        tracker = NotificationTracker(sink=sink, verbose=self.verbose)
        outcome = tracker.poll(events, before)

        if dry_run:
            for event in outcome.notified:
                logger.info(
                    "dry-run would notify: calendar_id=%s id=%s start=%s",
                    calendar_id,
                    event.identity,
                    event.start.isoformat() if event.start else "-",
                )
        else:
            # 投递失败的事件仍计入已通知集合，但不进入通知历史（健康检查只认成功投递）。
            self.state.commit_poll(calendar_id, outcome.state, outcome.delivered)

        return CalendarRunReport(
            calendar_id=calendar_id,
            notified_before=len(before),
            notified_after=len(outcome.state),
            events_fetched=len(events),
            events_notified=len(outcome.notified),
            events_skipped_seen=outcome.skipped_seen,
            events_skipped_malformed=outcome.skipped_malformed,
            notify_failures=outcome.failures,
            error=None,
            duration_ms=int((time.monotonic() - start_t) * 1000),
        )


def build_sink(config: AppConfig) -> NotificationSink:
    sinks: list[NotificationSink] = []
    if config.notify.log:
        sinks.append(LoggingSink())
    if config.notify.jsonl_path:
        sinks.append(JsonLinesSink(path=config.notify.jsonl_path))
    if not sinks:
        raise ValueError("at least one notify sink must be configured")
    return FanoutSink(sinks=tuple(sinks))


def build_runner(config: AppConfig, *, fetcher: EventFetcher | None = None) -> Runner:
    """
    根据配置构建可运行的 Runner。

    - 统一在这里做“配置 -> 实例”的装配，Runner 内只关注流程编排
    - 凭据优先从环境变量读取 JSON 内容，避免落盘
    - fetcher 可注入，便于测试与替换日历平台
    """
    if fetcher is None:
        credentials = config.resolve_credentials()
        if not credentials:
            raise ValueError(
                "service account credentials are required: set env "
                f"{config.google.credentials_env or '<unset>'} or google.credentials_path"
            )
        service = build_calendar_service(credentials)
        fetcher = GoogleCalendarFetcher(service=service, max_results=config.google.max_results)

    return Runner(
        state=SqliteStateStore(config.sqlite_path),
        fetcher=fetcher,
        calendars=config.calendars,
        sink=build_sink(config),
        verbose=config.debug,
    )
