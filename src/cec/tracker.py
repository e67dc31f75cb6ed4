from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .models import CalendarEvent, NotifiedSet, PollOutcome
from .notify.base import NotificationSink


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NotificationTracker:
    """
    去重/通知状态机：每轮 poll 判断哪些事件是新的，对每个新 identity 只通知一次，
    并把已通知集合压缩到当前拉取窗口之内。

    单个 identity 的状态流转：
    Unseen -> Notified -> （下一次拉取中缺失，被压缩）-> Unseen

    约定：
    - 状态显式传入、显式返回，poll() 不修改入参
    - 通知是 fire-and-forget：sink 抛出的异常在这里捕获并记录，不重试，
      identity 仍记为已通知（至多一次）
    - verbose 为 True 时逐条决策日志用 INFO，否则用 DEBUG
    """

    sink: NotificationSink
    verbose: bool = False

    def poll(self, fetched_events: Iterable[CalendarEvent], state: NotifiedSet) -> PollOutcome:
        events = list(fetched_events)
        decision_level = logging.INFO if self.verbose else logging.DEBUG

        if not events:
            logger.log(decision_level, "no upcoming events found; resetting %d notified ids", len(state))
            return PollOutcome(notified=(), state=NotifiedSet.empty())

        notified_ids = set(state.ids)
        notified: list[CalendarEvent] = []
        skipped_malformed = 0
        skipped_seen = 0
        failed: list[CalendarEvent] = []

        for event in events:
            if event.is_malformed:
                skipped_malformed += 1
                logger.debug("skip event without identity: start=%s", event.start)
                continue

            if event.identity in notified_ids:
                skipped_seen += 1
                logger.log(decision_level, "already notified: id=%s", event.identity)
                continue

            logger.log(decision_level, "not already notified: id=%s", event.identity)
            try:
                self.sink.notify(event.payload)
            except Exception:  # noqa: BLE001
                failed.append(event)
                logger.exception(
                    "notify failed: channel=%s sink_type=%s id=%s",
                    self.sink.channel(),
                    type(self.sink).__name__,
                    event.identity,
                )
            notified_ids.add(event.identity)
            notified.append(event)

        # 压缩：只保留本次拉取结果中仍然存在的 identity。
        current_ids = {e.identity for e in events if not e.is_malformed}
        compacted = NotifiedSet(ids=frozenset(notified_ids & current_ids))

        return PollOutcome(
            notified=tuple(notified),
            state=compacted,
            skipped_malformed=skipped_malformed,
            skipped_seen=skipped_seen,
            failed=tuple(failed),
        )
