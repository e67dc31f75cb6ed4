from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from google.oauth2 import service_account
from googleapiclient.discovery import build

from ..models import CalendarEvent, utc_now
from .base import FetchError


logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ("https://www.googleapis.com/auth/calendar",)


def build_calendar_service(credentials_json: str) -> Any:
    """
    用 service account 的 JSON 内容构建 Calendar v3 service。

    凭据只在内存中使用，不写临时文件、不改环境变量。
    """
    try:
        info = json.loads(credentials_json)
    except json.JSONDecodeError as e:
        raise FetchError(f"service account credentials are not valid JSON: {e}") from e
    if not isinstance(info, dict):
        raise FetchError(f"service account credentials must be a JSON object, got {type(info).__name__}")

    try:
        credentials = service_account.Credentials.from_service_account_info(info, scopes=list(CALENDAR_SCOPES))
    except (ValueError, KeyError) as e:
        raise FetchError(f"invalid service account credentials: {e}") from e

    logger.debug("building calendar service: client_email=%s", info.get("client_email"))
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


@dataclass(slots=True)
class GoogleCalendarFetcher:
    """
    Google Calendar 事件拉取（events.list）。

    参数对齐原有轮询行为：
    - singleEvents=True，重复事件展开为单次实例
    - orderBy=startTime
    - timeMin=now，timeMax=now + horizon_days
    - maxResults 默认 10，不翻页
    """

    service: Any
    max_results: int = 10
    clock: Callable[[], datetime] = utc_now

    def fetch_upcoming(self, calendar_id: str, horizon_days: int) -> list[CalendarEvent]:
        if horizon_days <= 0:
            raise ValueError(f"horizon_days must be positive, got {horizon_days}")

        now = self.clock()
        time_max = now + timedelta(days=horizon_days)
        try:
            response = (
                self.service.events()
                .list(
                    calendarId=calendar_id,
                    maxResults=self.max_results,
                    singleEvents=True,
                    orderBy="startTime",
                    timeMin=now.isoformat(),
                    timeMax=time_max.isoformat(),
                )
                .execute()
            )
        except Exception as e:  # noqa: BLE001
            raise FetchError(f"events.list failed: calendar_id={calendar_id}: {type(e).__name__}: {e}") from e

        if not isinstance(response, dict):
            raise FetchError(f"events.list expected object, got {type(response).__name__}: calendar_id={calendar_id}")

        items = response.get("items") or []
        if not isinstance(items, list):
            raise FetchError(f"events.list expected items list, got {type(items).__name__}: calendar_id={calendar_id}")

        return [CalendarEvent.from_google_item(it) for it in items if isinstance(it, dict)]
