"""
Calendar Event Checker (cec)

按固定间隔轮询日历平台的即将发生事件，对每个新出现的事件只通知一次；
事件从拉取窗口中消失后即从已通知集合中移除，避免状态无限增长。
"""

from .models import CalendarEvent, NotifiedSet, PollOutcome
from .tracker import NotificationTracker

__all__ = [
    "CalendarEvent",
    "NotificationTracker",
    "NotifiedSet",
    "PollOutcome",
]
