from .base import EventFetcher, FetchError
from .google import GoogleCalendarFetcher, build_calendar_service

__all__ = [
    "EventFetcher",
    "FetchError",
    "GoogleCalendarFetcher",
    "build_calendar_service",
]
