from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

from schemas import Event

DEFAULT_DURATION = timedelta(hours=2)


def _format(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _parse_start(value: str) -> Optional[datetime]:
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        start = datetime.fromisoformat(value)
    except ValueError:
        return None
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    return start


def google_calendar_url(event: Event, duration: timedelta = DEFAULT_DURATION) -> Optional[str]:
    """Build a Google Calendar "add event" link; naive dates are taken as UTC.

    Returns None when the event has no parseable date.
    """
    start = _parse_start(event.date)
    if start is None:
        return None
    end = start + duration

    params = {
        "action": "TEMPLATE",
        "text": event.title,
        "details": f"{event.description}\n\nBooked via EventForge.",
        "location": event.location,
        "dates": f"{_format(start)}/{_format(end)}",
    }
    return f"https://calendar.google.com/calendar/render?{urlencode(params)}"
