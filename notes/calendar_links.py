import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from urllib.parse import quote

from .records import SessionRecord

logger = logging.getLogger(__name__)

CALENDAR_TEMPLATE_URL = "https://calendar.google.com/calendar/render?action=TEMPLATE"
CALENDAR_EMBED_URL = "https://calendar.google.com/calendar/embed"
DEFAULT_EMBED_CALENDAR = "en.uk#holiday@group.v.calendar.google.com"

MAX_DETAILS_LENGTH = 800
DETAILS_PLACEHOLDER = "Notes from coaching session."
EVENT_DURATION = timedelta(hours=1)


def encode_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="-_.!~*'()")


def event_details(summary: str) -> str:
    if len(summary) > MAX_DETAILS_LENGTH:
        summary = summary[:MAX_DETAILS_LENGTH] + "..."
    return summary or DETAILS_PLACEHOLDER


def format_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def meeting_window(next_meeting: str, local_tz: tzinfo) -> Optional[str]:
    """``start/end`` in the compact UTC form, one hour apart, or None if unset or unreadable.

    ``next_meeting`` is a datetime-local value (``YYYY-MM-DDTHH:MM``) in the coach's zone.
    """
    if not next_meeting:
        return None
    try:
        start = datetime.fromisoformat(next_meeting)
    except ValueError:
        logger.warning(f"Ignoring unreadable next meeting time: {next_meeting!r}")
        return None
    if start.tzinfo is None:
        start = start.replace(tzinfo=local_tz)
    # Add the hour in UTC; aware-datetime arithmetic in a zone is wall-clock time
    start = start.astimezone(timezone.utc)
    return f"{format_utc(start)}/{format_utc(start + EVENT_DURATION)}"


def calendar_event_url(record: SessionRecord, summary: str, local_tz: tzinfo) -> str:
    """Google Calendar "create event" link for the next meeting."""
    title = encode_component(f"Coaching: {record.coachee_name or 'Session'}")
    details = encode_component(event_details(summary))
    url = f"{CALENDAR_TEMPLATE_URL}&text={title}&details={details}"
    window = meeting_window(record.extend.next_meeting, local_tz)
    if window:
        url += f"&dates={window}"
    return url


def calendar_embed_url(coach_email: str, time_zone: str) -> str:
    """Read-only calendar view for the coach's own reference."""
    source = encode_component(coach_email or DEFAULT_EMBED_CALENDAR)
    return (
        f"{CALENDAR_EMBED_URL}?height=400&wkst=1&bgcolor=%23ffffff"
        f"&ctz={encode_component(time_zone)}&src={source}&color=%23039BE5"
    )
