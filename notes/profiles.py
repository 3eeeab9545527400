"""
Coachee profile files.

A profile file carries the long-lived part of a session record (name, I AM
statements, vision, general notes and meeting history) from one session to the
next. Exporting appends a short summary of the current session to the history
in the file; importing lays the file's profile over the current record.
"""
import json
import logging
from typing import Callable, Dict, List, Optional, Union

from .gemini_client import generate_brief_summary
from .records import MeetingHistoryItem, SessionRecord, has_signal, sync_foundation

logger = logging.getLogger(__name__)

MISSING_PROFILE_TEXT = "Invalid file format: Missing profile section."
UNREADABLE_FILE_TEXT = "Error reading file. Please upload a valid JSON profile."

BriefSummarizer = Callable[[SessionRecord, str], str]


class ProfileImportError(ValueError):
    pass


def history_entry(record: SessionRecord, summary_text: str) -> MeetingHistoryItem:
    """Combine the brief summary and the non-empty action steps into one history item."""
    steps = record.active_action_steps()
    if steps:
        bullets = "\n• ".join(steps)
        content = f"{summary_text}\n\nActions:\n• {bullets}"
    else:
        content = summary_text
    return MeetingHistoryItem(date=record.date, summary=content)


def build_profile_document(
    record: SessionRecord,
    api_key: str,
    summarize: BriefSummarizer = generate_brief_summary,
) -> Dict:
    """The JSON-ready export. The record's own meeting history is left untouched."""
    history: List[MeetingHistoryItem] = list(record.profile.meeting_history)
    if has_signal(record):
        history.append(history_entry(record, summarize(record, api_key)))

    return {
        "coacheeName": record.coachee_name,
        "profile": {
            "iamStatements": record.profile.iam_statements,
            "vision": record.profile.vision,
            "pastMeetings": record.profile.past_meetings,
            "meetingHistory": [item.model_dump(by_alias=True) for item in history],
        },
    }


def profile_filename(record: SessionRecord) -> str:
    return f"{record.coachee_name or 'Coachee'}_Profile_{record.date}.json"


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _history_items(value) -> List[MeetingHistoryItem]:
    if not isinstance(value, list):
        return []
    items = []
    for entry in value:
        if isinstance(entry, dict):
            items.append(MeetingHistoryItem(date=_text(entry.get("date")), summary=_text(entry.get("summary"))))
        else:
            logger.warning(f"Skipping meeting history entry that is not an object: {entry!r}")
    return items


def import_profile(record: SessionRecord, payload: Union[str, bytes]) -> SessionRecord:
    """Return ``record`` with identity and profile replaced from an uploaded file.

    Raises ProfileImportError (and leaves ``record`` alone) if the payload is not
    JSON or has no ``profile`` object.
    """
    try:
        document = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as e:
        logger.error(f"Profile upload is not valid JSON: {e}")
        raise ProfileImportError(UNREADABLE_FILE_TEXT) from e

    uploaded: Optional[Dict] = document.get("profile") if isinstance(document, dict) else None
    if not isinstance(uploaded, dict):
        raise ProfileImportError(MISSING_PROFILE_TEXT)

    name = _text(document.get("coacheeName")) or _text(document.get("clientName")) or record.coachee_name
    profile = record.profile.model_copy(update={
        "iam_statements": _text(uploaded.get("iamStatements")),
        "vision": _text(uploaded.get("vision")),
        "past_meetings": _text(uploaded.get("pastMeetings")),
        "meeting_history": _history_items(uploaded.get("meetingHistory")),
    })
    return sync_foundation(record.model_copy(update={"coachee_name": name, "profile": profile}))
