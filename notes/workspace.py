import logging
from typing import Dict, MutableMapping, Tuple, Union

from . import gemini_client
from .navigation import GenerationRequest, InFlightGuard, TabView
from .profiles import build_profile_document, import_profile
from .records import SessionRecord
from .storage import CoachSettings, LabelStore, SessionStorage, SessionStore

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

VIEW_STATE_KEY = "view_state"
GENERATING_TEXT = "Generating summary... please wait."


class Workspace:
    """One coach's page state: the persisted stores plus transient view state.

    View state (active tab, generated summary, last generation results) shares the
    browser session with the stored notes but is never written under the storage
    keys, and a new session wipes it.
    """

    def __init__(self, session: MutableMapping):
        self.session = session
        storage = SessionStorage(session)
        self.sessions = SessionStore(storage)
        self.labels = LabelStore(storage)
        self.coach = CoachSettings(storage)

    # -- view state -------------------------------------------------------

    @property
    def view(self) -> Dict:
        state = self.session.get(VIEW_STATE_KEY)
        if not isinstance(state, dict):
            state = {}
            self.session[VIEW_STATE_KEY] = state
        return state

    def _set_view(self, key: str, value) -> None:
        state = dict(self.view)
        state[key] = value
        self.session[VIEW_STATE_KEY] = state

    @property
    def active_tab(self) -> TabView:
        return TabView.parse(self.view.get("tab"))

    @active_tab.setter
    def active_tab(self, tab: TabView) -> None:
        self._set_view("tab", tab.value)

    @property
    def summary(self) -> str:
        return self.view.get("summary", "")

    @summary.setter
    def summary(self, text: str) -> None:
        self._set_view("summary", text)

    @property
    def question(self) -> str:
        return self.view.get("question", "")

    def request(self, kind: str) -> GenerationRequest:
        return GenerationRequest.from_dict(kind, self.view.get("requests", {}).get(kind))

    @staticmethod
    def _settle(request: GenerationRequest, text: str, ok: bool) -> None:
        if ok:
            request.succeed(text)
        else:
            request.fail(text, text)

    def _record_request(self, request: GenerationRequest) -> None:
        requests = dict(self.view.get("requests", {}))
        requests[request.kind] = request.to_dict()
        self._set_view("requests", requests)

    @property
    def owner(self) -> str:
        key = getattr(self.session, "session_key", None)
        if not key and hasattr(self.session, "create"):
            self.session.create()
            key = self.session.session_key
        return f"session_{key or 'local'}"

    # -- actions ----------------------------------------------------------

    def start_new_session(self) -> SessionRecord:
        record = self.sessions.reset()
        self.session[VIEW_STATE_KEY] = {"tab": TabView.PROFILE.value}
        return record

    def finish(self) -> GenerationRequest:
        """Generate the email summary and move to the Summary tab.

        Without an API key the request fails straight away and the tab is unchanged.
        A failed call still moves on, with the fallback text as the summary.
        """
        request = self.request("summary")
        api_key = self.coach.api_key
        if not api_key:
            request.fail(gemini_client.MISSING_KEY_TEXT)
            self._record_request(request)
            return request

        record = self.sessions.load()
        with InFlightGuard(self.owner, "summary"):
            request.start()
            self.summary = GENERATING_TEXT
            text, ok = gemini_client.session_summary(record, api_key)
            self._settle(request, text, ok)
        self.summary = text
        self.active_tab = TabView.SUMMARY
        self._record_request(request)
        if ok:
            logger.info(f"Summary generated: coachee={record.coachee_name!r}, length={len(text)}")
        else:
            logger.warning(f"Summary generation failed, showing fallback: {text}")
        return request

    def brief_summary(self) -> GenerationRequest:
        request = self.request("brief")
        record = self.sessions.load()
        with InFlightGuard(self.owner, "brief"):
            request.start()
            self._settle(request, *gemini_client.brief_summary(record, self.coach.api_key))
        self._record_request(request)
        return request

    def suggest_question(self) -> GenerationRequest:
        request = self.request("question")
        record = self.sessions.load()
        with InFlightGuard(self.owner, "question"):
            request.start()
            generated = gemini_client.reflective_question(record.explore.conversation_notes, self.coach.api_key)
            self._settle(request, *generated)
        self._set_view("question", request.text)
        self._record_request(request)
        return request

    def export_profile(self) -> Tuple[SessionRecord, Dict]:
        record = self.sessions.load()
        with InFlightGuard(self.owner, "brief"):
            document = build_profile_document(record, self.coach.api_key)
        added = len(document["profile"]["meetingHistory"]) - len(record.profile.meeting_history)
        audit_logger.info(f"Profile exported: coachee={record.coachee_name!r}, new_history_entries={added}")
        return record, document

    def import_profile(self, payload: Union[str, bytes]) -> SessionRecord:
        """Raises ProfileImportError without touching the stored record."""
        record = import_profile(self.sessions.load(), payload)
        self.sessions.save(record)
        audit_logger.info(
            f"Profile imported: coachee={record.coachee_name!r}, "
            f"history_entries={len(record.profile.meeting_history)}"
        )
        return record
