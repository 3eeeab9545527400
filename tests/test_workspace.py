import json

import pytest
from django.contrib.sessions.backends.cache import SessionStore as CacheSession
from django.core.cache import cache

from notes.gemini_client import MISSING_KEY_TEXT
from notes.navigation import GenerationInFlight, RequestState, TabView
from notes.profiles import ProfileImportError
from notes.storage import SESSION_KEY
from notes.workspace import Workspace


@pytest.fixture
def workspace():
    return Workspace({})


def _fill(workspace):
    workspace.sessions.update(None, "coacheeName", "Jane Doe")
    workspace.sessions.update("engage", "wins", "Finished the report")
    workspace.sessions.update("express", "actionSteps", ["Call supplier", "", "Draft plan"])


def test_defaults(workspace):
    assert workspace.active_tab == TabView.PROFILE
    assert workspace.summary == ""
    assert workspace.request("summary").state == RequestState.IDLE


def test_finish_without_key_stays_put(workspace, gemini):
    workspace.active_tab = TabView.EXTEND
    result = workspace.finish()
    assert result.state == RequestState.FAILED
    assert result.reason == MISSING_KEY_TEXT
    assert workspace.active_tab == TabView.EXTEND
    assert workspace.request("summary").state == RequestState.FAILED
    gemini.model.generate_content.assert_not_called()


def test_finish_generates_and_moves_to_summary(workspace, gemini):
    _fill(workspace)
    workspace.coach.set_api_key("key")
    gemini.reply("Hello Jane,")
    result = workspace.finish()
    assert result.state == RequestState.SUCCEEDED
    assert workspace.summary == "Hello Jane,"
    assert workspace.active_tab == TabView.SUMMARY
    assert workspace.request("summary").text == "Hello Jane,"


def test_finish_error_is_shown_in_summary(workspace, gemini):
    workspace.coach.set_api_key("key")
    gemini.reply(error=RuntimeError("quota"))
    workspace.finish()
    assert workspace.summary.startswith("Error generating summary: quota.")
    assert workspace.active_tab == TabView.SUMMARY


def test_finish_refused_while_in_flight(workspace, gemini):
    workspace.coach.set_api_key("key")
    cache.add(f"generating_{workspace.owner}_summary", True)
    with pytest.raises(GenerationInFlight):
        workspace.finish()
    gemini.model.generate_content.assert_not_called()


def test_start_new_session_clears_notes_and_view(workspace, gemini):
    _fill(workspace)
    workspace.coach.set_api_key("key")
    workspace.finish()
    workspace.start_new_session()
    assert workspace.sessions.load().coachee_name == ""
    assert workspace.summary == ""
    assert workspace.active_tab == TabView.PROFILE
    assert workspace.coach.api_key == "key"


def test_suggest_question(workspace, gemini):
    workspace.coach.set_api_key("key")
    gemini.reply("What would rest give you?")
    workspace.suggest_question()
    assert workspace.question == "What would rest give you?"


def test_brief_summary(workspace, gemini):
    _fill(workspace)
    workspace.coach.set_api_key("key")
    gemini.reply("Report finished.")
    assert workspace.brief_summary().text == "Report finished."


def test_export_profile(workspace, gemini):
    _fill(workspace)
    gemini.reply("Report finished.")
    workspace.coach.set_api_key("key")
    record, document = workspace.export_profile()
    assert record.coachee_name == "Jane Doe"
    assert document["profile"]["meetingHistory"][-1]["summary"].startswith("Report finished.")
    assert workspace.sessions.load().profile.meeting_history == []


def test_import_profile_saves(workspace):
    workspace.import_profile(json.dumps({"coacheeName": "Sam", "profile": {"vision": "V"}}))
    assert workspace.sessions.load().coachee_name == "Sam"


def test_failed_import_leaves_record(workspace):
    _fill(workspace)
    before = workspace.session[SESSION_KEY]
    with pytest.raises(ProfileImportError):
        workspace.import_profile("{}")
    assert workspace.session[SESSION_KEY] == before


def test_owner_uses_session_key():
    session = CacheSession()
    workspace = Workspace(session)
    owner = workspace.owner
    assert owner == f"session_{session.session_key}"
    assert session.session_key


def test_finish_service_error_is_a_failed_request(workspace, gemini):
    workspace.coach.set_api_key("key")
    gemini.reply(error=RuntimeError("API key not valid"))
    result = workspace.finish()
    assert result.state == RequestState.FAILED
    assert result.text == workspace.summary
    assert "API key not valid" in result.reason
    assert workspace.request("summary").state == RequestState.FAILED


def test_brief_summary_service_error_is_a_failed_request(workspace, gemini):
    _fill(workspace)
    workspace.coach.set_api_key("key")
    gemini.reply(error=RuntimeError("quota"))
    result = workspace.brief_summary()
    assert result.state == RequestState.FAILED
    assert result.text == "Session recorded."


def test_question_service_error_is_a_failed_request(workspace, gemini):
    workspace.coach.set_api_key("key")
    gemini.reply(error=RuntimeError("quota"))
    result = workspace.suggest_question()
    assert result.state == RequestState.FAILED
    assert workspace.question == "What would success look like for you in this situation?"
    assert workspace.request("question").state == RequestState.FAILED


def test_successful_generations_succeed(workspace, gemini):
    _fill(workspace)
    workspace.coach.set_api_key("key")
    assert workspace.finish().state == RequestState.SUCCEEDED
    assert workspace.brief_summary().state == RequestState.SUCCEEDED
    assert workspace.suggest_question().state == RequestState.SUCCEEDED
