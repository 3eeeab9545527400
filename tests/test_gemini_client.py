from notes import gemini_client
from notes.gemini_client import (
    BRIEF_EMPTY_TEXT,
    BRIEF_FALLBACK_TEXT,
    MISSING_KEY_TEXT,
    NO_NOTES_TEXT,
    QUESTION_FALLBACK_TEXT,
    SUMMARY_EMPTY_TEXT,
    brief_summary,
    build_brief_prompt,
    build_summary_prompt,
    generate_brief_summary,
    reflective_question,
    safe_get_response_text,
    session_summary,
)
from notes.records import update_field


def _session(record):
    record = update_field(record, None, "coacheeName", "Jane Doe")
    record = update_field(record, "engage", "wins", "Finished the report")
    record = update_field(record, "explore", "conversationNotes", "Talked about rest")
    record = update_field(record, "extend", "keyInsight", "Rest is productive")
    return update_field(record, "express", "actionSteps", ["Call supplier", "", "Draft plan"])


def test_brief_summary_without_notes_skips_gemini(record, gemini):
    assert generate_brief_summary(record, "key") == NO_NOTES_TEXT
    gemini.model.generate_content.assert_not_called()


def test_brief_summary_without_key(record, gemini):
    assert generate_brief_summary(_session(record), "") == BRIEF_FALLBACK_TEXT
    gemini.configure.assert_not_called()


def test_brief_summary_returns_trimmed_text(record, gemini):
    gemini.reply("  Found rest is productive.  \n")
    assert generate_brief_summary(_session(record), "key") == "Found rest is productive."
    gemini.configure.assert_called_once_with(api_key="key")
    gemini.GenerativeModel.assert_called_once_with("gemini-2.5-flash")


def test_brief_summary_empty_response(record, gemini):
    gemini.reply("")
    assert generate_brief_summary(_session(record), "key") == BRIEF_EMPTY_TEXT


def test_brief_summary_service_error(record, gemini):
    gemini.reply(error=RuntimeError("quota exceeded"))
    assert generate_brief_summary(_session(record), "key") == BRIEF_FALLBACK_TEXT


def test_session_summary_without_key(record, gemini):
    assert session_summary(_session(record), "")[0] == MISSING_KEY_TEXT
    gemini.model.generate_content.assert_not_called()


def test_session_summary_text(record, gemini):
    gemini.reply("Hello Jane,\n\nIt was good to chat with you!")
    assert session_summary(_session(record), "key")[0] == "Hello Jane,\n\nIt was good to chat with you!"


def test_session_summary_empty_response(record, gemini):
    gemini.reply(None)
    assert session_summary(_session(record), "key")[0] == SUMMARY_EMPTY_TEXT


def test_session_summary_error_is_inline(record, gemini):
    gemini.reply(error=RuntimeError("API key not valid"))
    text, ok = session_summary(_session(record), "bad")
    assert not ok
    assert text == "Error generating summary: API key not valid. Please check your Gemini API key."


def test_summary_prompt_contents(record, settings):
    settings.COACH_NAME = "Dan"
    prompt = build_summary_prompt(_session(record))
    assert "summary email to my coachee, Jane Doe." in prompt
    assert '"Hello Jane,"' in prompt
    assert "1. Call supplier\n2. Draft plan" in prompt
    assert "Rest is productive" in prompt
    assert "[Date]" in prompt
    assert prompt.rstrip().endswith('Closing: "Cheering you on,\nDan"')


def test_summary_prompt_without_steps_or_name(record):
    prompt = build_summary_prompt(record)
    assert "No specific steps recorded." in prompt
    assert '"Hello there,"' in prompt


def test_brief_prompt_mentions_signal_fields(record):
    prompt = build_brief_prompt(_session(record))
    assert "LESS THAN 30 WORDS" in prompt
    assert "Wins: Finished the report" in prompt
    assert "Key Insight: Rest is productive" in prompt


def test_reflective_question(gemini):
    gemini.reply("What would rest give you?")
    assert reflective_question("Talked about rest", "key") == ("What would rest give you?", True)


def test_reflective_question_without_key(gemini):
    assert reflective_question("Talked about rest", "") == (QUESTION_FALLBACK_TEXT, False)


class _Part:
    def __init__(self, text):
        self.text = text


class _Blocked:
    """Response whose .text raises, as the SDK does for blocked candidates."""

    def __init__(self, parts):
        self.candidates = [type("Candidate", (), {"content": type("Content", (), {"parts": parts})()})()]

    @property
    def text(self):
        raise ValueError("blocked")


def test_safe_get_response_text_reads_candidate_parts():
    assert safe_get_response_text(_Blocked([_Part(" from parts ")])) == " from parts "
    assert safe_get_response_text(_Blocked([])) == ""


def test_session_summary_keeps_text_verbatim(record, gemini):
    gemini.reply("\nHello Jane,\n\nCheering you on,\nDan\n")
    assert session_summary(_session(record), "key") == ("\nHello Jane,\n\nCheering you on,\nDan\n", True)


def test_whitespace_only_reply_is_empty(record, gemini):
    gemini.reply("  \n ")
    assert session_summary(_session(record), "key") == (SUMMARY_EMPTY_TEXT, False)


def test_failures_are_reported_with_fallback_text(record, gemini):
    gemini.reply(error=RuntimeError("quota"))
    text, ok = session_summary(_session(record), "key")
    assert not ok
    assert text.startswith("Error generating summary: quota.")
    assert brief_summary(_session(record), "key") == (BRIEF_FALLBACK_TEXT, False)
    assert reflective_question("notes", "key") == (QUESTION_FALLBACK_TEXT, False)


def test_missing_key_is_a_failure(record):
    assert session_summary(_session(record), "") == (MISSING_KEY_TEXT, False)
    assert brief_summary(_session(record), "") == (BRIEF_FALLBACK_TEXT, False)


def test_no_notes_is_not_a_failure(record, gemini):
    assert brief_summary(record, "key") == (NO_NOTES_TEXT, True)


def test_configure_and_call_run_under_one_lock(gemini):
    seen = []

    def configure(api_key):
        seen.append(("configure", gemini_client._client_lock.locked()))

    def generate(prompt):
        seen.append(("generate", gemini_client._client_lock.locked()))
        return response

    response = gemini.model.generate_content.return_value
    gemini.configure.side_effect = configure
    gemini.model.generate_content.side_effect = generate
    gemini_client.generate_text("ping", "key")
    assert seen == [("configure", True), ("generate", True)]
    assert not gemini_client._client_lock.locked()
