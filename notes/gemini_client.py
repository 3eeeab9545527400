import logging
import threading
from typing import Tuple

import google.generativeai as genai
from django.conf import settings

from .records import SessionRecord, has_signal

# Setup logging
logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

NO_NOTES_TEXT = "No notes recorded."
BRIEF_EMPTY_TEXT = "Session completed."
BRIEF_FALLBACK_TEXT = "Session recorded."
SUMMARY_EMPTY_TEXT = "Unable to generate summary."
MISSING_KEY_TEXT = "Please enter your Google API Key in the Extend tab to generate a summary."
QUESTION_EMPTY_TEXT = "What is the most important thing for you to focus on right now?"
QUESTION_FALLBACK_TEXT = "What would success look like for you in this situation?"

# genai.configure sets one process-wide key and GenerativeModel picks it up on
# first use, so configure and call must not interleave across threads
_client_lock = threading.Lock()

# (text to show, whether Gemini actually produced it)
Generated = Tuple[str, bool]


class GenerationError(Exception):
    """Gemini call failed."""


class EmptyResponse(GenerationError):
    """Gemini answered without any usable text."""


def _get_model(api_key: str):
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(getattr(settings, "GEMINI_MODEL", "") or DEFAULT_MODEL)


def safe_get_response_text(response) -> str:
    """Safely extract text from Gemini response, handling blocked/empty responses.

    The text is returned as Gemini sent it; callers decide whether to trim.
    """
    try:
        if hasattr(response, 'text') and response.text:
            return response.text
    except ValueError as e:
        # .text raises ValueError when the candidate was blocked
        logger.warning(f"Could not extract response.text: {str(e)}")

    try:
        if hasattr(response, 'candidates') and response.candidates:
            candidate = response.candidates[0]
            if hasattr(candidate, 'content') and hasattr(candidate.content, 'parts'):
                parts = candidate.content.parts
                if parts:
                    return parts[0].text or ""
    except (AttributeError, IndexError) as e:
        logger.warning(f"Could not extract from candidates: {str(e)}")

    return ""


def generate_text(prompt: str, api_key: str) -> str:
    """One Gemini round-trip. Raises EmptyResponse when nothing usable comes back."""
    try:
        with _client_lock:
            response = _get_model(api_key).generate_content(prompt)
    except Exception as e:
        raise GenerationError(str(e)) from e
    text = safe_get_response_text(response)
    if not text.strip():
        raise EmptyResponse("Empty response from Gemini")
    return text


def build_brief_prompt(record: SessionRecord) -> str:
    return f"""Analyze the following coaching session notes and provide a summary in LESS THAN 30 WORDS.
Focus on the key breakthrough or main theme.
Do NOT list the action steps in this summary, just the core insight or win.

Wins: {record.engage.wins}
Notes: {record.explore.conversation_notes}
Key Insight: {record.extend.key_insight}"""


def build_summary_prompt(record: SessionRecord) -> str:
    coach = getattr(settings, "COACH_NAME", "") or "Dan"
    steps = record.active_action_steps()
    action_steps_list = "\n".join(f"{i}. {step}" for i, step in enumerate(steps, start=1))
    greeting_name = record.first_name or "there"

    return f"""You are {coach}, an expert executive coach.
Write a session summary email to my coachee, {record.coachee_name or 'Friend'}.

TONE: Casual, warm, and encouraging.

DATA FROM SESSION:
- Coachee Vision: {record.profile.vision}
- Coachee I AMs: {record.profile.iam_statements}

- Wins/Goodness: {record.engage.goodness_of_god} / {record.engage.wins}
- Learning: {record.engage.learning}
- Improvements/Struggles/Obstacles: {record.engage.improvements} / {record.express.obstacles}

- CONVERSATION NOTES:
  "{record.explore.conversation_notes}"

- ACTION PLAN (Keep exactly as written):
  {action_steps_list or "No specific steps recorded."}

- KEY INSIGHT (Keep exactly as written): {record.extend.key_insight}
- PRAYER POINT: {record.extend.prayer_point}
- NEXT MEETING: {record.extend.next_meeting}

- ENCOURAGEMENT FROM {coach.upper()}: {record.express.encouragement}

EMAIL STRUCTURE:
1. Salutation: "Hello {greeting_name},"
2. Casual Opening: "It was good to chat with you! Here are some notes from our session."
3. Encouragement: Write a short paragraph encouraging them on their breakthrough regarding their struggles. Explicitly mention some of the struggles or obstacles they overcame or are facing (from the data above).
4. Summary: "We explored..." (Summarize the important points of the conversation).
5. "Action Plan:" (List the action steps EXACTLY as they appear in the data above. Do not summarize them).
6. "Takeaway:" (The Key Insight EXACTLY as written above).
7. "Prayer Point:" (Rephrase the prayer point to start with something like "I'll be praying about...").
8. "Next Meeting:" "Next meeting is in the calendar for {record.extend.next_meeting or '[Date]'}."
9. Closing: "Cheering you on,\n{coach}"
"""


def build_question_prompt(explore_notes: str) -> str:
    return f"""I am a coach. Based on these notes from a coachee conversation, suggest ONE powerful, open-ended reflective question I should ask them to deepen their thinking.

Conversation Notes:
"{explore_notes}"

The question should be short, profound, and challenge them to think about the root cause or their future vision."""


def brief_summary(record: SessionRecord, api_key: str) -> Generated:
    """Under-30-word synopsis used for the meeting history, trimmed."""
    if not has_signal(record):
        return NO_NOTES_TEXT, True
    if not api_key:
        logger.info("No Gemini API key configured, skipping brief summary")
        return BRIEF_FALLBACK_TEXT, False
    try:
        return generate_text(build_brief_prompt(record), api_key).strip(), True
    except EmptyResponse:
        return BRIEF_EMPTY_TEXT, False
    except GenerationError as e:
        logger.error(f"Error generating brief summary: {str(e)}")
        return BRIEF_FALLBACK_TEXT, False


def session_summary(record: SessionRecord, api_key: str) -> Generated:
    """The full email-style summary shown on the Summary tab, exactly as Gemini wrote it."""
    if not api_key:
        return MISSING_KEY_TEXT, False
    try:
        return generate_text(build_summary_prompt(record), api_key), True
    except EmptyResponse:
        return SUMMARY_EMPTY_TEXT, False
    except GenerationError as e:
        logger.error(f"Error generating summary: {str(e)}")
        return f"Error generating summary: {str(e)}. Please check your Gemini API key.", False


def reflective_question(explore_notes: str, api_key: str) -> Generated:
    if not api_key:
        return QUESTION_FALLBACK_TEXT, False
    try:
        return generate_text(build_question_prompt(explore_notes), api_key).strip(), True
    except EmptyResponse:
        return QUESTION_EMPTY_TEXT, False
    except GenerationError as e:
        logger.error(f"Error generating question: {str(e)}")
        return QUESTION_FALLBACK_TEXT, False


def generate_brief_summary(record: SessionRecord, api_key: str) -> str:
    return brief_summary(record, api_key)[0]
