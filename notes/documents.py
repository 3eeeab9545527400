from typing import List

from .labels import LabelConfig
from .records import SessionRecord

NOT_AVAILABLE = "N/A"


def summary_filename(record: SessionRecord) -> str:
    return f"{record.coachee_name or 'Coachee'}_Session_Summary_{record.date}.txt"


def full_notes_filename(record: SessionRecord) -> str:
    return f"{record.coachee_name or 'Session'}_FullNotes_{record.date}.txt"


def _answer(question: str, answer: str) -> str:
    return f"{question}\n{answer or NOT_AVAILABLE}"


def action_plan_lines(record: SessionRecord) -> List[str]:
    """Numbered non-empty action steps; blanks are skipped and the numbering closes up."""
    steps = record.active_action_steps()
    if not steps:
        return [NOT_AVAILABLE]
    return [f"{i}. {step}" for i, step in enumerate(steps, start=1)]


def full_notes_text(record: SessionRecord, labels: LabelConfig) -> str:
    """Plain-text dump of every answer, one fixed section order."""
    engage, express = labels.engage, labels.express
    lines = [
        "COACHING SESSION NOTES",
        f"Coachee: {record.coachee_name}",
        f"Date: {record.date}",
        "========================================",
        "\n[PROFILE]",
        _answer("I AM Statements:", record.profile.iam_statements),
        _answer("Vision:", record.profile.vision),
        "\n[ENGAGE]",
        _answer(engage["goodnessOfGod"], record.engage.goodness_of_god),
        _answer(engage["wins"], record.engage.wins),
        _answer(engage["learning"], record.engage.learning),
        _answer(engage["improvements"], record.engage.improvements),
        _answer(engage["nextStepForward"], record.engage.next_step_forward),
        "\n[EXPLORE]",
        _answer("Conversation Notes:", record.explore.conversation_notes),
        "\n[EXPRESS]",
        _answer(express["nextStepsThinking"], record.express.next_steps_thinking),
        _answer(express["firstSteps"], record.express.first_steps),
        _answer(express["importance"], record.express.importance),
        _answer(express["whenWillYouDoThis"], record.express.when_will_you_do_this),
        _answer(express["obstacles"], record.express.obstacles),
        _answer(express["whoToTell"], record.express.who_to_tell),
        _answer(express["sacrifices"], record.express.sacrifices),
        _answer(express["stickToIt"], record.express.stick_to_it),
        _answer(express["visualCue"], record.express.visual_cue),
        _answer(express["encouragement"], record.express.encouragement),
        "\nAction Plan:",
        *action_plan_lines(record),
        "\n[EXTEND]",
        _answer("Key Insight:", record.extend.key_insight),
        _answer("Prayer Point:", record.extend.prayer_point),
        _answer("Next Meeting:", record.extend.next_meeting),
    ]
    return "\n\n".join(lines)
