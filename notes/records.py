import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 6

SECTIONS = ("profile", "engage", "explore", "express", "extend")
IDENTITY_FIELDS = ("coachee_name", "date")

# Fields whose content decides whether a session has anything worth summarising
SIGNAL_FIELDS = (
    ("engage", "wins"),
    ("explore", "conversation_notes"),
    ("extend", "key_insight"),
)


class RecordError(ValueError):
    """Raised when a record update names an unknown field or carries a bad value."""


class _Model(BaseModel):
    # Stored JSON uses camelCase keys; unknown keys from older shapes are carried along
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class MeetingHistoryItem(_Model):
    date: str = ""
    summary: str = ""


class ProfileSection(_Model):
    iam_statements: str = ""
    vision: str = ""
    past_meetings: str = ""
    meeting_history: List[MeetingHistoryItem] = Field(default_factory=list)


class EngageSection(_Model):
    goodness_of_god: str = ""
    wins: str = ""
    improvements: str = ""
    next_step_forward: str = ""
    learning: str = ""


class ExploreSection(_Model):
    foundation_iams: str = ""
    conversation_notes: str = ""


class ExpressSection(_Model):
    next_steps_thinking: str = ""
    first_steps: str = ""
    stick_to_it: str = ""
    when_will_you_do_this: str = ""
    obstacles: str = ""
    who_to_tell: str = ""
    visual_cue: str = ""
    importance: str = ""
    sacrifices: str = ""
    action_steps: List[str] = Field(default_factory=lambda: ["", "", ""])
    encouragement: str = ""


class ExtendSection(_Model):
    key_insight: str = ""
    prayer_point: str = ""
    next_meeting: str = ""


class SessionRecord(_Model):
    """Everything captured during one coaching conversation."""

    schema_version: int = SCHEMA_VERSION
    coachee_name: str = ""
    date: str = ""
    profile: ProfileSection = Field(default_factory=ProfileSection)
    engage: EngageSection = Field(default_factory=EngageSection)
    explore: ExploreSection = Field(default_factory=ExploreSection)
    express: ExpressSection = Field(default_factory=ExpressSection)
    extend: ExtendSection = Field(default_factory=ExtendSection)

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True)

    @property
    def first_name(self) -> str:
        return self.coachee_name.split(" ")[0] if self.coachee_name else ""

    def active_action_steps(self) -> List[str]:
        return [step for step in self.express.action_steps if step.strip()]


def new_record(today: Optional[datetime.date] = None) -> SessionRecord:
    """A blank session dated today."""
    today = today or datetime.date.today()
    return SessionRecord(date=today.isoformat())


def has_signal(record: SessionRecord) -> bool:
    return any(getattr(getattr(record, section), field) for section, field in SIGNAL_FIELDS)


def format_foundation(iam_statements: str, vision: str) -> str:
    parts = [
        f"I AM Statements:\n{iam_statements}" if iam_statements else "",
        f"Vision:\n{vision}" if vision else "",
    ]
    return "\n\n".join(part for part in parts if part)


def sync_foundation(record: SessionRecord) -> SessionRecord:
    """Keep explore.foundationIams equal to the profile's I AMs and vision."""
    expected = format_foundation(record.profile.iam_statements, record.profile.vision)
    if record.explore.foundation_iams == expected:
        return record
    explore = record.explore.model_copy(update={"foundation_iams": expected})
    return record.model_copy(update={"explore": explore})


def resolve_field(model: BaseModel, key: str) -> str:
    """Map a snake_case or camelCase key onto the model's attribute name."""
    fields = type(model).model_fields
    if key in fields:
        return key
    for name, info in fields.items():
        if info.alias == key:
            return name
    raise RecordError(f"Unknown field: {key}")


def update_field(record: SessionRecord, section: Optional[str], field: str, value: Any) -> SessionRecord:
    """Return a copy of ``record`` with exactly one leaf replaced.

    ``section`` is ``None`` for the identity fields (coachee name and date).
    Untouched sections are shared with the original record, not copied.
    """
    if section is None:
        name = resolve_field(record, field)
        if name not in IDENTITY_FIELDS:
            raise RecordError(f"Unknown identity field: {field}")
        if not isinstance(value, str):
            raise RecordError(f"{field} must be text")
        return sync_foundation(record.model_copy(update={name: value}))

    if section not in SECTIONS:
        raise RecordError(f"Unknown section: {section}")
    current = getattr(record, section)
    name = resolve_field(current, field)
    if name == "meeting_history":
        raise RecordError("Meeting history is only changed by profile import and export")
    if name == "action_steps":
        if not isinstance(value, list) or not all(isinstance(step, str) for step in value):
            raise RecordError("actionSteps must be a list of text")
        value = list(value)
    elif not isinstance(value, str):
        raise RecordError(f"{section}.{field} must be text")

    replaced = current.model_copy(update={name: value})
    return sync_foundation(record.model_copy(update={section: replaced}))


def _with_steps(record: SessionRecord, steps: List[str]) -> SessionRecord:
    express = record.express.model_copy(update={"action_steps": steps})
    return record.model_copy(update={"express": express})


def _check_step_index(record: SessionRecord, index: int) -> None:
    if not 0 <= index < len(record.express.action_steps):
        raise RecordError(f"No action step at position {index + 1}")


def update_action_step(record: SessionRecord, index: int, value: str) -> SessionRecord:
    _check_step_index(record, index)
    if not isinstance(value, str):
        raise RecordError("Action steps must be text")
    steps = list(record.express.action_steps)
    steps[index] = value
    return _with_steps(record, steps)


def add_action_step(record: SessionRecord) -> SessionRecord:
    return _with_steps(record, record.express.action_steps + [""])


def remove_action_step(record: SessionRecord, index: int) -> SessionRecord:
    _check_step_index(record, index)
    steps = [step for i, step in enumerate(record.express.action_steps) if i != index]
    return _with_steps(record, steps)
