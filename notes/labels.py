import re
from typing import Dict, List

from pydantic import BaseModel, Field

LABEL_SECTIONS = ("engage", "express")

DEFAULT_LABELS: Dict[str, Dict[str, str]] = {
    "engage": {
        "goodnessOfGod": "Where have you seen the goodness of God lately?",
        "wins": "What wins have you noticed?",
        "learning": "What are you learning?",
        "improvements": "What could you improve?",
        "nextStepForward": "What's the next step forward?",
    },
    "express": {
        "nextStepsThinking": "What do you think are your next steps?",
        "firstSteps": "Tell me your very first step?",
        "importance": "Why is this important?",
        "whenWillYouDoThis": "When will you do this?",
        "obstacles": "What stops you? (Obstacles & Plan)",
        "whoToTell": "Accountability: Who can you tell?",
        "sacrifices": "Consequences / Sacrifices (Saying No)",
        "stickToIt": "What is your worst day plan?",
        "visualCue": "Helpful reminders (visual? automated?)",
        "encouragement": "Encouragement & Coach Input",
    },
}

# Prompts shown beside the Explore notes
QUESTION_BANKS: Dict[str, List[str]] = {
    "Direction Questions": [
        "What's on your mind?",
        "What's the real challenge in that for you?",
        "What do you mean by ____?",
        "What about that is important to you?",
        "What do you want? (Positive 'I want...')",
        "What would achieving that do for you/others?",
        "What's the bigger issue behind the situation?",
        "What result would you like to take away?",
        "What part of that problem would you like to work on right now?",
    ],
    "If they have nothing...": [
        "Tell me about your personal vision statement.",
        "What do you feel reading that out?",
        "Where do you see God transforming you?",
        "What are barriers keeping you from this life?",
        "What practices/relationships could help overcome these?",
    ],
}


class LabelError(ValueError):
    pass


class LabelConfig(BaseModel):
    """Question text shown for each engage/express answer."""

    engage: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_LABELS["engage"]))
    express: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_LABELS["express"]))

    def section(self, name: str) -> Dict[str, str]:
        if name not in LABEL_SECTIONS:
            raise LabelError(f"Unknown label section: {name}")
        return getattr(self, name)


def merge_labels(stored) -> LabelConfig:
    """Lay stored labels over the defaults one key at a time.

    Anything in ``stored`` that is not a known key with a text value is ignored,
    so older or hand-edited payloads always produce a complete config.
    """
    merged = {}
    stored = stored if isinstance(stored, dict) else {}
    for name in LABEL_SECTIONS:
        section = dict(DEFAULT_LABELS[name])
        saved = stored.get(name)
        if isinstance(saved, dict):
            for key, value in saved.items():
                if key in section and isinstance(value, str):
                    section[key] = value
        merged[name] = section
    return LabelConfig(**merged)


def update_label(labels: LabelConfig, section: str, key: str, value: str) -> LabelConfig:
    current = labels.section(section)
    if key not in current:
        raise LabelError(f"Unknown question: {section}.{key}")
    if not isinstance(value, str):
        raise LabelError("Question text must be text")
    return labels.model_copy(update={section: {**current, key: value}})


def reset_labels(labels: LabelConfig, section: str) -> LabelConfig:
    labels.section(section)
    return labels.model_copy(update={section: dict(DEFAULT_LABELS[section])})


def format_key(key: str) -> str:
    """``nextStepForward`` -> ``Next Step Forward``."""
    spaced = re.sub(r"([A-Z])", r" \1", key)
    return spaced[:1].upper() + spaced[1:]
