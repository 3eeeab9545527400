"""
Schema upgrades for stored session records.

Older builds of the app saved records with fewer fields. Every upgrade below
patches one of those gaps on the raw stored dict, in order, and only ever adds
keys. Each one can run against an already-current record without changing it.
"""
import logging
from typing import Callable, Dict, List, Tuple

from .records import SCHEMA_VERSION

logger = logging.getLogger(__name__)

Upgrade = Callable[[Dict], Dict]


def _section(data: Dict, name: str) -> Dict:
    section = data.get(name)
    if not isinstance(section, dict):
        section = {}
        data[name] = section
    return section


def ensure_profile(data: Dict) -> Dict:
    if not isinstance(data.get("profile"), dict):
        data["profile"] = {"iamStatements": "", "vision": "", "pastMeetings": "", "meetingHistory": []}
    return data


def rename_client_name(data: Dict) -> Dict:
    if data.get("clientName") and not data.get("coacheeName"):
        data["coacheeName"] = data["clientName"]
    return data


def ensure_meeting_history(data: Dict) -> Dict:
    profile = _section(data, "profile")
    if not isinstance(profile.get("meetingHistory"), list):
        profile["meetingHistory"] = []
    return data


def ensure_next_steps_thinking(data: Dict) -> Dict:
    _section(data, "express").setdefault("nextStepsThinking", "")
    return data


def ensure_action_steps(data: Dict) -> Dict:
    express = _section(data, "express")
    if not isinstance(express.get("actionSteps"), list):
        legacy = [express.get("step1") or "", express.get("step2") or "", express.get("step3") or ""]
        steps = [step for step in legacy if step != ""]
        express["actionSteps"] = steps or ["", "", ""]
    return data


def ensure_encouragement(data: Dict) -> Dict:
    _section(data, "express").setdefault("encouragement", "")
    return data


UPGRADES: List[Tuple[int, Upgrade]] = [
    (1, ensure_profile),
    (2, rename_client_name),
    (3, ensure_meeting_history),
    (4, ensure_next_steps_thinking),
    (5, ensure_action_steps),
    (6, ensure_encouragement),
]


def stored_version(data: Dict) -> int:
    version = data.get("schemaVersion", 0)
    return version if isinstance(version, int) else 0


def upgrade(data: Dict) -> Dict:
    """Bring a stored record dict up to the current schema version."""
    version = stored_version(data)
    for target, step in UPGRADES:
        if version < target:
            data = step(data)
            logger.debug(f"Applied record upgrade {target} ({step.__name__})")
    data["schemaVersion"] = SCHEMA_VERSION
    return data
