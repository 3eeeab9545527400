"""
Device-local storage for the coaching notes.

The stores here only talk to a ``Storage`` port holding string values by key,
the same contract as browser local storage. ``SessionStorage`` keeps the values
in the visitor's Django session; ``MemoryStorage`` is a plain dict for tests
and scripts.
"""
import json
import logging
from typing import Dict, MutableMapping, Optional

from django.conf import settings
from pydantic import ValidationError

from .labels import LabelConfig, merge_labels, reset_labels, update_label
from .records import SessionRecord, new_record, sync_foundation, update_field
from .security import decrypt_value, encrypt_value
from .upgrades import upgrade

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

SESSION_KEY = "coachingSession"
LABELS_KEY = "coachingLabels"
API_KEY_KEY = "gemini_api_key"
COACH_EMAIL_KEY = "coach_email"


class Storage:
    """String key/value storage. Values are encrypted at rest when ENCRYPTION_KEY is set."""

    def get(self, key: str) -> Optional[str]:
        value = self._read(key)
        if value is None:
            return None
        return decrypt_value(value)

    def set(self, key: str, value: str) -> None:
        self._write(key, encrypt_value(value))

    def delete(self, key: str) -> None:
        self._remove(key)

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def _read(self, key):
        return self.values.get(key)

    def _write(self, key, value):
        self.values[key] = value

    def _remove(self, key):
        self.values.pop(key, None)


class SessionStorage(Storage):
    """Storage backed by ``request.session``, i.e. keyed to the coach's browser."""

    def __init__(self, session: MutableMapping):
        self.session = session

    def _read(self, key):
        value = self.session.get(key)
        return value if isinstance(value, str) else None

    def _write(self, key, value):
        self.session[key] = value

    def _remove(self, key):
        if key in self.session:
            del self.session[key]


class SessionStore:
    """Loads and saves the single in-progress session record."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def load(self) -> SessionRecord:
        raw = self.storage.get(SESSION_KEY)
        if not raw:
            return new_record()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            record = SessionRecord.model_validate(upgrade(data))
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Error parsing saved session, starting fresh: {e}")
            return new_record()
        return sync_foundation(record)

    def save(self, record: SessionRecord) -> None:
        self.storage.set(SESSION_KEY, json.dumps(record.to_storage()))

    def update(self, section: Optional[str], field: str, value) -> SessionRecord:
        record = update_field(self.load(), section, field, value)
        self.save(record)
        return record

    def reset(self) -> SessionRecord:
        record = new_record()
        self.save(record)
        audit_logger.info("Session reset: notes cleared for a new session")
        return record


class LabelStore:
    def __init__(self, storage: Storage):
        self.storage = storage

    def load(self) -> LabelConfig:
        raw = self.storage.get(LABELS_KEY)
        if not raw:
            return LabelConfig()
        try:
            return merge_labels(json.loads(raw))
        except ValueError as e:
            logger.error(f"Error parsing saved labels, using defaults: {e}")
            return LabelConfig()

    def save(self, labels: LabelConfig) -> None:
        self.storage.set(LABELS_KEY, labels.model_dump_json())

    def update(self, section: str, key: str, value: str) -> LabelConfig:
        labels = update_label(self.load(), section, key, value)
        self.save(labels)
        return labels

    def reset(self, section: str) -> LabelConfig:
        labels = reset_labels(self.load(), section)
        self.save(labels)
        audit_logger.info(f"Labels reset to defaults: section={section}")
        return labels


class CoachSettings:
    """The coach's own Gemini key and calendar email."""

    def __init__(self, storage: Storage):
        self.storage = storage

    @property
    def api_key(self) -> str:
        stored = (self.storage.get(API_KEY_KEY) or "").strip()
        return stored or getattr(settings, "GEMINI_API_KEY", "") or ""

    @property
    def stored_api_key(self) -> str:
        return self.storage.get(API_KEY_KEY) or ""

    def set_api_key(self, value: str) -> None:
        value = (value or "").strip()
        if value:
            self.storage.set(API_KEY_KEY, value)

    @property
    def coach_email(self) -> str:
        return self.storage.get(COACH_EMAIL_KEY) or ""

    def set_coach_email(self, value: str) -> None:
        self.storage.set(COACH_EMAIL_KEY, (value or "").strip())
