import datetime
from unittest import mock

import pytest
from django.core.cache import cache

from notes.records import new_record
from notes.storage import MemoryStorage


@pytest.fixture(autouse=True)
def _isolated(settings):
    settings.SESSION_ENGINE = "django.contrib.sessions.backends.cache"
    settings.ENCRYPTION_KEY = ""
    settings.GEMINI_API_KEY = ""
    settings.GEMINI_MODEL = "gemini-2.5-flash"
    settings.COACH_NAME = "Dan"
    settings.COACH_TIME_ZONE = "Europe/London"
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def record():
    return new_record(datetime.date(2024, 3, 1))


class FakeResponse:
    def __init__(self, text):
        self.text = text
        self.candidates = []


@pytest.fixture
def gemini():
    """Patched ``genai`` module; ``gemini.reply`` sets what the model answers."""
    with mock.patch("notes.gemini_client.genai") as genai:
        model = genai.GenerativeModel.return_value

        def reply(text=None, error=None):
            model.generate_content.side_effect = error
            model.generate_content.return_value = FakeResponse(text)

        genai.reply = reply
        genai.model = model
        reply("Gemini says hi")
        yield genai
