import logging
from enum import Enum
from typing import Any, Dict, Optional

from django.core.cache import cache

logger = logging.getLogger(__name__)

IN_FLIGHT_CACHE_PREFIX = "generating_"
IN_FLIGHT_TIMEOUT = 120  # seconds


class TabView(str, Enum):
    PROFILE = "PROFILE"
    ENGAGE = "ENGAGE"
    EXPLORE = "EXPLORE"
    EXPRESS = "EXPRESS"
    EXTEND = "EXTEND"
    SUMMARY = "SUMMARY"

    @property
    def label(self) -> str:
        return self.value.title()

    @classmethod
    def parse(cls, value: Optional[str], default: "TabView" = None) -> "TabView":
        try:
            return cls((value or "").upper())
        except ValueError:
            return default or cls.PROFILE


TAB_ORDER = list(TabView)


def next_view(view: TabView) -> TabView:
    index = TAB_ORDER.index(view)
    return TAB_ORDER[min(index + 1, len(TAB_ORDER) - 1)]


def previous_view(view: TabView) -> TabView:
    index = TAB_ORDER.index(view)
    return TAB_ORDER[max(index - 1, 0)]


class RequestState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationInFlight(Exception):
    """A generation of the same kind is already running for this coach."""


class GenerationRequest:
    """Lifecycle of one call to Gemini: idle, in flight, then succeeded or failed."""

    def __init__(self, kind: str, state: RequestState = RequestState.IDLE,
                 text: str = "", reason: str = ""):
        self.kind = kind
        self.state = state
        self.text = text
        self.reason = reason

    @property
    def busy(self) -> bool:
        return self.state == RequestState.IN_FLIGHT

    def start(self) -> None:
        if self.busy:
            raise GenerationInFlight(f"{self.kind} generation already running")
        self.state = RequestState.IN_FLIGHT
        self.text = ""
        self.reason = ""

    def succeed(self, text: str) -> None:
        self.state = RequestState.SUCCEEDED
        self.text = text

    def fail(self, reason: str, text: str = "") -> None:
        """``text`` is the fallback shown in place of the result, if any."""
        self.state = RequestState.FAILED
        self.reason = reason
        self.text = text

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "state": self.state.value, "text": self.text, "reason": self.reason}

    @classmethod
    def from_dict(cls, kind: str, data: Optional[Dict[str, Any]]) -> "GenerationRequest":
        data = data or {}
        try:
            state = RequestState(data.get("state", RequestState.IDLE.value))
        except ValueError:
            state = RequestState.IDLE
        return cls(kind, state, data.get("text", ""), data.get("reason", ""))


class InFlightGuard:
    """At most one running generation per (coach, kind), shared across worker threads.

    Uses ``cache.add`` which only sets the key when it is absent.
    """

    def __init__(self, owner: str, kind: str):
        self.key = f"{IN_FLIGHT_CACHE_PREFIX}{owner}_{kind}"

    def __enter__(self):
        if not cache.add(self.key, True, timeout=IN_FLIGHT_TIMEOUT):
            raise GenerationInFlight("A summary is already being generated. Please wait.")
        return self

    def __exit__(self, exc_type, exc, tb):
        cache.delete(self.key)
        return False
