"""Shared activity module surface.

Each activity is an independent state machine. It never touches engine
state; it reports through the callbacks it was given, which the host wires
to a live engine with `bind_engine`.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from therapy_session.core.errors import StateError
from therapy_session.engine.tokens import crossed_threshold

if TYPE_CHECKING:
    from therapy_session.engine.session import SessionEngine

# Meters run 0-100; a token is awarded each time a quarter is crossed
METER_MAX = 100.0
TOKEN_STEP = 25.0


def _noop(*args) -> None:
    return None


@dataclass
class ActivityCallbacks:
    """Outbound calls an activity module makes."""

    award_token: Callable[[], object] = _noop
    on_attempt: Callable[[], object] = _noop
    on_success: Callable[[bool], object] = _noop
    on_complete: Callable[[float], object] = _noop


def bind_engine(engine: "SessionEngine") -> ActivityCallbacks:
    """Route an activity's callbacks into a session engine."""
    return ActivityCallbacks(
        award_token=engine.award_token,
        on_attempt=engine.record_attempt,
        on_success=engine.record_success,
        on_complete=engine.complete_activity,
    )


class ActivityModule:
    """
    Base for drills and breaks.

    Subclasses call `_attempt`, `_judge` and `_raise_meter` as the child
    works, and `finish` when the activity is over.
    """

    name = "activity"

    def __init__(self, callbacks: ActivityCallbacks | None = None):
        self.callbacks = callbacks or ActivityCallbacks()
        self.attempts = 0
        self.successes = 0
        self.meter = 0.0
        self.completed = False
        self.awaiting_judgement = False

    def success_rate(self) -> float:
        return min(100.0, self.successes / max(self.attempts, 1) * 100)

    def finish(self) -> float:
        """
        Report completion with the final success rate.

        The module only counts as completed once the callback accepts the
        rate, so a rejected completion (session paused) can be retried.
        """
        self._require_active("finish")
        rate = self.success_rate()
        self.callbacks.on_complete(rate)
        self.completed = True
        return rate

    def _require_active(self, operation: str) -> None:
        if self.completed:
            raise StateError(operation, f"{self.name} completed")

    def _attempt(self) -> None:
        self.attempts += 1
        self.awaiting_judgement = True
        self.callbacks.on_attempt()

    def _judge(self, success: bool) -> None:
        """Judge the latest attempt. Each attempt is judged at most once."""
        if not self.awaiting_judgement:
            raise StateError("judge attempt", f"{self.name} awaiting an attempt")
        self.awaiting_judgement = False
        if success:
            self.successes += 1
        self.callbacks.on_success(success)

    def _raise_meter(self, step: float) -> bool:
        """Raise the meter by `step`, awarding a token when a quarter is crossed."""
        old = self.meter
        self.meter = min(old + step, METER_MAX)
        if crossed_threshold(old, self.meter, TOKEN_STEP):
            self.callbacks.award_token()
            return True
        return False
