"""Calming break with a guided breathing cycle."""

from enum import Enum

from therapy_session.activities.base import ActivityCallbacks, ActivityModule
from therapy_session.core.errors import ValidationError

BREATH_CYCLE = (("inhale", 4), ("hold", 2), ("exhale", 4))
BREATH_CYCLE_SECONDS = sum(seconds for _, seconds in BREATH_CYCLE)


class BreathingPhase(str, Enum):
    INHALE = "inhale"
    HOLD = "hold"
    EXHALE = "exhale"


class CalmingBreak(ActivityModule):
    """
    Countdown break that can be extended or ended early.

    Time is fed in by the host through `tick`. A break always completes with
    a success rate of 100.
    """

    name = "calming break"

    def __init__(
        self,
        duration_seconds: int = 180,
        callbacks: ActivityCallbacks | None = None,
        extension_seconds: int = 30,
    ):
        super().__init__(callbacks)
        if duration_seconds <= 0:
            raise ValidationError("Break duration must be positive", {"duration": duration_seconds})
        self.duration_seconds = duration_seconds
        self.extension_seconds = extension_seconds
        self.time_remaining = duration_seconds
        self.seconds_elapsed = 0
        self.extensions = 0
        self.extended_seconds = 0

    @property
    def breath_count(self) -> int:
        return self.seconds_elapsed // BREATH_CYCLE_SECONDS

    @property
    def breathing_phase(self) -> BreathingPhase:
        offset = self.seconds_elapsed % BREATH_CYCLE_SECONDS
        for phase, seconds in BREATH_CYCLE:
            if offset < seconds:
                return BreathingPhase(phase)
            offset -= seconds
        return BreathingPhase.EXHALE

    def progress_percent(self) -> float:
        total = self.duration_seconds + self.extended_seconds
        return min(100.0, self.seconds_elapsed / total * 100)

    def tick(self, seconds: int = 1) -> None:
        """Count down; the break finishes when time runs out."""
        self._require_active("tick")
        if seconds < 0:
            raise ValidationError("Cannot tick backwards", {"seconds": seconds})
        step = min(seconds, self.time_remaining)
        self.time_remaining -= step
        self.seconds_elapsed += step
        if self.time_remaining == 0:
            self._complete()

    def extend(self, seconds: int | None = None) -> int:
        """Add time to the break. Returns the new time remaining."""
        self._require_active("extend")
        extra = self.extension_seconds if seconds is None else seconds
        if extra <= 0:
            raise ValidationError("Extension must be positive", {"seconds": extra})
        self.time_remaining += extra
        self.extensions += 1
        self.extended_seconds += extra
        return self.time_remaining

    def end_early(self) -> None:
        self._require_active("end early")
        self.time_remaining = 0
        self._complete()

    def _complete(self) -> None:
        # A break has no right or wrong attempts
        self.attempts = max(self.attempts, 1)
        self.successes = self.attempts
        self.finish()
