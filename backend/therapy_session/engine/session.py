"""Session orchestration engine.

Owns the session lifecycle (not started -> running <-> paused -> ended), the
current activity pointer, the progress ledger and the token economy. The
engine is synchronous and single-owner: hosts serialize calls into it.
"""

from datetime import datetime, timezone
from typing import Callable

from therapy_session.core.errors import ConfigurationError, StateError, ValidationError
from therapy_session.core.logging import get_logger, session_context
from therapy_session.engine.clock import ElapsedClock, Ticker
from therapy_session.engine.ledger import ProgressLedger, validate_rate
from therapy_session.engine.tokens import TokenEconomy
from therapy_session.models.session import (
    ActivityDescriptor,
    SessionConfig,
    SessionPhase,
    SessionSnapshot,
    SessionSummary,
)

logger = get_logger(__name__)

LIVE_PHASES = (SessionPhase.RUNNING, SessionPhase.PAUSED)


class SessionEngine:
    """
    Drives one session from start to summary.

    Activity modules talk to the engine through `award_token`,
    `record_attempt`, `record_success` and `complete_activity`. The host
    observes it through the `on_*` callbacks, which may be reassigned at
    any time.
    """

    def __init__(
        self,
        config: SessionConfig,
        max_tokens: int = 10,
        clock: ElapsedClock | None = None,
        ticker: Ticker | None = None,
        on_session_started: Callable[[], None] | None = None,
        on_session_paused: Callable[[], None] | None = None,
        on_session_resumed: Callable[[], None] | None = None,
        on_session_ended: Callable[[SessionSummary], None] | None = None,
        on_token_awarded: Callable[[int], None] | None = None,
        on_activity_changed: Callable[[int], None] | None = None,
        on_tick: Callable[[int], None] | None = None,
    ):
        """
        Initialize the engine for a session configuration.

        @param config - Immutable session configuration
        @param max_tokens - Token economy cap
        @param clock - Elapsed-time clock (defaults to a monotonic clock)
        @param ticker - Optional tick source, started and stopped with the session
        @param on_session_started - Called after start()
        @param on_session_paused - Called after pause()
        @param on_session_resumed - Called after resume()
        @param on_session_ended - Called with the summary after end()
        @param on_token_awarded - Called with the new count when a token is added
        @param on_activity_changed - Called with the new current index
        @param on_tick - Called with elapsed seconds on every ticker tick
        """
        self.config = config
        self.clock = clock or ElapsedClock()
        self.ticker = ticker
        self.tokens = TokenEconomy(max_tokens)
        self.ledger = ProgressLedger.from_activities(config.activities)

        self.phase = SessionPhase.NOT_STARTED
        self.current_index = 0
        self.attempts = 0
        self.successes = 0
        self._activity_started_at = 0
        self._summary: SessionSummary | None = None

        # Outbound callbacks
        self.on_session_started = on_session_started
        self.on_session_paused = on_session_paused
        self.on_session_resumed = on_session_resumed
        self.on_session_ended = on_session_ended
        self.on_token_awarded = on_token_awarded
        self.on_activity_changed = on_activity_changed
        self.on_tick = on_tick

        if self.ticker is not None:
            self.ticker.on_tick = self._handle_tick

    @property
    def session_id(self) -> str:
        return self.config.id

    @property
    def activity_count(self) -> int:
        return len(self.config.activities)

    @property
    def summary(self) -> SessionSummary | None:
        """The final summary, set once the session has ended."""
        return self._summary

    @property
    def current_activity(self) -> ActivityDescriptor | None:
        if self.phase == SessionPhase.NOT_STARTED or not self.config.activities:
            return None
        if self.phase == SessionPhase.ENDED:
            return None
        return self.config.activities[self.current_index]

    @property
    def next_activity(self) -> ActivityDescriptor | None:
        if self.phase == SessionPhase.ENDED:
            return None
        index = self.current_index + 1 if self.phase in LIVE_PHASES else 0
        if index < self.activity_count:
            return self.config.activities[index]
        return None

    # ========== Lifecycle ==========

    def start(self) -> None:
        """Begin the session with the first activity in progress."""
        self._require("start", SessionPhase.NOT_STARTED)
        if not self.config.activities:
            raise ConfigurationError(
                "Cannot start a session with no activities",
                {"session_id": self.session_id},
            )

        if self.ticker is not None:
            self.ticker.start()
        self.clock.start()
        self.ledger.mark_in_progress(0)
        self.current_index = 0
        self._activity_started_at = 0
        self.phase = SessionPhase.RUNNING

        self._log("Session started (%d activities)", self.activity_count)
        self._emit(self.on_session_started)
        self._emit(self.on_activity_changed, 0)

    def pause(self) -> None:
        """Freeze elapsed time until resume()."""
        self._require("pause", SessionPhase.RUNNING)
        self.clock.pause()
        if self.ticker is not None:
            self.ticker.stop()
        self.phase = SessionPhase.PAUSED

        self._log("Session paused at %ds", self.clock.elapsed_seconds())
        self._emit(self.on_session_paused)

    def resume(self) -> None:
        """Continue from where elapsed time was frozen."""
        self._require("resume", SessionPhase.PAUSED)
        if self.ticker is not None:
            self.ticker.start()
        self.clock.resume()
        self.phase = SessionPhase.RUNNING

        self._log("Session resumed at %ds", self.clock.elapsed_seconds())
        self._emit(self.on_session_resumed)

    def end(self) -> SessionSummary:
        """Finish the session and return its summary."""
        self._require("end", *LIVE_PHASES)
        self.clock.stop()
        if self.ticker is not None:
            self.ticker.stop()
        self.phase = SessionPhase.ENDED

        summary = SessionSummary(
            session_id=self.config.id,
            session_name=self.config.name,
            elapsed_seconds=self.clock.elapsed_seconds(),
            activities=self.ledger.entries(),
            tokens_earned=self.tokens.count,
            speech_targets=list(self.config.speech_targets),
            behavior_focus=list(self.config.behavior_focus),
            completion_timestamp=datetime.now(timezone.utc),
        )
        self._summary = summary

        self._log(
            "Session ended after %ds: %d/%d activities completed, %d tokens",
            summary.elapsed_seconds,
            self.ledger.completed_count(),
            self.activity_count,
            summary.tokens_earned,
        )
        self._emit(self.on_session_ended, summary)
        return summary

    # ========== Activity flow ==========

    def advance_activity(self, target_index: int) -> SessionSummary | None:
        """
        Move forward to `target_index`, completing everything passed over.

        Moving to the current or an earlier activity is a no-op. Moving past
        the last activity completes the rest and ends the session.

        @param target_index - Activity to make current
        @returns The session summary when the move ended the session
        """
        self._require("advance activity", SessionPhase.RUNNING)
        if isinstance(target_index, bool) or not isinstance(target_index, int):
            raise ValidationError("Target index must be an integer", {"target_index": target_index})

        if target_index <= self.current_index:
            logger.debug(
                "Ignoring advance to %d from %d",
                target_index,
                self.current_index,
                extra=session_context(self.session_id),
            )
            return None

        last = min(target_index, self.activity_count)
        for index in range(self.current_index, last):
            self.ledger.mark_completed(index)

        if target_index >= self.activity_count:
            self._log("Advanced past the last activity")
            return self.end()

        self.ledger.mark_in_progress(target_index)
        self.current_index = target_index
        self._activity_started_at = self.clock.elapsed_seconds()

        self._log("Advanced to activity %d (%s)", target_index, self.config.activities[target_index].id)
        self._emit(self.on_activity_changed, target_index)
        return None

    def skip_activity(self) -> SessionSummary | None:
        """Move on to the following activity without a success rate."""
        return self.advance_activity(self.current_index + 1)

    def record_success_rate(self, activity_index: int, rate: float) -> None:
        """Set the success rate of an activity. Last write wins."""
        self._reject_when_ended("record success rate")
        self.ledger.check_index(activity_index)
        validate_rate(rate)
        self.ledger.set_success_rate(activity_index, rate)
        logger.info(
            "Success rate for activity %d set to %.1f",
            activity_index,
            rate,
            extra=session_context(self.session_id, activity_index=activity_index),
        )

    def award_token(self) -> int:
        """
        Add one token, crediting the current activity.

        Calls at the cap are a no-op and fire no event.

        @returns The token count after the call
        """
        self._reject_when_ended("award token")
        if self.tokens.is_full:
            logger.debug("Token cap reached (%d)", self.tokens.max, extra=session_context(self.session_id))
            return self.tokens.count

        old_count = self.tokens.count
        new_count = self.tokens.add()
        if self.activity_count:
            self.ledger.add_tokens(self.current_index, 1)

        if self.tokens.crossed_quarter(old_count):
            self._log("Token milestone: %d/%d", new_count, self.tokens.max)
        self._emit(self.on_token_awarded, new_count)
        return new_count

    # ========== Inbound activity events ==========

    def record_attempt(self) -> None:
        """An activity module registered an attempt. Informational only."""
        self._reject_when_ended("record attempt")
        self.attempts += 1
        logger.debug(
            "Attempt %d",
            self.attempts,
            extra=session_context(self.session_id, activity_index=self.current_index),
        )

    def record_success(self, did_succeed: bool) -> None:
        """An activity module judged an attempt. Informational only."""
        self._reject_when_ended("record success")
        if did_succeed:
            self.successes += 1
        logger.debug(
            "Attempt judged %s",
            "successful" if did_succeed else "unsuccessful",
            extra=session_context(self.session_id, activity_index=self.current_index),
        )

    def complete_activity(self, success_rate: float) -> SessionSummary | None:
        """
        The current activity finished with `success_rate`.

        Records the rate, then advances to the next activity (ending the
        session after the last one).
        """
        self._require("complete activity", SessionPhase.RUNNING)
        validate_rate(success_rate)
        self.record_success_rate(self.current_index, success_rate)
        return self.advance_activity(self.current_index + 1)

    # ========== Reads ==========

    def elapsed_seconds(self) -> int:
        return self.clock.elapsed_seconds()

    def session_progress_percent(self) -> float:
        if not self.activity_count:
            return 0.0
        return self.ledger.completed_count() / self.activity_count * 100

    def remaining_seconds(self) -> int:
        """Planned session seconds left, never negative."""
        return max(0, self.config.planned_seconds() - self.elapsed_seconds())

    def activity_remaining_seconds(self) -> int:
        """Planned seconds left in the current activity, never negative."""
        activity = self.current_activity
        if activity is None:
            return 0
        spent = self.elapsed_seconds() - self._activity_started_at
        return max(0, activity.duration_seconds - spent)

    def snapshot(self) -> SessionSnapshot:
        activity = self.current_activity
        return SessionSnapshot(
            session_id=self.config.id,
            session_name=self.config.name,
            phase=self.phase,
            current_index=self.current_index,
            current_activity_id=activity.id if activity else None,
            elapsed_seconds=self.elapsed_seconds(),
            remaining_seconds=self.remaining_seconds(),
            activity_remaining_seconds=self.activity_remaining_seconds(),
            progress_percent=self.session_progress_percent(),
            token_count=self.tokens.count,
            max_tokens=self.tokens.max,
            attempts=self.attempts,
            successes=self.successes,
            activities=self.ledger.entries(),
        )

    # ========== Internals ==========

    def _require(self, operation: str, *phases: SessionPhase) -> None:
        if self.phase not in phases:
            logger.warning(
                "Rejected %s in phase %s",
                operation,
                self.phase.value,
                extra=session_context(self.session_id, phase=self.phase.value),
            )
            raise StateError(operation, self.phase)

    def _reject_when_ended(self, operation: str) -> None:
        self._require(operation, SessionPhase.NOT_STARTED, *LIVE_PHASES)

    def _handle_tick(self) -> None:
        if self.phase != SessionPhase.RUNNING:
            return
        self._emit(self.on_tick, self.clock.elapsed_seconds())

    def _log(self, message: str, *args) -> None:
        logger.info(
            message,
            *args,
            extra=session_context(self.session_id, activity_index=self.current_index),
        )

    def _emit(self, callback: Callable | None, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(
                "Session callback %s failed",
                getattr(callback, "__name__", repr(callback)),
                extra=session_context(self.session_id),
            )
