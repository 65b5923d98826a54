"""Stubbed microphone capture for speech drills.

No audio is captured. The recorder only tracks how long a "recording" lasted
so speech drills can count attempts the same way a real capture would.
"""

import time
from dataclasses import dataclass
from typing import Callable


class RecorderError(Exception):
    """Raised when the recorder is started twice or stopped while idle."""


@dataclass(frozen=True)
class Recording:
    """Result of one capture."""

    duration_seconds: float
    data: bytes = b""


class AudioRecorder:
    """
    Start/stop capture shim.

    Mirrors the surface of a media recorder so a real backend can replace it
    without touching the drills.
    """

    def __init__(self, time_source: Callable[[], float] = time.monotonic):
        self._now = time_source
        self._started_at: float | None = None
        self.recordings: list[Recording] = []

    @property
    def is_recording(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is not None:
            raise RecorderError("Recorder is already running")
        self._started_at = self._now()

    def stop(self) -> Recording:
        if self._started_at is None:
            raise RecorderError("Recorder is not running")
        recording = Recording(duration_seconds=max(0.0, self._now() - self._started_at))
        self._started_at = None
        self.recordings.append(recording)
        return recording

    @property
    def last_recording(self) -> Recording | None:
        return self.recordings[-1] if self.recordings else None
