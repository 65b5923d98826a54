"""Speech repetition drill."""

from enum import Enum

from therapy_session.activities.base import METER_MAX, ActivityCallbacks, ActivityModule
from therapy_session.services.recorder import AudioRecorder, Recording

DEFAULT_WORDS = ["cat", "dog", "fish", "bird"]


class VisualSupport(str, Enum):
    """How much picture support the drill shows."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SpeechQuest(ActivityModule):
    """
    Say each target word; the therapist marks clear productions.

    Recording a word counts an attempt, and each recording is marked as a
    success or a retry exactly once. Each success raises the power meter by
    an equal share of the word list.
    """

    name = "speech quest"

    def __init__(
        self,
        words: list[str] | None = None,
        difficulty: int = 1,
        callbacks: ActivityCallbacks | None = None,
        recorder: AudioRecorder | None = None,
    ):
        super().__init__(callbacks)
        self.words = list(words) if words else list(DEFAULT_WORDS)
        self.difficulty = difficulty
        self.recorder = recorder or AudioRecorder()
        self.word_index = 0

    @property
    def current_word(self) -> str:
        return self.words[self.word_index]

    def visual_support(self) -> VisualSupport:
        if self.difficulty <= 3:
            return VisualSupport.HIGH
        if self.difficulty <= 6:
            return VisualSupport.MEDIUM
        return VisualSupport.LOW

    def start_recording(self) -> None:
        self._require_active("start recording")
        self.recorder.start()

    def stop_recording(self) -> Recording:
        self._require_active("stop recording")
        recording = self.recorder.stop()
        self._attempt()
        return recording

    def mark_success(self) -> None:
        self._require_active("mark success")
        self._judge(True)
        self._raise_meter(METER_MAX / len(self.words))

    def mark_retry(self) -> None:
        self._require_active("mark retry")
        self._judge(False)

    def next_word(self) -> bool:
        """
        Move to the next word, finishing after the last one.

        @returns True when another word is ready, False when the drill finished
        """
        self._require_active("next word")
        if self.word_index < len(self.words) - 1:
            self.word_index += 1
            return True
        self.finish()
        return False
