"""Per-activity progress record, index-aligned with the activity sequence."""

from typing import Iterable

from therapy_session.core.errors import ActivityIndexError, ValidationError
from therapy_session.models.session import (
    ActivityDescriptor,
    ActivityProgress,
    CompletionStatus,
)


class ProgressLedger:
    """Ordered ActivityProgress entries, one per activity descriptor."""

    def __init__(self, entries: Iterable[ActivityProgress]):
        self._entries = list(entries)

    @classmethod
    def from_activities(cls, activities: Iterable[ActivityDescriptor]) -> "ProgressLedger":
        return cls(
            ActivityProgress(activity_id=activity.id, name=activity.name)
            for activity in activities
        )

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, index: int) -> ActivityProgress:
        # Negative indices are out of range, not counted from the end
        if not isinstance(index, int) or not 0 <= index < len(self._entries):
            raise ActivityIndexError(index, len(self._entries))
        return self._entries[index]

    def check_index(self, index: int) -> None:
        self._entry(index)

    def status_of(self, index: int) -> CompletionStatus:
        return self._entry(index).status

    def success_rate_of(self, index: int) -> float | None:
        return self._entry(index).success_rate

    def tokens_of(self, index: int) -> int:
        return self._entry(index).tokens_earned

    def mark_in_progress(self, index: int) -> None:
        self._entry(index).status = CompletionStatus.IN_PROGRESS

    def mark_completed(self, index: int) -> None:
        self._entry(index).status = CompletionStatus.COMPLETED

    def set_success_rate(self, index: int, rate: float) -> None:
        entry = self._entry(index)
        validate_rate(rate)
        entry.success_rate = float(rate)

    def add_tokens(self, index: int, n: int = 1) -> None:
        entry = self._entry(index)
        if n < 0:
            raise ValidationError("Token increment cannot be negative", {"n": n})
        entry.tokens_earned += n

    def completed_count(self) -> int:
        return sum(1 for entry in self._entries if entry.status == CompletionStatus.COMPLETED)

    def in_progress_indices(self) -> list[int]:
        return [
            index
            for index, entry in enumerate(self._entries)
            if entry.status == CompletionStatus.IN_PROGRESS
        ]

    def total_tokens(self) -> int:
        return sum(entry.tokens_earned for entry in self._entries)

    def entries(self) -> list[ActivityProgress]:
        """Copies of every entry, safe to hand to callers."""
        return [entry.model_copy() for entry in self._entries]


def validate_rate(rate: float) -> None:
    """Success rates are percentages in [0, 100]."""
    if isinstance(rate, bool) or not isinstance(rate, (int, float)) or not 0 <= rate <= 100:
        raise ValidationError("Success rate must be between 0 and 100", {"rate": rate})
