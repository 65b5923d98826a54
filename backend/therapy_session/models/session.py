"""Session data models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActivityKind(str, Enum):
    """Kinds of activity a session can contain."""

    SPEECH = "speech"
    MOVEMENT = "movement"
    EXPERT = "expert"
    BREAK = "break"
    REWARD = "reward"
    OTHER = "other"


class SessionTheme(str, Enum):
    """Presentation themes. Carried through, never interpreted by the engine."""

    DRAGON = "dragon"
    DINOSAUR = "dinosaur"


class SessionPhase(str, Enum):
    """Lifecycle phases of a session."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


class CompletionStatus(str, Enum):
    """Completion status of a single activity."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ColorScheme(CamelModel):
    """Three-colour palette for the rendering shell."""

    model_config = ConfigDict(frozen=True)

    primary: str = "#9c27b0"
    secondary: str = "#e91e63"
    accent: str = "#f48fb1"


class ActivityDescriptor(CamelModel):
    """One planned activity within a session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    kind: ActivityKind = Field(default=ActivityKind.OTHER, alias="type")
    duration: float = Field(gt=0, description="Planned duration in minutes")
    targets: list[str] = Field(default_factory=list)
    difficulty: int | None = Field(default=None, ge=1)

    @property
    def duration_seconds(self) -> int:
        return int(self.duration * 60)


def _unique(values: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


class SessionConfig(CamelModel):
    """Immutable configuration for one session, built by the configurator."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    duration: float = Field(default=45, gt=0, description="Planned total duration in minutes")
    activities: list[ActivityDescriptor] = Field(default_factory=list)
    speech_targets: list[str] = Field(default_factory=list)
    behavior_focus: list[str] = Field(default_factory=list)
    theme: SessionTheme = SessionTheme.DRAGON
    color_scheme: ColorScheme = Field(default_factory=ColorScheme)

    @field_validator("speech_targets", "behavior_focus")
    @classmethod
    def dedupe_tags(cls, value: list[str]) -> list[str]:
        """Tags are sets in meaning; keep first occurrence order."""
        return _unique(value)

    @model_validator(mode="after")
    def validate_activity_ids(self):
        """Activity ids must be unique within a session."""
        ids = [activity.id for activity in self.activities]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate activity ids: {', '.join(duplicates)}")
        return self

    def planned_seconds(self) -> int:
        """Planned session length, from the activities when there are any."""
        if self.activities:
            return sum(activity.duration_seconds for activity in self.activities)
        return int(self.duration * 60)


class ActivityProgress(CamelModel):
    """Per-activity record kept by the progress ledger."""

    activity_id: str
    name: str
    status: CompletionStatus = CompletionStatus.NOT_STARTED
    success_rate: float | None = None
    tokens_earned: int = Field(default=0, ge=0)


class SessionSummary(CamelModel):
    """Final record of a session, consumed by the review surface."""

    session_id: str
    session_name: str
    elapsed_seconds: int
    activities: list[ActivityProgress]
    tokens_earned: int
    speech_targets: list[str]
    behavior_focus: list[str]
    completion_timestamp: datetime


class SessionSnapshot(CamelModel):
    """Point-in-time view of a live session for the host UI."""

    session_id: str
    session_name: str
    phase: SessionPhase
    current_index: int
    current_activity_id: str | None = None
    elapsed_seconds: int
    remaining_seconds: int
    activity_remaining_seconds: int
    progress_percent: float
    token_count: int
    max_tokens: int
    attempts: int = 0
    successes: int = 0
    activities: list[ActivityProgress]


class SessionCreate(CamelModel):
    """Request body for registering a new session."""

    config: SessionConfig
    max_tokens: int | None = Field(default=None, ge=1)


class AdvanceRequest(CamelModel):
    """Request body for moving to another activity."""

    target_index: int


class SuccessRateRequest(CamelModel):
    """Request body for recording an activity success rate."""

    activity_index: int
    rate: float


class CompleteRequest(CamelModel):
    """Request body for the activity completion callback."""

    success_rate: float


class TokenResponse(CamelModel):
    """Token count after an award."""

    session_id: str
    token_count: int
    max_tokens: int
