"""Build the activity module for a descriptor."""

from therapy_session.activities.base import ActivityCallbacks, ActivityModule
from therapy_session.activities.calming import CalmingBreak
from therapy_session.activities.movement import MovementDrill
from therapy_session.activities.roleplay import ExpertRolePlay
from therapy_session.activities.speech import SpeechQuest
from therapy_session.core.config import get_settings
from therapy_session.models.session import ActivityDescriptor, ActivityKind


def create_module(
    descriptor: ActivityDescriptor,
    callbacks: ActivityCallbacks | None = None,
) -> ActivityModule | None:
    """
    Create the module that runs an activity.

    @param descriptor - Activity to run
    @param callbacks - Wiring into the engine (see bind_engine)
    @returns The module, or None for kinds the therapist runs by hand
    """
    difficulty = descriptor.difficulty or 1

    if descriptor.kind == ActivityKind.SPEECH:
        return SpeechQuest(descriptor.targets, difficulty=difficulty, callbacks=callbacks)
    if descriptor.kind == ActivityKind.MOVEMENT:
        return MovementDrill(descriptor.targets, callbacks=callbacks)
    if descriptor.kind == ActivityKind.EXPERT:
        return ExpertRolePlay(descriptor.targets, difficulty=difficulty, callbacks=callbacks)
    if descriptor.kind == ActivityKind.BREAK:
        return CalmingBreak(
            descriptor.duration_seconds,
            callbacks=callbacks,
            extension_seconds=get_settings().break_extension_seconds,
        )

    # Reward exchanges and free-form activities have no drill
    return None
